"""
Challenge Selector.

Turns a calibrated difficulty and the coverage picture into a request for the
content provider. The selector never writes challenge content itself.

- Weak categories are always required.
- With nothing weak, one category the learner has not seen in the last two
  rounds is required, chosen round-robin, to keep practice diverse. Strong
  categories are only picked when no other category is available.
- Strong categories are excluded only when nothing is weak, so a mastered
  category is not dropped while an under-practised one starves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from loguru import logger

from src.adaptive.calibrator import DEFAULT_ANCHOR_CATEGORIES
from src.adaptive.history import RoundHistory


DEFAULT_CATEGORY_CATALOG = DEFAULT_ANCHOR_CATEGORIES + (
    "authentication",
    "input-validation",
    "secrets-management",
    "error-handling",
)


@dataclass
class SelectionConfig:
    """Configuration for challenge selection."""

    diversity_lookback: int = 2
    known_categories: tuple[str, ...] = DEFAULT_CATEGORY_CATALOG


@dataclass(frozen=True)
class SelectionRequest:
    """What the next challenge should look like."""

    difficulty: int
    required_categories: frozenset[str] = field(default_factory=frozenset)
    excluded_categories: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return {
            "difficulty": self.difficulty,
            "required_categories": sorted(self.required_categories),
            "excluded_categories": sorted(self.excluded_categories),
        }


class ChallengeSelector:
    """
    Build SelectionRequests for one session.

    Keeps a round-robin cursor for diversity picks, so use one selector per
    session. Pass commit=False to select() when the request may still be
    discarded, then call commit() once it is used.
    """

    def __init__(self, config: Optional[SelectionConfig] = None):
        self.config = config or SelectionConfig()
        self._last_pick: Optional[str] = None
        self._pending_pick: Optional[str] = None

    def select(
        self,
        calibrator_output: int,
        weak: Iterable[str],
        strong: Iterable[str],
        history: Optional[RoundHistory] = None,
        commit: bool = True,
    ) -> SelectionRequest:
        """
        Build the request for the next challenge.

        Args:
            calibrator_output: Difficulty level from the calibrator
            weak: Weak categories
            strong: Strong categories
            history: Round history, used for the diversity pick
            commit: Advance the round-robin cursor now

        Returns:
            SelectionRequest
        """
        weak = frozenset(weak)
        strong = frozenset(strong)

        if weak:
            pick = None
            required = weak
            excluded: frozenset[str] = frozenset()
        else:
            pick = self._diversity_pick(history, strong)
            required = frozenset([pick]) if pick else frozenset()
            excluded = strong - required

        self._pending_pick = pick
        if commit:
            self.commit()

        request = SelectionRequest(
            difficulty=calibrator_output,
            required_categories=required,
            excluded_categories=excluded,
        )
        logger.debug(
            f"Selection: level={request.difficulty} "
            f"required={sorted(request.required_categories)} "
            f"excluded={sorted(request.excluded_categories)}"
        )
        return request

    def commit(self) -> None:
        """Advance the round-robin cursor past the last selected pick."""
        if self._pending_pick is not None:
            self._last_pick = self._pending_pick
        self._pending_pick = None

    def _diversity_pick(self, history: Optional[RoundHistory], strong: frozenset[str]) -> Optional[str]:
        """
        Next known category, in sorted order after the last pick, not seen recently.

        Strong categories are only picked when nothing else is left.
        """
        known = set(self.config.known_categories)
        recent: set[str] = set()
        if history is not None:
            known |= history.categories()
            for round_ in history.last_n(self.config.diversity_lookback):
                recent.update(round_.category_tags)
                recent.update(round_.scorecard.per_category_recall)

        unseen = known - recent
        candidates = sorted(unseen - strong) or sorted(unseen & strong)
        if not candidates:
            return None

        after = [c for c in candidates if self._last_pick is None or c > self._last_pick]
        return after[0] if after else candidates[0]
