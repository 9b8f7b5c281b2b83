"""
Round history for an assessment session.

Append-only: rounds are added once, at the end of each cycle, and never
modified or removed. Corrections are made by appending a new round.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional

from src.scoring.scorer import Scorecard


@dataclass(frozen=True)
class Round:
    """A sealed round: difficulty, scorecard and the learner's reflection."""

    index: int
    difficulty_level: int
    category_tags: frozenset[str]
    scorecard: Scorecard
    reflection_text: str
    challenge_id: Optional[str] = None
    sealed_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def f1(self) -> float:
        return self.scorecard.f1

    @property
    def precision(self) -> float:
        return self.scorecard.precision

    def category_recall(self, category: str) -> Optional[float]:
        """Recall for a category, or None if it was not in this round's ground truth."""
        return self.scorecard.per_category_recall.get(category)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "index": self.index,
            "difficulty_level": self.difficulty_level,
            "category_tags": sorted(self.category_tags),
            "scorecard": self.scorecard.to_dict(),
            "reflection_text": self.reflection_text,
            "challenge_id": self.challenge_id,
            "sealed_at": self.sealed_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Round":
        """Create from dictionary."""
        return cls(
            index=int(data["index"]),
            difficulty_level=int(data["difficulty_level"]),
            category_tags=frozenset(data.get("category_tags", [])),
            scorecard=Scorecard.from_dict(data["scorecard"]),
            reflection_text=data.get("reflection_text", ""),
            challenge_id=data.get("challenge_id"),
            sealed_at=data.get("sealed_at") or datetime.now().isoformat(),
        )


class RoundHistory:
    """
    Ordered, append-only sequence of completed rounds.

    Single writer per session: only the owning session appends.
    """

    def __init__(self) -> None:
        self._rounds: list[Round] = []

    @classmethod
    def from_rounds(cls, rounds: Iterable[Round]) -> "RoundHistory":
        """Rebuild a history from persisted rounds, in order."""
        history = cls()
        for round_ in rounds:
            history.append(round_)
        return history

    def append(self, round_: Round) -> None:
        """
        Append a sealed round.

        Raises:
            ValueError: if the round index is not the next one in sequence
        """
        if not isinstance(round_, Round):
            raise TypeError(f"Expected Round, got {type(round_).__name__}")
        if round_.index != len(self._rounds):
            raise ValueError(
                f"Round index {round_.index} out of sequence (expected {len(self._rounds)})"
            )
        self._rounds.append(round_)

    def last_n(self, n: int) -> list[Round]:
        """The n most recent rounds, oldest first. Fewer if history is short."""
        if n <= 0:
            return []
        return list(self._rounds[-n:])

    def all(self) -> list[Round]:
        return list(self._rounds)

    def category_totals(self) -> dict[str, tuple[int, int]]:
        """Per category across all rounds: (ground-truth items found, ground-truth items)."""
        totals: dict[str, tuple[int, int]] = {}
        for round_ in self._rounds:
            for category, (found, total) in round_.scorecard.category_counts().items():
                prev_found, prev_total = totals.get(category, (0, 0))
                totals[category] = (prev_found + found, prev_total + total)
        return dict(sorted(totals.items()))

    def category_appearances(self, category: str) -> list[float]:
        """Recall values for a category, oldest first, one per round it appeared in."""
        return [
            recall
            for round_ in self._rounds
            if (recall := round_.category_recall(category)) is not None
        ]

    def categories(self) -> set[str]:
        """Every category that has appeared in ground truth or challenge tags."""
        seen: set[str] = set()
        for round_ in self._rounds:
            seen.update(round_.scorecard.per_category_recall)
            seen.update(round_.category_tags)
        return seen

    def difficulty_trajectory(self) -> list[int]:
        return [round_.difficulty_level for round_ in self._rounds]

    def to_list(self) -> list[dict[str, Any]]:
        return [round_.to_dict() for round_ in self._rounds]

    def __len__(self) -> int:
        return len(self._rounds)

    def __iter__(self) -> Iterator[Round]:
        return iter(list(self._rounds))
