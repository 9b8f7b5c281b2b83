"""
Content providers.

The session asks a provider for a Challenge that fits a SelectionRequest. How
challenges are authored is up to the provider; `ChallengeBank` is a simple
file-backed one used by the CLI and tests.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from loguru import logger

from src.adaptive.selector import SelectionRequest
from src.core.errors import AssessmentError
from src.core.findings import Finding, parse_findings


@dataclass(frozen=True)
class Challenge:
    """A challenge as produced by a content provider. Holds the ground truth."""

    prompt_text: str
    ground_truth: frozenset[Finding]
    false_positive_traps: frozenset[Finding] = field(default_factory=frozenset)
    difficulty: Optional[int] = None
    challenge_id: Optional[str] = None
    title: str = ""

    @property
    def categories(self) -> frozenset[str]:
        return frozenset(f.category for f in self.ground_truth)

    @classmethod
    def from_dict(cls, data: dict) -> "Challenge":
        """
        Build a Challenge from a bank record.

        Raises:
            InvalidSubmissionError: if any finding record is malformed
        """
        challenge_id = data.get("id")
        return cls(
            prompt_text=data.get("prompt", ""),
            ground_truth=frozenset(parse_findings(data.get("ground_truth", []), prefix=f"{challenge_id}-gt")),
            false_positive_traps=frozenset(
                parse_findings(data.get("false_positive_traps", []), prefix=f"{challenge_id}-trap")
            ),
            difficulty=data.get("difficulty"),
            challenge_id=challenge_id,
            title=data.get("title", ""),
        )


@dataclass(frozen=True)
class PresentedChallenge:
    """What the learner is shown: no ground truth, no traps."""

    round_index: int
    difficulty: int
    prompt_text: str
    title: str = ""
    challenge_id: Optional[str] = None
    focus_categories: frozenset[str] = field(default_factory=frozenset)


class ContentProvider(Protocol):
    """Supplies challenges for a selection request."""

    def provide(self, request: SelectionRequest) -> Challenge:
        """Return a challenge matching the request as closely as possible."""
        ...


class ChallengeBank:
    """
    File-backed content provider.

    Selection, in order of preference:
    1. Not yet served (repeats only once every challenge has been used)
    2. Covers the most required categories
    3. Avoids excluded categories
    4. Closest difficulty
    Ties keep the file order.
    """

    def __init__(self, challenges: list[Challenge]):
        if not challenges:
            raise AssessmentError("Challenge bank is empty")
        self.challenges = list(challenges)
        self._served: set[int] = set()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ChallengeBank":
        """Load a bank from a JSON file holding {"challenges": [...]} or a bare list."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise AssessmentError(f"Could not load challenge bank {path}: {e}", details={"path": str(path)})

        records = data.get("challenges", []) if isinstance(data, dict) else data
        challenges = [Challenge.from_dict(record) for record in records]
        logger.info(f"Loaded {len(challenges)} challenges from {path}")
        return cls(challenges)

    def provide(self, request: SelectionRequest) -> Challenge:
        if len(self._served) == len(self.challenges):
            logger.info("Challenge bank exhausted, allowing repeats")
            self._served.clear()

        candidates = [i for i in range(len(self.challenges)) if i not in self._served]
        best = min(candidates, key=lambda i: (self._rank(self.challenges[i], request), i))
        self._served.add(best)
        chosen = self.challenges[best]
        logger.debug(f"Bank served {chosen.challenge_id or best} for level {request.difficulty}")
        return chosen

    @staticmethod
    def _rank(challenge: Challenge, request: SelectionRequest) -> tuple[int, int, int]:
        categories = challenge.categories
        uncovered = len(request.required_categories - categories)
        excluded = len(request.excluded_categories & categories)
        level = challenge.difficulty if challenge.difficulty is not None else request.difficulty
        return uncovered, excluded, abs(level - request.difficulty)

    def summary(self) -> dict[str, Any]:
        return {
            "challenges": len(self.challenges),
            "served": len(self._served),
            "categories": sorted({c for ch in self.challenges for c in ch.categories}),
        }
