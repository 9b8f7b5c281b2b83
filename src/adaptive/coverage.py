"""
Category Coverage Tracker.

Finds categories the learner keeps missing (weak) and categories they have
mastered (strong), using each category's most recent appearances in ground
truth. A category needs at least `window` appearances before it is judged
either way; anything less is treated as unknown, not weak.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from src.adaptive.history import RoundHistory


@dataclass
class CoverageConfig:
    """Thresholds for category coverage."""

    weak_threshold: float = 0.40  # mean recall below this is weak
    strong_threshold: float = 0.80  # mean recall at or above this is strong
    window: int = 3


@dataclass(frozen=True)
class CategoryCoverage:
    """Coverage summary for one category."""

    category: str
    appearances: int  # rounds the category appeared in, all time
    window_recalls: tuple[float, ...]  # most recent first, at most `window`
    interest: float  # summed interest_weight over the window rounds
    status: str  # weak | strong | developing | insufficient

    @property
    def mean_recall(self) -> Optional[float]:
        if not self.window_recalls:
            return None
        return sum(self.window_recalls) / len(self.window_recalls)


class CategoryCoverageTracker:
    """Compute weak and strong categories from a round history."""

    def __init__(self, config: Optional[CoverageConfig] = None):
        self.config = config or CoverageConfig()

    def weak_categories(
        self,
        history: RoundHistory,
        threshold: Optional[float] = None,
        window: Optional[int] = None,
    ) -> set[str]:
        """
        Categories whose mean recall over their last `window` appearances is below `threshold`.

        Categories with fewer than `window` appearances are never weak.
        """
        threshold = self.config.weak_threshold if threshold is None else threshold
        window = self.config.window if window is None else window
        return {
            category
            for category, recalls in self._windows(history, window).items()
            if len(recalls) >= window and _mean(recalls) < threshold
        }

    def strong_categories(
        self,
        history: RoundHistory,
        threshold: Optional[float] = None,
        window: Optional[int] = None,
    ) -> set[str]:
        """Categories with mean recall >= `threshold` over at least `window` appearances."""
        threshold = self.config.strong_threshold if threshold is None else threshold
        window = self.config.window if window is None else window
        return {
            category
            for category, recalls in self._windows(history, window).items()
            if len(recalls) >= window and _mean(recalls) >= threshold
        }

    def ranked_weak_categories(self, history: RoundHistory) -> list[str]:
        """
        Weak categories, most in need of practice first.

        Ordered by mean recall ascending; ties go to the category whose
        ground truth carried more interest weight, then by name.
        """
        report = self.coverage_report(history)
        weak = [c for c in report.values() if c.status == "weak"]
        weak.sort(key=lambda c: (c.mean_recall, -c.interest, c.category))
        return [c.category for c in weak]

    def coverage_report(self, history: RoundHistory) -> dict[str, CategoryCoverage]:
        """Coverage for every category seen in ground truth, keyed by category."""
        window = self.config.window
        appearances: dict[str, int] = {}
        recalls: dict[str, list[float]] = {}
        interest: dict[str, float] = {}

        for round_ in reversed(history.all()):
            weights = round_.scorecard.category_interest()
            for category, recall in round_.scorecard.per_category_recall.items():
                appearances[category] = appearances.get(category, 0) + 1
                bucket = recalls.setdefault(category, [])
                if len(bucket) < window:
                    bucket.append(recall)
                    interest[category] = interest.get(category, 0.0) + weights.get(category, 0.0)

        report = {}
        for category in sorted(recalls):
            values = recalls[category]
            if len(values) < window:
                status = "insufficient"
            elif _mean(values) < self.config.weak_threshold:
                status = "weak"
            elif _mean(values) >= self.config.strong_threshold:
                status = "strong"
            else:
                status = "developing"
            report[category] = CategoryCoverage(
                category=category,
                appearances=appearances[category],
                window_recalls=tuple(values),
                interest=interest.get(category, 0.0),
                status=status,
            )

        weak = [c for c, cov in report.items() if cov.status == "weak"]
        if weak:
            logger.debug(f"Weak categories: {', '.join(weak)}")
        return report

    @staticmethod
    def _windows(history: RoundHistory, window: int) -> dict[str, list[float]]:
        """Per category, recall over its most recent `window` appearances."""
        windows: dict[str, list[float]] = {}
        if window <= 0:
            return windows
        for round_ in reversed(history.all()):
            for category, recall in round_.scorecard.per_category_recall.items():
                bucket = windows.setdefault(category, [])
                if len(bucket) < window:
                    bucket.append(recall)
        return windows


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)
