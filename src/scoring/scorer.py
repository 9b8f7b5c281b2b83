"""
Submission Scorer.

Scores a learner's findings against a challenge's ground truth:
- Greedy one-to-one matching in submission order
- Precision / recall / F1 with vacuous-case conventions
- Severity and category accuracy over matched pairs
- Per-category recall for every category in the ground truth

Scoring is a pure function of its inputs. Ground truth is visited in id order,
so the order a content provider happens to list it in cannot change a score;
submission order does matter, because the first submitted finding to match a
ground-truth item claims it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from loguru import logger

from src.core.findings import Finding, Matcher, normalize_category, validate_findings


@dataclass(frozen=True)
class Scorecard:
    """Immutable scoring result for one round."""

    true_positives: tuple[tuple[Finding, Finding], ...]  # (submitted, matched truth)
    false_positives: tuple[Finding, ...]
    false_negatives: tuple[Finding, ...]
    precision: float
    recall: float
    f1: float
    severity_accuracy: float
    category_accuracy: float
    per_category_recall: Mapping[str, float] = field(default_factory=dict)
    # False positives that resemble a planted trap. Diagnostic only.
    trap_hits: tuple[tuple[Finding, Finding], ...] = ()

    def __post_init__(self) -> None:
        # Read-only copy; sealed rounds must not change under later calibration.
        object.__setattr__(self, "per_category_recall", MappingProxyType(dict(self.per_category_recall)))

    @property
    def tp_count(self) -> int:
        return len(self.true_positives)

    @property
    def fp_count(self) -> int:
        return len(self.false_positives)

    @property
    def fn_count(self) -> int:
        return len(self.false_negatives)

    @property
    def ground_truth_categories(self) -> set[str]:
        return set(self.per_category_recall)

    def category_counts(self) -> dict[str, tuple[int, int]]:
        """Per ground-truth category: (found, total)."""
        found = Counter(truth.category for _, truth in self.true_positives)
        missed = Counter(truth.category for truth in self.false_negatives)
        return {
            category: (found[category], found[category] + missed[category])
            for category in sorted(set(found) | set(missed))
        }

    def category_interest(self) -> dict[str, float]:
        """Sum of interest_weight per ground-truth category."""
        totals: dict[str, float] = {}
        truths = [truth for _, truth in self.true_positives] + list(self.false_negatives)
        for truth in truths:
            totals[truth.category] = totals.get(truth.category, 0.0) + (truth.interest_weight or 0.0)
        return totals

    def to_dict(self) -> dict[str, Any]:
        return {
            "true_positives": [
                {"submitted": submitted.to_dict(), "truth": truth.to_dict()}
                for submitted, truth in self.true_positives
            ],
            "false_positives": [f.to_dict() for f in self.false_positives],
            "false_negatives": [f.to_dict() for f in self.false_negatives],
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "severity_accuracy": self.severity_accuracy,
            "category_accuracy": self.category_accuracy,
            "per_category_recall": dict(self.per_category_recall),
            "trap_hits": [
                {"submitted": submitted.to_dict(), "trap": trap.to_dict()}
                for submitted, trap in self.trap_hits
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Scorecard:
        return cls(
            true_positives=tuple(
                (Finding.from_dict(pair["submitted"]), Finding.from_dict(pair["truth"]))
                for pair in data.get("true_positives", [])
            ),
            false_positives=tuple(Finding.from_dict(f) for f in data.get("false_positives", [])),
            false_negatives=tuple(Finding.from_dict(f) for f in data.get("false_negatives", [])),
            precision=float(data["precision"]),
            recall=float(data["recall"]),
            f1=float(data["f1"]),
            severity_accuracy=float(data.get("severity_accuracy", 0.0)),
            category_accuracy=float(data.get("category_accuracy", 0.0)),
            per_category_recall={k: float(v) for k, v in data.get("per_category_recall", {}).items()},
            trap_hits=tuple(
                (Finding.from_dict(pair["submitted"]), Finding.from_dict(pair["trap"]))
                for pair in data.get("trap_hits", [])
            ),
        )


def f1_score(precision: float, recall: float) -> float:
    """Harmonic mean; 0.0 (not NaN) when both inputs are zero."""
    if precision + recall == 0:
        return 0.0
    return 2 * precision * recall / (precision + recall)


def _ratio(numerator: int, denominator: int, empty: float) -> float:
    if denominator == 0:
        return empty
    return numerator / denominator


class SubmissionScorer:
    """
    Scores submissions against ground truth.

    Stateless; one instance can score any number of rounds and sessions.
    """

    def score(
        self,
        submission: Iterable[Finding],
        ground_truth: Iterable[Finding],
        matcher: Matcher,
        traps: Optional[Iterable[Finding]] = None,
    ) -> Scorecard:
        """
        Score a submission.

        Args:
            submission: Learner findings in the order they were reported
            ground_truth: The challenge's hidden findings
            matcher: (submitted, truth) -> bool equivalence test
            traps: Optional false-positive traps for diagnostics

        Returns:
            Scorecard

        Raises:
            InvalidSubmissionError: if either collection holds malformed findings
        """
        submitted = validate_findings(submission, "submission")
        truth_pool = sorted(validate_findings(ground_truth, "ground truth", unique_ids=True), key=lambda f: f.id)
        trap_list = sorted(validate_findings(traps or [], "traps"), key=lambda f: f.id)

        unmatched = list(truth_pool)
        true_positives: list[tuple[Finding, Finding]] = []
        false_positives: list[Finding] = []

        for finding in submitted:
            match = next((truth for truth in unmatched if matcher(finding, truth)), None)
            if match is None:
                false_positives.append(finding)
            else:
                true_positives.append((finding, match))
                unmatched.remove(match)

        tp, fp, fn = len(true_positives), len(false_positives), len(unmatched)
        precision = _ratio(tp, tp + fp, empty=1.0)
        recall = _ratio(tp, tp + fn, empty=1.0)

        severity_hits = sum(1 for s, t in true_positives if s.severity == t.severity)
        category_hits = sum(
            1 for s, t in true_positives if normalize_category(s.category) == normalize_category(t.category)
        )

        totals = Counter(truth.category for truth in truth_pool)
        found = Counter(truth.category for _, truth in true_positives)
        per_category_recall = {
            category: found[category] / total for category, total in sorted(totals.items())
        }

        trap_hits = []
        for finding in false_positives:
            trap = next((t for t in trap_list if matcher(finding, t)), None)
            if trap is not None:
                trap_hits.append((finding, trap))

        scorecard = Scorecard(
            true_positives=tuple(true_positives),
            false_positives=tuple(false_positives),
            false_negatives=tuple(unmatched),
            precision=precision,
            recall=recall,
            f1=f1_score(precision, recall),
            severity_accuracy=_ratio(severity_hits, tp, empty=0.0),
            category_accuracy=_ratio(category_hits, tp, empty=0.0),
            per_category_recall=per_category_recall,
            trap_hits=tuple(trap_hits),
        )

        logger.debug(
            f"Scored submission: TP={tp} FP={fp} FN={fn} "
            f"P={precision:.2f} R={recall:.2f} F1={scorecard.f1:.2f}"
            + (f" traps={len(trap_hits)}" if trap_hits else "")
        )
        return scorecard
