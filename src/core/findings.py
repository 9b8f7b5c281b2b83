"""
Finding value types and matchers.

A Finding is one issue in a challenge: either part of the hidden ground truth
or a claim made by the learner. Matchers decide whether a submitted finding
refers to the same issue as a ground-truth finding; the engine never tries to
interpret free text itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Sequence

from src.core.errors import InvalidSubmissionError


class Severity(str, Enum):
    """Severity of a finding, most to least severe."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for critical, 3 for low."""
        return list(Severity).index(self)

    @classmethod
    def from_string(cls, value: str) -> Severity:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid severity: {value}")


REQUIRED_FIELDS = ("category", "severity", "location", "description")


@dataclass(frozen=True)
class Finding:
    """A single finding. Immutable once created."""

    id: str
    category: str
    severity: Severity
    location: str
    description: str
    interest_weight: Optional[float] = None  # ground truth only

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "category": self.category,
            "severity": self.severity.value,
            "location": self.location,
            "description": self.description,
        }
        if self.interest_weight is not None:
            data["interest_weight"] = self.interest_weight
        return data

    @classmethod
    def from_dict(cls, data: dict, default_id: Optional[str] = None) -> Finding:
        """
        Build a Finding from a plain record.

        Raises:
            InvalidSubmissionError: if required fields are missing or invalid
        """
        issues = _record_issues(data, default_id)
        if issues:
            raise InvalidSubmissionError("Malformed finding record", issues=issues)

        weight = data.get("interest_weight")
        return cls(
            id=str(data.get("id") or default_id),
            category=normalize_category(data["category"]),
            severity=Severity.from_string(data["severity"]),
            location=data["location"].strip(),
            description=data["description"].strip(),
            interest_weight=float(weight) if weight is not None else None,
        )


Matcher = Callable[[Finding, Finding], bool]
"""(submitted, ground_truth) -> True when both describe the same issue."""


def normalize_category(category: str) -> str:
    return category.strip().lower()


def _normalize_location(location: str) -> str:
    return " ".join(location.lower().split())


def match_by_id(submitted: Finding, truth: Finding) -> bool:
    """Match when the learner quoted the ground-truth id."""
    return submitted.id == truth.id


def match_by_location(submitted: Finding, truth: Finding) -> bool:
    """Match on location only, ignoring case and whitespace."""
    return _normalize_location(submitted.location) == _normalize_location(truth.location)


def match_by_location_and_category(submitted: Finding, truth: Finding) -> bool:
    """Match when both location and category agree."""
    return match_by_location(submitted, truth) and (
        normalize_category(submitted.category) == normalize_category(truth.category)
    )


MATCHERS: dict[str, Matcher] = {
    "id": match_by_id,
    "location": match_by_location,
    "location_category": match_by_location_and_category,
}


def get_matcher(name: str) -> Matcher:
    """Look up a built-in matcher by name."""
    try:
        return MATCHERS[name]
    except KeyError:
        raise ValueError(f"Unknown matcher: {name}. Valid matchers: {', '.join(MATCHERS)}")


# =============================================================================
# Validation
# =============================================================================


def _record_issues(data: Any, default_id: Optional[str]) -> list[str]:
    if not isinstance(data, dict):
        return [f"expected a mapping, got {type(data).__name__}"]

    label = data.get("id") or default_id or "<unnamed>"
    issues = []
    if not (data.get("id") or default_id):
        issues.append(f"{label}: missing id")
    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if not isinstance(value, str) or (name != "description" and not value.strip()):
            issues.append(f"{label}: missing or empty '{name}'")
    severity = data.get("severity")
    if isinstance(severity, str) and severity.strip():
        try:
            Severity.from_string(severity)
        except ValueError:
            issues.append(f"{label}: unknown severity '{severity}'")
    weight = data.get("interest_weight")
    if weight is not None and (isinstance(weight, bool) or not isinstance(weight, (int, float))):
        issues.append(f"{label}: interest_weight must be numeric")
    return issues


def finding_issues(finding: Any) -> list[str]:
    """Return every problem with a Finding instance (empty when valid)."""
    if not isinstance(finding, Finding):
        return [f"expected Finding, got {type(finding).__name__}"]

    label = finding.id or "<unnamed>"
    issues = []
    for name in ("id", "category", "location"):
        value = getattr(finding, name)
        if not isinstance(value, str) or not value.strip():
            issues.append(f"{label}: missing or empty '{name}'")
    if not isinstance(finding.description, str):
        issues.append(f"{label}: description must be a string")
    if not isinstance(finding.severity, Severity):
        issues.append(f"{label}: severity must be a Severity, got {finding.severity!r}")
    weight = finding.interest_weight
    if weight is not None and (isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight < 0):
        issues.append(f"{label}: interest_weight must be a non-negative number")
    return issues


def validate_findings(findings: Iterable[Any], label: str, unique_ids: bool = False) -> list[Finding]:
    """
    Check a collection of findings and return it as a list.

    Args:
        findings: Findings to check
        label: "submission" or "ground truth", used in the error message
        unique_ids: Require distinct ids (ground truth)

    Raises:
        InvalidSubmissionError: listing every issue found
    """
    if findings is None or isinstance(findings, (str, bytes, dict)):
        raise InvalidSubmissionError(f"Malformed {label}", issues=[f"{label} must be a collection of findings"])

    items = list(findings)
    issues: list[str] = []
    for finding in items:
        issues.extend(finding_issues(finding))

    if unique_ids and not issues:
        seen: set[str] = set()
        for finding in items:
            if finding.id in seen:
                issues.append(f"{finding.id}: duplicate id in {label}")
            seen.add(finding.id)

    if issues:
        raise InvalidSubmissionError(f"Malformed {label}", issues=issues)
    return items


def parse_findings(records: Sequence[Any], prefix: str = "submitted") -> list[Finding]:
    """
    Build Findings from a list of records, keeping order.

    Records may already be Findings. Dict records without an id get one from
    their position ("submitted-1", "submitted-2", ...). Every malformed record
    is reported in a single InvalidSubmissionError.
    """
    if records is None or isinstance(records, (str, bytes, dict)):
        raise InvalidSubmissionError("Malformed findings", issues=["expected a list of finding records"])

    findings: list[Finding] = []
    issues: list[str] = []
    for position, record in enumerate(records, start=1):
        if isinstance(record, Finding):
            problems = finding_issues(record)
            if problems:
                issues.extend(problems)
            else:
                findings.append(record)
            continue
        try:
            findings.append(Finding.from_dict(record, default_id=f"{prefix}-{position}"))
        except InvalidSubmissionError as e:
            issues.extend(e.issues)

    if issues:
        raise InvalidSubmissionError("Malformed findings", issues=issues)
    return findings
