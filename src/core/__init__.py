"""
Core Module - Shared domain types.

Components:
- findings: Finding, Severity, matchers and finding validation
- errors: Assessment error taxonomy (PhaseError, InvalidSubmissionError, ...)

Design Principle:
Scoring, adaptive and coach modules import these types from src/core/
rather than defining their own.
"""

from src.core.errors import (
    AssessmentError,
    InvalidSubmissionError,
    PhaseError,
    TrivialReflectionError,
)
from src.core.findings import (
    MATCHERS,
    Finding,
    Matcher,
    Severity,
    get_matcher,
    match_by_id,
    match_by_location,
    match_by_location_and_category,
    parse_findings,
    validate_findings,
)

__all__ = [
    # Findings
    "Finding",
    "Severity",
    "Matcher",
    "MATCHERS",
    "get_matcher",
    "match_by_id",
    "match_by_location",
    "match_by_location_and_category",
    "parse_findings",
    "validate_findings",
    # Errors
    "AssessmentError",
    "PhaseError",
    "InvalidSubmissionError",
    "TrivialReflectionError",
]
