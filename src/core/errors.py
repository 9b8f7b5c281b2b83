"""
Assessment errors.

Every error carries the session phase and round index at the time of failure
so a caller can tell which step to retry. Nothing here is retried
automatically; recovery is always caller-driven.
"""

from __future__ import annotations

from typing import Any, Optional


class AssessmentError(Exception):
    """Base exception for all assessment engine errors."""

    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        round_index: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.round_index = round_index
        self.details = details or {}

    def with_context(self, phase: str, round_index: int) -> "AssessmentError":
        """Attach session context if the raiser did not know it."""
        if self.phase is None:
            self.phase = phase
        if self.round_index is None:
            self.round_index = round_index
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "phase": self.phase,
            "round_index": self.round_index,
            "details": self.details,
        }


class PhaseError(AssessmentError):
    """Raised when an operation is invoked in the wrong session phase."""

    def __init__(self, operation: str, expected: str, actual: str, round_index: Optional[int] = None):
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{operation}() is only valid in phase {expected}, session is in {actual}",
            phase=actual,
            round_index=round_index,
            details={"operation": operation, "expected": expected, "actual": actual},
        )


class InvalidSubmissionError(AssessmentError):
    """Raised when a submission or ground-truth set holds malformed findings."""

    def __init__(
        self,
        message: str,
        issues: Optional[list[str]] = None,
        phase: Optional[str] = None,
        round_index: Optional[int] = None,
    ):
        self.issues = issues or []
        super().__init__(message, phase=phase, round_index=round_index, details={"issues": self.issues})


class TrivialReflectionError(AssessmentError):
    """Raised when a reflection is too short or too generic to accept."""

    def __init__(
        self,
        reason: str,
        phase: Optional[str] = None,
        round_index: Optional[int] = None,
    ):
        self.reason = reason
        super().__init__(
            f"Reflection rejected: {reason}",
            phase=phase,
            round_index=round_index,
            details={"reason": reason},
        )
