"""
Scoring: compares a learner submission with a challenge's ground truth.

Components:
- SubmissionScorer: greedy one-to-one matching and precision/recall/F1
- Scorecard: immutable per-round result
"""

from src.scoring.scorer import Scorecard, SubmissionScorer, f1_score

__all__ = [
    "Scorecard",
    "SubmissionScorer",
    "f1_score",
]
