"""
Adaptive Assessment Engine.

Reads the round history to decide what the learner sees next.

Components:
- RoundHistory: Append-only record of sealed rounds
- DifficultyCalibrator: Advance / hold / retreat rules with anchor gating
- CategoryCoverageTracker: Weak and strong categories over a rolling window
- ChallengeSelector: Builds the SelectionRequest for the content provider
"""
from src.adaptive.calibrator import (
    DEFAULT_ANCHOR_CATEGORIES,
    HIGHEST_LEVEL,
    LOWEST_LEVEL,
    CalibrationAction,
    CalibrationConfig,
    CalibrationDecision,
    DifficultyCalibrator,
)
from src.adaptive.coverage import CategoryCoverage, CategoryCoverageTracker, CoverageConfig
from src.adaptive.history import Round, RoundHistory
from src.adaptive.selector import (
    DEFAULT_CATEGORY_CATALOG,
    ChallengeSelector,
    SelectionConfig,
    SelectionRequest,
)

__all__ = [
    # History
    "Round",
    "RoundHistory",
    # Calibration
    "DifficultyCalibrator",
    "CalibrationConfig",
    "CalibrationDecision",
    "CalibrationAction",
    "DEFAULT_ANCHOR_CATEGORIES",
    "LOWEST_LEVEL",
    "HIGHEST_LEVEL",
    # Coverage
    "CategoryCoverageTracker",
    "CategoryCoverage",
    "CoverageConfig",
    # Selection
    "ChallengeSelector",
    "SelectionConfig",
    "SelectionRequest",
    "DEFAULT_CATEGORY_CATALOG",
]
