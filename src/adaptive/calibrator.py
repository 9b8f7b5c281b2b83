"""
Difficulty Calibrator.

Decides the next round's difficulty from recent performance. Rules are
evaluated in priority order and the first match wins:

1. Advance: the last 3 rounds were all at the current level, each with
   F1 >= 0.75 and precision >= 0.60. Advancing past the gate level (3) also
   requires every anchor category to have reached recall >= 0.50 at least
   once in those rounds; otherwise the learner holds.
2. Retreat: the last 2 rounds were both at the current level, each with
   F1 < 0.30.
3. Hold.

A rule that needs more rounds than the history has is skipped. Sparse history
never raises; it just holds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from src.adaptive.history import Round, RoundHistory


DEFAULT_ANCHOR_CATEGORIES = ("access-control", "injection", "crypto")

# Hard bounds for any configured level range
LOWEST_LEVEL = 1
HIGHEST_LEVEL = 5


class CalibrationAction(str, Enum):
    """Outcome of a calibration step."""

    ADVANCE = "advance"
    HOLD = "hold"
    RETREAT = "retreat"


@dataclass
class CalibrationConfig:
    """Thresholds for difficulty calibration."""

    min_level: int = LOWEST_LEVEL
    max_level: int = HIGHEST_LEVEL
    advance_window: int = 3
    advance_min_f1: float = 0.75
    advance_min_precision: float = 0.60
    retreat_window: int = 2
    retreat_max_f1: float = 0.30  # exclusive
    anchor_categories: tuple[str, ...] = DEFAULT_ANCHOR_CATEGORIES
    anchor_min_recall: float = 0.50
    anchor_gate_level: int = 3  # anchors gate advancement from this level upward


@dataclass(frozen=True)
class CalibrationDecision:
    """Result of calibration with a short human-readable reason."""

    action: CalibrationAction
    level: int
    reason: str


class DifficultyCalibrator:
    """
    Raise, hold or lower difficulty based on the round history.

    Only rounds at the current level count, and they must be the most recent
    ones: a level change starts the streak over.
    """

    def __init__(self, config: Optional[CalibrationConfig] = None):
        self.config = config or CalibrationConfig()

    def next_difficulty(self, history: RoundHistory, current: int) -> int:
        """Return the difficulty level for the next round."""
        return self.decide(history, current).level

    def decide(self, history: RoundHistory, current: int) -> CalibrationDecision:
        """
        Apply the calibration rules.

        Args:
            history: Completed rounds for this session
            current: Current difficulty level

        Returns:
            CalibrationDecision
        """
        cfg = self.config
        current = self.clamp(current)

        window = self._streak(history, current, cfg.advance_window)
        if window is not None and all(self._qualifies(r) for r in window):
            if current >= cfg.max_level:
                return self._decision(CalibrationAction.HOLD, current, "already at maximum level")
            missing = self.missing_anchors(window) if current >= cfg.anchor_gate_level else []
            if missing:
                return self._decision(
                    CalibrationAction.HOLD,
                    current,
                    f"score qualifies but anchor categories not demonstrated: {', '.join(missing)}",
                )
            return self._decision(
                CalibrationAction.ADVANCE,
                self.clamp(current + 1),
                f"{cfg.advance_window} rounds at level {current} with F1 >= {cfg.advance_min_f1:.2f}",
            )

        window = self._streak(history, current, cfg.retreat_window)
        if window is not None and all(r.f1 < cfg.retreat_max_f1 for r in window):
            if current <= cfg.min_level:
                return self._decision(CalibrationAction.HOLD, current, "already at minimum level")
            return self._decision(
                CalibrationAction.RETREAT,
                self.clamp(current - 1),
                f"{cfg.retreat_window} rounds at level {current} with F1 < {cfg.retreat_max_f1:.2f}",
            )

        return self._decision(CalibrationAction.HOLD, current, "no rule fired")

    def missing_anchors(self, rounds: list[Round]) -> list[str]:
        """Anchor categories that never reached the recall threshold in these rounds."""
        missing = []
        for anchor in self.config.anchor_categories:
            recalls = [r.category_recall(anchor) for r in rounds]
            best = max((value for value in recalls if value is not None), default=None)
            if best is None or best < self.config.anchor_min_recall:
                missing.append(anchor)
        return missing

    def _qualifies(self, round_: Round) -> bool:
        return (
            round_.f1 >= self.config.advance_min_f1
            and round_.precision >= self.config.advance_min_precision
        )

    @staticmethod
    def _streak(history: RoundHistory, level: int, size: int) -> Optional[list[Round]]:
        """The last `size` rounds if there are enough and all were played at `level`."""
        if size <= 0:
            return None
        window = history.last_n(size)
        if len(window) < size:
            return None
        if any(r.difficulty_level != level for r in window):
            return None
        return window

    def clamp(self, level: int) -> int:
        return max(self.config.min_level, min(level, self.config.max_level))

    @staticmethod
    def _decision(action: CalibrationAction, level: int, reason: str) -> CalibrationDecision:
        logger.debug(f"Calibration: {action.value} -> level {level} ({reason})")
        return CalibrationDecision(action=action, level=level, reason=reason)
