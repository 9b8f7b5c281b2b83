"""
Engine configuration.

One object holds every threshold a session uses. Each session gets its own
instance, so sessions and tests can be parameterised independently.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from src.adaptive.calibrator import HIGHEST_LEVEL, LOWEST_LEVEL, CalibrationConfig
from src.adaptive.coverage import CoverageConfig
from src.adaptive.selector import SelectionConfig
from src.coach.reflection import ReflectionConfig

if TYPE_CHECKING:
    from config import Settings


@dataclass
class EngineConfig:
    """All assessment thresholds for one session."""

    initial_difficulty: int = 1
    matcher: str = "location_category"
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    reflection: ReflectionConfig = field(default_factory=ReflectionConfig)

    def __post_init__(self) -> None:
        cal = self.calibration
        if cal.min_level < LOWEST_LEVEL or cal.max_level > HIGHEST_LEVEL:
            raise ValueError(
                f"level range [{cal.min_level}, {cal.max_level}] outside [{LOWEST_LEVEL}, {HIGHEST_LEVEL}]"
            )
        if cal.min_level > cal.max_level:
            raise ValueError(f"min_level {cal.min_level} is above max_level {cal.max_level}")
        if not cal.min_level <= self.initial_difficulty <= cal.max_level:
            raise ValueError(
                f"initial_difficulty {self.initial_difficulty} outside [{cal.min_level}, {cal.max_level}]"
            )

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "EngineConfig":
        """Build an engine config from application settings (environment / .env)."""
        if settings is None:
            from config import get_settings

            settings = get_settings()

        calibration = settings.get_calibration_config()
        coverage = settings.get_coverage_config()
        selection = settings.get_selection_config()
        reflection = settings.get_reflection_config()
        return cls(
            initial_difficulty=settings.initial_difficulty,
            matcher=settings.matcher,
            calibration=CalibrationConfig(
                min_level=calibration["min_level"],
                max_level=calibration["max_level"],
                advance_window=calibration["advance"]["window"],
                advance_min_f1=calibration["advance"]["min_f1"],
                advance_min_precision=calibration["advance"]["min_precision"],
                retreat_window=calibration["retreat"]["window"],
                retreat_max_f1=calibration["retreat"]["max_f1"],
                anchor_categories=tuple(calibration["anchors"]["categories"]),
                anchor_min_recall=calibration["anchors"]["min_recall"],
                anchor_gate_level=calibration["anchors"]["gate_level"],
            ),
            coverage=CoverageConfig(
                weak_threshold=coverage["weak_threshold"],
                strong_threshold=coverage["strong_threshold"],
                window=coverage["window"],
            ),
            selection=SelectionConfig(
                diversity_lookback=selection["diversity_lookback"],
                known_categories=tuple(selection["known_categories"]),
            ),
            reflection=ReflectionConfig(
                min_tokens=reflection["min_tokens"],
                denylist=tuple(reflection["denylist"]),
            ),
        )
