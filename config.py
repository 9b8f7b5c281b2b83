"""
Configuration settings for the CACR assessment engine.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is prefixed with CACR_ (e.g. CACR_ADVANCE_MIN_F1=0.8).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CACR_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Difficulty
    # ========================================
    initial_difficulty: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Difficulty level of a fresh session's first challenge",
    )
    min_difficulty: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Lowest difficulty level",
    )
    max_difficulty: int = Field(
        default=5,
        ge=1,
        le=5,
        description="Highest difficulty level",
    )

    # ========================================
    # Calibration: advance / retreat
    # ========================================
    advance_window: int = Field(
        default=3,
        ge=1,
        description="Consecutive rounds at the current level needed to advance",
    )
    advance_min_f1: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Minimum F1 in every round of the advance window",
    )
    advance_min_precision: float = Field(
        default=0.60,
        ge=0.0,
        le=1.0,
        description="Minimum precision in every round of the advance window",
    )
    retreat_window: int = Field(
        default=2,
        ge=1,
        description="Consecutive rounds at the current level that trigger a retreat",
    )
    retreat_max_f1: float = Field(
        default=0.30,
        ge=0.0,
        le=1.0,
        description="F1 below this in every round of the retreat window lowers difficulty",
    )

    # ========================================
    # Calibration: anchor categories
    # ========================================
    anchor_categories: str = Field(
        default="access-control,injection,crypto",
        description="Comma-separated foundational categories that gate advancement",
    )
    anchor_min_recall: float = Field(
        default=0.50,
        ge=0.0,
        le=1.0,
        description="Recall each anchor category must reach once in the advance window",
    )
    anchor_gate_level: int = Field(
        default=3,
        ge=1,
        description="Advancing from this level upward requires the anchor categories",
    )

    # ========================================
    # Category coverage
    # ========================================
    coverage_weak_threshold: float = Field(
        default=0.40,
        ge=0.0,
        le=1.0,
        description="Mean recall below this marks a category weak",
    )
    coverage_strong_threshold: float = Field(
        default=0.80,
        ge=0.0,
        le=1.0,
        description="Mean recall at or above this marks a category strong",
    )
    coverage_window: int = Field(
        default=3,
        ge=1,
        description="Appearances needed before a category is judged weak or strong",
    )

    # ========================================
    # Challenge selection
    # ========================================
    diversity_lookback: int = Field(
        default=2,
        ge=0,
        description="Rounds a category must be absent from to be picked for diversity",
    )
    known_categories: str = Field(
        default=(
            "access-control,injection,crypto,authentication,"
            "input-validation,secrets-management,error-handling"
        ),
        description="Comma-separated category catalogue used for diversity picks",
    )
    matcher: Literal["id", "location", "location_category"] = Field(
        default="location_category",
        description="Built-in matcher used to pair submitted and ground-truth findings",
    )

    # ========================================
    # Reflection
    # ========================================
    reflection_min_tokens: int = Field(
        default=8,
        ge=1,
        description="Minimum words in an accepted reflection",
    )
    reflection_denylist: str = Field(
        default=(
            "be more careful,look harder,try harder,pay more attention,do better,"
            "be more thorough,read more carefully,double check,slow down"
        ),
        description="Comma-separated generic phrases that need specifics around them",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def get_calibration_config(self) -> dict[str, Any]:
        """Get difficulty calibration configuration as a dictionary."""
        return {
            "min_level": self.min_difficulty,
            "max_level": self.max_difficulty,
            "advance": {
                "window": self.advance_window,
                "min_f1": self.advance_min_f1,
                "min_precision": self.advance_min_precision,
            },
            "retreat": {
                "window": self.retreat_window,
                "max_f1": self.retreat_max_f1,
            },
            "anchors": {
                "categories": _split(self.anchor_categories),
                "min_recall": self.anchor_min_recall,
                "gate_level": self.anchor_gate_level,
            },
        }

    def get_coverage_config(self) -> dict[str, Any]:
        """Get category coverage configuration as a dictionary."""
        return {
            "weak_threshold": self.coverage_weak_threshold,
            "strong_threshold": self.coverage_strong_threshold,
            "window": self.coverage_window,
        }

    def get_selection_config(self) -> dict[str, Any]:
        """Get challenge selection configuration as a dictionary."""
        return {
            "diversity_lookback": self.diversity_lookback,
            "known_categories": _split(self.known_categories),
        }

    def get_reflection_config(self) -> dict[str, Any]:
        """Get reflection check configuration as a dictionary."""
        return {
            "min_tokens": self.reflection_min_tokens,
            "denylist": [p.lower() for p in _split(self.reflection_denylist)],
        }


def _split(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
