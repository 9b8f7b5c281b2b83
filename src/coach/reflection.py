"""
Reflection check: rejects reflections that are too short or generic.

A reflection closes every round. "Be more careful" tells the learner nothing
about what they missed, so generic advice is only accepted when enough
specific content surrounds it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from src.core.errors import TrivialReflectionError


DEFAULT_DENYLIST = (
    "be more careful",
    "look harder",
    "try harder",
    "pay more attention",
    "do better",
    "be more thorough",
    "read more carefully",
    "double check",
    "slow down",
)

TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9'\-]*")


@dataclass
class ReflectionConfig:
    """Configuration for reflection acceptance."""

    min_tokens: int = 8
    denylist: tuple[str, ...] = DEFAULT_DENYLIST


def tokenize(text: str) -> list[str]:
    return TOKEN_PATTERN.findall(text.lower())


class ReflectionValidator:
    """Checks that a reflection says something specific."""

    def __init__(self, config: Optional[ReflectionConfig] = None):
        self.config = config or ReflectionConfig()
        self._phrases = [
            re.compile(r"\b" + r"\s+".join(map(re.escape, tokenize(phrase))) + r"\b")
            for phrase in self.config.denylist
            if tokenize(phrase)
        ]

    def rejection_reason(self, text: Optional[str]) -> Optional[str]:
        """Why the reflection would be rejected, or None if it is acceptable."""
        if not isinstance(text, str):
            return "reflection must be text"

        tokens = tokenize(text)
        if len(tokens) < self.config.min_tokens:
            return f"too short ({len(tokens)} words, need at least {self.config.min_tokens})"

        normalized = " ".join(tokens)
        if not any(p.search(normalized) for p in self._phrases):
            return None

        remainder = normalized
        for phrase in self._phrases:
            remainder = phrase.sub(" ", remainder)
        specific = remainder.split()
        if len(specific) < self.config.min_tokens:
            generic = [phrase for phrase in self.config.denylist if _contains(normalized, phrase)]
            return f"generic advice ({'; '.join(generic)}) without specifics"
        return None

    def is_acceptable(self, text: Optional[str]) -> bool:
        return self.rejection_reason(text) is None

    def validate(self, text: Optional[str]) -> str:
        """
        Return the stripped reflection text.

        Raises:
            TrivialReflectionError: if the reflection is too short or generic
        """
        reason = self.rejection_reason(text)
        if reason:
            logger.warning(f"Reflection rejected: {reason}")
            raise TrivialReflectionError(reason)
        return text.strip()


def _contains(normalized: str, phrase: str) -> bool:
    words = " ".join(tokenize(phrase))
    return bool(words) and re.search(r"\b" + re.escape(words) + r"\b", normalized) is not None
