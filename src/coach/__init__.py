"""
Coach: the interactive Challenge -> Attempt -> Compare -> Reflect loop.

Components:
- session: SessionStateMachine driving the four-phase cycle
- provider: Challenge type, ContentProvider protocol, file-backed ChallengeBank
- reflection: Non-genericity check for end-of-round reflections
- config: EngineConfig bundling every threshold for a session
"""

from .config import EngineConfig
from .provider import Challenge, ChallengeBank, ContentProvider, PresentedChallenge
from .reflection import ReflectionConfig, ReflectionValidator
from .session import Phase, SessionState, SessionStateMachine

__all__ = [
    "SessionStateMachine",
    "SessionState",
    "Phase",
    "EngineConfig",
    "Challenge",
    "ChallengeBank",
    "ContentProvider",
    "PresentedChallenge",
    "ReflectionConfig",
    "ReflectionValidator",
]
