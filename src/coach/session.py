"""
Assessment Session: the Challenge -> Attempt -> Compare -> Reflect loop.

Orchestration only:
- Difficulty -> src.adaptive.calibrator
- Category emphasis -> src.adaptive.coverage + src.adaptive.selector
- Scoring -> src.scoring.scorer
- Reflection check -> src.coach.reflection

Each SessionStateMachine owns its own state and history; nothing is shared
between sessions. The engine does no I/O. Fetching content and persisting
rounds happen in the caller, between calls.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from loguru import logger

from src.adaptive.calibrator import CalibrationDecision, DifficultyCalibrator
from src.adaptive.coverage import CategoryCoverageTracker
from src.adaptive.history import Round, RoundHistory
from src.adaptive.selector import ChallengeSelector, SelectionRequest
from src.coach.config import EngineConfig
from src.coach.provider import Challenge, ContentProvider, PresentedChallenge
from src.coach.reflection import ReflectionValidator
from src.core.errors import AssessmentError, InvalidSubmissionError, PhaseError
from src.core.findings import Finding, Matcher, get_matcher, parse_findings, validate_findings
from src.scoring.scorer import Scorecard, SubmissionScorer


class Phase(str, Enum):
    """Phases of the coaching cycle."""

    CHALLENGE = "challenge"
    ATTEMPT = "attempt"
    COMPARE = "compare"
    REFLECT = "reflect"

    @property
    def next(self) -> "Phase":
        phases = list(Phase)
        return phases[(phases.index(self) + 1) % len(phases)]


@dataclass
class SessionState:
    """Live state of one session. Ground truth is held by the machine, not here."""

    session_id: str
    current_phase: Phase = Phase.CHALLENGE
    current_difficulty: int = 1
    history: RoundHistory = field(default_factory=RoundHistory)


class SessionStateMachine:
    """
    Drives one learner through repeated CACR cycles.

    The cycle has no terminal state; a session ends when the caller stops
    calling it. Ground truth for the pending challenge is kept private and is
    only read by compare().
    """

    def __init__(
        self,
        provider: ContentProvider,
        matcher: Optional[Matcher] = None,
        config: Optional[EngineConfig] = None,
        history: Optional[RoundHistory] = None,
        session_id: Optional[str] = None,
        current_difficulty: Optional[int] = None,
    ):
        self.config = config or EngineConfig()
        self.provider = provider
        self.matcher = matcher or get_matcher(self.config.matcher)

        self._calibrator = DifficultyCalibrator(self.config.calibration)
        self._coverage = CategoryCoverageTracker(self.config.coverage)
        self._selector = ChallengeSelector(self.config.selection)
        self._reflection = ReflectionValidator(self.config.reflection)
        self._scorer = SubmissionScorer()

        difficulty = self.config.initial_difficulty if current_difficulty is None else current_difficulty
        self._state = SessionState(
            session_id=session_id or str(uuid.uuid4())[:8],
            current_difficulty=self._calibrator.clamp(difficulty),
            history=history if history is not None else RoundHistory(),
        )

        # Per-round working state
        self._pending_challenge: Optional[Challenge] = None
        self._submission: Optional[tuple[Finding, ...]] = None
        self._scorecard: Optional[Scorecard] = None
        self._round_tags: frozenset[str] = frozenset()
        self._round_challenge_id: Optional[str] = None

        self.last_decision: Optional[CalibrationDecision] = None
        self.last_request: Optional[SelectionRequest] = None

    @classmethod
    def resume(
        cls,
        provider: ContentProvider,
        rounds: Iterable[Round],
        matcher: Optional[Matcher] = None,
        config: Optional[EngineConfig] = None,
        session_id: Optional[str] = None,
    ) -> "SessionStateMachine":
        """Rebuild a session at the Challenge phase from persisted rounds."""
        history = RoundHistory.from_rounds(rounds)
        last = history.last_n(1)
        difficulty = last[0].difficulty_level if last else None
        logger.info(f"Resuming session with {len(history)} rounds at level {difficulty or 'initial'}")
        return cls(
            provider,
            matcher=matcher,
            config=config,
            history=history,
            session_id=session_id,
            current_difficulty=difficulty,
        )

    # =========================================================================
    # Read-only views
    # =========================================================================

    @property
    def session_id(self) -> str:
        return self._state.session_id

    @property
    def phase(self) -> Phase:
        return self._state.current_phase

    @property
    def current_difficulty(self) -> int:
        return self._state.current_difficulty

    @property
    def history(self) -> RoundHistory:
        return self._state.history

    @property
    def round_index(self) -> int:
        """Index of the round in progress (or about to start)."""
        return len(self._state.history)

    @property
    def has_pending_ground_truth(self) -> bool:
        return self._pending_challenge is not None

    @property
    def scorecard(self) -> Optional[Scorecard]:
        """Scorecard of the round awaiting reflection, if any."""
        return self._scorecard

    # =========================================================================
    # Phase operations
    # =========================================================================

    def challenge(self) -> PresentedChallenge:
        """
        Start a round: calibrate, pick category emphasis, fetch a challenge.

        Returns:
            The learner-facing challenge (no ground truth)

        Raises:
            PhaseError: outside the Challenge phase
            InvalidSubmissionError: if the provider's ground truth is malformed (session unchanged)
        """
        self._require(Phase.CHALLENGE, "challenge")
        history = self._state.history

        decision = self._calibrator.decide(history, self._state.current_difficulty)
        weak = self._coverage.weak_categories(history)
        strong = self._coverage.strong_categories(history)
        request = self._selector.select(decision.level, weak, strong, history, commit=False)

        challenge = self.provider.provide(request)
        try:
            validate_findings(challenge.ground_truth, "ground truth", unique_ids=True)
            validate_findings(challenge.false_positive_traps, "traps")
        except AssessmentError as e:
            raise e.with_context(self.phase.value, self.round_index)

        # Nothing changes until the challenge is known to be usable
        if decision.level != self._state.current_difficulty:
            logger.info(
                f"[{self.session_id}] Difficulty {decision.action.value}: "
                f"{self._state.current_difficulty} -> {decision.level} ({decision.reason})"
            )
        self._state.current_difficulty = decision.level
        self.last_decision = decision
        self._selector.commit()
        self.last_request = request
        self._pending_challenge = challenge
        self._advance()
        return PresentedChallenge(
            round_index=self.round_index,
            difficulty=decision.level,
            prompt_text=challenge.prompt_text,
            title=challenge.title,
            challenge_id=challenge.challenge_id,
            focus_categories=request.required_categories,
        )

    def attempt(self, submission: Iterable[Any]) -> None:
        """
        Store the learner's findings. Scoring waits for compare().

        Args:
            submission: Findings or finding records, in the learner's order

        Raises:
            PhaseError: outside the Attempt phase
            InvalidSubmissionError: if a finding is malformed (phase unchanged)
        """
        self._require(Phase.ATTEMPT, "attempt")
        try:
            findings = parse_findings(list(submission) if submission is not None else None)
        except AssessmentError as e:
            logger.warning(f"[{self.session_id}] Submission rejected: {e.message}")
            raise e.with_context(self.phase.value, self.round_index)
        except TypeError:
            raise InvalidSubmissionError(
                "Malformed submission",
                issues=["submission must be an iterable of findings"],
                phase=self.phase.value,
                round_index=self.round_index,
            )

        self._submission = tuple(findings)
        logger.debug(f"[{self.session_id}] Stored submission with {len(findings)} findings")
        self._advance()

    def compare(self) -> Scorecard:
        """
        Score the stored submission against the hidden ground truth.

        Calling again before reflect() returns the same Scorecard object.

        Raises:
            PhaseError: outside the Compare phase (or Reflect, for a repeat call)
        """
        if self.phase == Phase.REFLECT and self._scorecard is not None:
            return self._scorecard
        self._require(Phase.COMPARE, "compare")

        challenge = self._pending_challenge
        try:
            scorecard = self._scorer.score(
                self._submission or (),
                challenge.ground_truth,
                self.matcher,
                traps=challenge.false_positive_traps,
            )
        except AssessmentError as e:
            raise e.with_context(self.phase.value, self.round_index)

        self._scorecard = scorecard
        self._round_tags = challenge.categories
        self._round_challenge_id = challenge.challenge_id
        self._submission = None
        self._pending_challenge = None
        logger.info(
            f"[{self.session_id}] Round {self.round_index} scored: "
            f"F1={scorecard.f1:.2f} P={scorecard.precision:.2f} R={scorecard.recall:.2f}"
        )
        self._advance()
        return scorecard

    def reflect(self, reflection_text: str) -> Round:
        """
        Close the round with the learner's reflection.

        Returns:
            The sealed Round, now the last entry of the history

        Raises:
            PhaseError: outside the Reflect phase
            TrivialReflectionError: if the reflection is too short or generic
        """
        self._require(Phase.REFLECT, "reflect")
        try:
            text = self._reflection.validate(reflection_text)
        except AssessmentError as e:
            raise e.with_context(self.phase.value, self.round_index)

        round_ = Round(
            index=self.round_index,
            difficulty_level=self._state.current_difficulty,
            category_tags=self._round_tags,
            scorecard=self._scorecard,
            reflection_text=text,
            challenge_id=self._round_challenge_id,
        )
        self._state.history.append(round_)

        self._scorecard = None
        self._round_tags = frozenset()
        self._round_challenge_id = None
        logger.info(f"[{self.session_id}] Round {round_.index} sealed at level {round_.difficulty_level}")
        self._advance()
        return round_

    # =========================================================================
    # Reporting
    # =========================================================================

    def summary(self) -> dict[str, Any]:
        """Read-only snapshot for report renderers."""
        rounds = self._state.history.all()
        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "current_difficulty": self.current_difficulty,
            "rounds": len(rounds),
            "difficulty_trajectory": self._state.history.difficulty_trajectory(),
            "mean_f1": sum(r.f1 for r in rounds) / len(rounds) if rounds else None,
            "category_totals": self._state.history.category_totals(),
            "weak_categories": self._coverage.ranked_weak_categories(self._state.history),
            "strong_categories": sorted(self._coverage.strong_categories(self._state.history)),
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require(self, expected: Phase, operation: str) -> None:
        if self._state.current_phase != expected:
            raise PhaseError(
                operation,
                expected=expected.value,
                actual=self._state.current_phase.value,
                round_index=self.round_index,
            )

    def _advance(self) -> None:
        previous = self._state.current_phase
        self._state.current_phase = previous.next
        logger.debug(f"[{self.session_id}] Phase {previous.value} -> {self._state.current_phase.value}")
