"""
Round state machine.

Each round moves through three phases:
    PENDING → EVALUATED → FINALIZED

- PENDING: waiting for a guess.
- EVALUATED: true feedback computed. Pure; safe to run on a worker thread.
- FINALIZED: deception decided, displayed feedback fixed, RoundRecord
  built and appended to the session. Runs on the orchestrator's thread.

Finalizing is one step: the deception roll, the fabricated score, the
record and the deception counter increment happen together or not at all.

Game over is judged on TRUE feedback. A lie can hide a win from the
player's eyes but never keeps the game running past it.

Usage:
    resolver = RoundResolver(state.next_round_number, secret, engine)
    resolver.evaluate(guess)
    record = resolver.finalize(state)
"""

from __future__ import annotations

from enum import Enum

from ..errors import ValidationError
from ..state.schema import (
    MAX_ROUNDS,
    CodeSequence,
    Feedback,
    Outcome,
    RoundRecord,
    SessionState,
)
from .deception import DeceptionEngine
from .feedback import compute


class RoundPhase(str, Enum):
    """Phase of a single round."""
    PENDING = "pending"
    EVALUATED = "evaluated"
    FINALIZED = "finalized"


VALID_TRANSITIONS: dict[RoundPhase, set[RoundPhase]] = {
    RoundPhase.PENDING: {RoundPhase.EVALUATED},
    RoundPhase.EVALUATED: {RoundPhase.FINALIZED},
    RoundPhase.FINALIZED: set(),
}


class InvalidRoundPhaseError(ValidationError):
    """Operation attempted in the wrong phase."""

    def __init__(self, current: RoundPhase, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} during {current.value} phase.")


class RoundResolver:
    """
    Drives one round from guess to finished record.

    Single use: once finalized it refuses further work.
    """

    def __init__(
        self,
        round_number: int,
        secret: CodeSequence,
        deception: DeceptionEngine,
    ):
        if round_number < 1:
            raise ValidationError("Round number must be positive")
        self.round_number = round_number
        self._secret = secret
        self._deception = deception
        self._phase = RoundPhase.PENDING
        self._guess: CodeSequence | None = None
        self._true_feedback: Feedback | None = None
        self._record: RoundRecord | None = None

    @property
    def phase(self) -> RoundPhase:
        return self._phase

    @property
    def true_feedback(self) -> Feedback | None:
        return self._true_feedback

    @property
    def record(self) -> RoundRecord | None:
        return self._record

    def _transition(self, to: RoundPhase) -> None:
        if to not in VALID_TRANSITIONS[self._phase]:
            raise InvalidRoundPhaseError(self._phase, f"transition to {to.value}")
        self._phase = to

    def evaluate(self, guess: CodeSequence) -> Feedback:
        """PENDING → EVALUATED. Scores the guess; touches no session state."""
        if self._phase != RoundPhase.PENDING:
            raise InvalidRoundPhaseError(self._phase, "evaluate")

        feedback = compute(self._secret, guess)
        self._guess = guess
        self._true_feedback = feedback
        self._transition(RoundPhase.EVALUATED)
        return feedback

    def finalize(self, state: SessionState) -> RoundRecord:
        """
        EVALUATED → FINALIZED.

        Applies deception within the session budget, builds the immutable
        record and appends it to ``state``.

        Raises:
            InvalidRoundPhaseError: if not EVALUATED
            ValidationError: if the round number no longer lines up with the
                session (another round was appended in between)
        """
        if self._phase != RoundPhase.EVALUATED:
            raise InvalidRoundPhaseError(self._phase, "finalize")
        if self.round_number != state.next_round_number:
            raise ValidationError(
                f"Round {self.round_number} is stale; session expects "
                f"{state.next_round_number}"
            )

        deceive = self._deception.should_deceive(
            state.deceptive_rounds_used,
            state.deceptive_rounds_allowed,
        )
        displayed = (
            self._deception.fabricate(self._true_feedback)
            if deceive
            else self._true_feedback
        )

        record = RoundRecord(
            round_number=self.round_number,
            guess=self._guess,
            true_feedback=self._true_feedback,
            is_deceptive=deceive,
            displayed_feedback=displayed,
        )

        state.append_round(record)
        if deceive:
            state.record_deception()

        self._record = record
        self._transition(RoundPhase.FINALIZED)
        return record


def is_game_over(rounds: list[RoundRecord], max_rounds: int = MAX_ROUNDS) -> bool:
    """Last round truly solved the code, or the round limit is reached."""
    if not rounds:
        return False
    if rounds[-1].true_feedback.is_solved:
        return True
    return len(rounds) >= max_rounds


def session_outcome(rounds: list[RoundRecord]) -> Outcome:
    """Won if the last round's true feedback solved the code."""
    if rounds and rounds[-1].true_feedback.is_solved:
        return Outcome.WON
    return Outcome.LOST
