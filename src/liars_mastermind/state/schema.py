"""
Pydantic models for Liar's Mastermind game state.

Codes, feedback and finished rounds are frozen value objects. SessionState
is the only mutable model and belongs to the orchestrator for exactly one
session. SessionHistoryRecord is what ends up in the history log.
"""

import random
import re
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import Iterable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..errors import GuessRejection, InvalidGuessError, ValidationError


# -----------------------------------------------------------------------------
# Game constants
# -----------------------------------------------------------------------------

CODE_LENGTH = 4
MIN_DIGIT = 1
MAX_DIGIT = 6
MAX_ROUNDS = 12
DECEPTIVE_ROUNDS_ALLOWED = 3

# Round-detail lines in the history log must look like this
ROUND_DETAIL_PATTERN = re.compile(r"^Round \d+:.*$")


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class CodeRole(str, Enum):
    """What a code is for. Same shape, never interchangeable."""
    SECRET = "secret"
    GUESS = "guess"


class Outcome(str, Enum):
    WON = "Won"
    LOST = "Lost"

    @classmethod
    def parse(cls, text: str) -> "Outcome | None":
        """Case-insensitive lookup. Returns None for anything else."""
        cleaned = text.strip().lower()
        for outcome in cls:
            if outcome.value.lower() == cleaned:
                return outcome
        return None


# -----------------------------------------------------------------------------
# Codes
# -----------------------------------------------------------------------------

@total_ordering
class CodeSequence(BaseModel):
    """
    Exactly CODE_LENGTH digits, each in [MIN_DIGIT, MAX_DIGIT].

    Equality, hashing and ordering look at the digits only. The role tag
    exists so the evaluator can refuse a secret/guess swap; it never
    changes behaviour otherwise.
    """
    model_config = ConfigDict(frozen=True)

    digits: tuple[int, ...]
    role: CodeRole

    @field_validator("digits", mode="before")
    @classmethod
    def _check_digits(cls, value):
        if value is None:
            raise ValidationError("Digits cannot be absent")
        try:
            digits = tuple(value)
        except TypeError:
            raise ValidationError(f"Digits must be a sequence, got {type(value).__name__}")

        if len(digits) != CODE_LENGTH:
            raise ValidationError(
                f"Code must have exactly {CODE_LENGTH} digits, got {len(digits)}"
            )
        for digit in digits:
            # bool is an int subclass; True is not a digit
            if isinstance(digit, bool) or not isinstance(digit, int):
                raise ValidationError(f"Invalid code digit: {digit!r}")
            if not MIN_DIGIT <= digit <= MAX_DIGIT:
                raise ValidationError(f"Invalid code digit: {digit}")
        return digits

    def __eq__(self, other) -> bool:
        if not isinstance(other, CodeSequence):
            return NotImplemented
        return self.digits == other.digits

    def __lt__(self, other) -> bool:
        if not isinstance(other, CodeSequence):
            return NotImplemented
        return self.digits < other.digits

    def __hash__(self) -> int:
        return hash(self.digits)

    def __str__(self) -> str:
        return "".join(str(d) for d in self.digits)


def make_code(digits: Iterable[int] | None, role: CodeRole) -> CodeSequence:
    """Build a validated code. Raises ValidationError on bad digits."""
    return CodeSequence(digits=digits, role=role)


def make_secret(digits: Iterable[int]) -> CodeSequence:
    return make_code(digits, CodeRole.SECRET)


def make_guess(digits: Iterable[int]) -> CodeSequence:
    return make_code(digits, CodeRole.GUESS)


def decode_guess(raw: str) -> CodeSequence:
    """
    Parse a guess from raw player text.

    Checks run in order: length, then non-numeric characters, then range.
    The text is taken as-is; trimming is the caller's job.

    Raises:
        InvalidGuessError: with reason LENGTH, NON_NUMERIC or RANGE
    """
    if raw is None or len(raw) != CODE_LENGTH:
        got = 0 if raw is None else len(raw)
        raise InvalidGuessError(
            GuessRejection.LENGTH,
            f"Invalid input length. Expected {CODE_LENGTH} digits, but got {got}.",
        )

    for position, char in enumerate(raw, start=1):
        if char not in "0123456789":
            raise InvalidGuessError(
                GuessRejection.NON_NUMERIC,
                f"Invalid character '{char}' at position {position}. "
                f"Only digits {MIN_DIGIT}-{MAX_DIGIT} are allowed.",
            )

    for position, char in enumerate(raw, start=1):
        if not MIN_DIGIT <= int(char) <= MAX_DIGIT:
            raise InvalidGuessError(
                GuessRejection.RANGE,
                f"Digit '{char}' at position {position} is out of range. "
                f"Only digits {MIN_DIGIT}-{MAX_DIGIT} are allowed.",
            )

    return make_guess(int(char) for char in raw)


def generate_secret(rng: random.Random | None = None) -> CodeSequence:
    """Random secret; digits are independent so repeats are allowed."""
    rng = rng or random.Random()
    return make_secret(rng.randint(MIN_DIGIT, MAX_DIGIT) for _ in range(CODE_LENGTH))


# -----------------------------------------------------------------------------
# Feedback & rounds
# -----------------------------------------------------------------------------

class Feedback(BaseModel):
    """
    Score of one guess against the secret.

    Only systems.feedback.compute() should build these.
    """
    model_config = ConfigDict(frozen=True)

    exact_positions: int
    misplaced: int

    @model_validator(mode="after")
    def _check_counts(self) -> "Feedback":
        if self.exact_positions < 0:
            raise ValidationError("Correct position count cannot be negative")
        if self.misplaced < 0:
            raise ValidationError("Misplaced count cannot be negative")
        if self.exact_positions + self.misplaced > CODE_LENGTH:
            raise ValidationError(
                f"Feedback total {self.exact_positions + self.misplaced} "
                f"exceeds code length {CODE_LENGTH}"
            )
        return self

    @property
    def is_solved(self) -> bool:
        return self.exact_positions == CODE_LENGTH

    def describe(self) -> str:
        return f"Correct positions: {self.exact_positions}, Misplaced: {self.misplaced}"

    def __str__(self) -> str:
        return self.describe()


class RoundRecord(BaseModel):
    """
    One finalized round. Built once by the round resolver, never changed.

    displayed_feedback equals true_feedback unless the round is deceptive,
    in which case the two always differ.
    """
    model_config = ConfigDict(frozen=True)

    round_number: int
    guess: CodeSequence
    true_feedback: Feedback
    is_deceptive: bool
    displayed_feedback: Feedback

    @model_validator(mode="after")
    def _check_round(self) -> "RoundRecord":
        if self.round_number < 1:
            raise ValidationError("Round number must be positive")
        if self.guess.role != CodeRole.GUESS:
            raise ValidationError("Round guess must be a guess-role code")
        if self.is_deceptive and self.displayed_feedback == self.true_feedback:
            raise ValidationError("Deceptive round must display altered feedback")
        if not self.is_deceptive and self.displayed_feedback != self.true_feedback:
            raise ValidationError("Honest round must display its true feedback")
        return self

    def summary_line(self, truth_revealed: bool = False) -> str:
        """
        The line used in guess summaries and the history log.

        A revealed deceptive round shows its real score instead of the lie.
        """
        prefix = f"Round {self.round_number}: Guess = {self.guess}, "
        if self.is_deceptive and truth_revealed:
            return f"{prefix}Actual Feedback: {self.true_feedback} (Truth Revealed)"
        return f"{prefix}{self.displayed_feedback}"


class SessionState(BaseModel):
    """
    Per-session mutable state.

    Created fresh for every session and thrown away when it ends.
    """
    id: str = Field(default_factory=lambda: str(uuid4())[:8])
    started_at: datetime = Field(default_factory=datetime.now)
    rounds: list[RoundRecord] = Field(default_factory=list)
    deceptive_rounds_used: int = 0
    deceptive_rounds_allowed: int = DECEPTIVE_ROUNDS_ALLOWED
    truth_scan_used: bool = False
    revealed_round: int | None = None  # Round whose truth a scan exposed
    truth_scan_info: str | None = None  # History description of the scan

    @property
    def round_count(self) -> int:
        return len(self.rounds)

    @property
    def next_round_number(self) -> int:
        return len(self.rounds) + 1

    @property
    def last_round(self) -> RoundRecord | None:
        return self.rounds[-1] if self.rounds else None

    def get_round(self, round_number: int) -> RoundRecord:
        if not 1 <= round_number <= len(self.rounds):
            raise ValidationError(
                f"Round {round_number} is outside 1-{len(self.rounds)}"
            )
        return self.rounds[round_number - 1]

    def append_round(self, record: RoundRecord) -> None:
        """Append keeping numbering gapless and 1-indexed."""
        if record.round_number != self.next_round_number:
            raise ValidationError(
                f"Expected round {self.next_round_number}, got {record.round_number}"
            )
        self.rounds.append(record)

    def record_deception(self) -> None:
        if self.deceptive_rounds_used >= self.deceptive_rounds_allowed:
            raise ValidationError(
                f"Deception budget of {self.deceptive_rounds_allowed} already spent"
            )
        self.deceptive_rounds_used += 1

    def summary_lines(self) -> list[str]:
        return [
            r.summary_line(truth_revealed=(r.round_number == self.revealed_round))
            for r in self.rounds
        ]


# -----------------------------------------------------------------------------
# Persisted history
# -----------------------------------------------------------------------------

def _require_single_line(text: str, what: str) -> None:
    """Text written as one log line must read back as that same line."""
    if text.splitlines() != [text] or text != text.strip():
        raise ValidationError(f"{what} must be a single trimmed line: {text!r}")


class SessionHistoryRecord(BaseModel):
    """One finished session as stored in the history log."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    round_details: tuple[str, ...]
    truth_scan_info: str | None = None
    outcome: Outcome

    @field_validator("round_details", mode="before")
    @classmethod
    def _check_round_details(cls, value):
        details = tuple(value or ())
        if not details:
            raise ValidationError("A history record needs at least one round")
        for line in details:
            if not isinstance(line, str) or not ROUND_DETAIL_PATTERN.fullmatch(line):
                raise ValidationError(f"Not a round-detail line: {line!r}")
            _require_single_line(line, "Round detail")
        return details

    @field_validator("truth_scan_info", mode="before")
    @classmethod
    def _check_scan_info(cls, value):
        if isinstance(value, str):
            if not value.strip():
                return None
            _require_single_line(value, "Truth scan info")
        return value

    @field_validator("outcome", mode="before")
    @classmethod
    def _parse_outcome(cls, value):
        if isinstance(value, Outcome):
            return value
        outcome = Outcome.parse(value) if isinstance(value, str) else None
        if outcome is None:
            raise ValidationError(f"Outcome must be Won or Lost, got {value!r}")
        return outcome

    def describe(self) -> str:
        """Human-readable block for the history viewer."""
        lines = [f"Timestamp: {self.timestamp.isoformat()}", "Rounds:"]
        lines.extend(f"  {detail}" for detail in self.round_details)
        if self.truth_scan_info:
            lines.append(f"Truth Scan: {self.truth_scan_info}")
        lines.append(f"Outcome: {self.outcome.value}")
        return "\n".join(lines)
