"""
Exception hierarchy for the code-breaking core.

ValidationError deliberately does not subclass ValueError: pydantic only
wraps ValueError/AssertionError raised inside validators, so this error
reaches callers as-is when a model is built with bad data.
"""

from enum import Enum


class MastermindError(Exception):
    """Base class for all game errors."""
    pass


class ValidationError(MastermindError):
    """
    Internal invariant violated.

    Raised for malformed codes or feedback, out-of-range counters and
    role mix-ups. Indicates a caller that bypassed input validation; it is
    never expected from the player-facing path.
    """
    pass


class GuessRejection(str, Enum):
    """Why raw player text could not be decoded into a guess."""
    LENGTH = "length"
    NON_NUMERIC = "non-numeric"
    RANGE = "range"


class InvalidGuessError(MastermindError):
    """Player typed something that is not a valid guess. Recoverable."""

    def __init__(self, reason: GuessRejection, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


class AsyncComputationError(MastermindError):
    """Background scoring failed. The round is not advanced."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Error during feedback calculation: {cause!r}")
