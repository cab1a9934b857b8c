"""
Deception engine.

Decides whether a round's displayed feedback is a lie, and makes up the
lie. The per-session budget lives in SessionState; the engine only reads
the counts it is given.

Fabricated feedback is always a score that some real secret could
produce: a random secret is scored against a fixed reference guess until
the result differs from the truth. The retry loop is capped, and the
fallback walks the code space in order, which always reaches a different
score.
"""

import itertools
import random

from ..errors import ValidationError
from ..state.schema import (
    CODE_LENGTH,
    MAX_DIGIT,
    MIN_DIGIT,
    Feedback,
    generate_secret,
    make_guess,
    make_secret,
)
from .feedback import compute

DECEPTION_CHANCE = 0.3
MAX_FABRICATION_ATTEMPTS = 64

# Every fabricated score is measured from this guess
REFERENCE_GUESS = make_guess([1, 2, 3, 4])


class DeceptionEngine:
    """
    Random source for deception decisions.

    Pass a seeded random.Random for reproducible games and tests.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        chance: float = DECEPTION_CHANCE,
        max_attempts: int = MAX_FABRICATION_ATTEMPTS,
    ):
        if not 0.0 <= chance <= 1.0:
            raise ValidationError(f"Deception chance must be in [0, 1], got {chance}")
        self.rng = rng or random.Random()
        self.chance = chance
        self.max_attempts = max_attempts

    def should_deceive(self, used: int, allowed: int) -> bool:
        """
        Roll for deception.

        Never true once the budget is spent, whatever the random draw.

        Raises:
            ValidationError: if either count is negative or used > allowed
        """
        if used < 0:
            raise ValidationError("Deceptive rounds used cannot be negative")
        if allowed < 0:
            raise ValidationError("Deceptive rounds allowed cannot be negative")
        if used > allowed:
            raise ValidationError("Used rounds cannot exceed allowed rounds")

        if used >= allowed:
            return False
        return self.rng.random() < self.chance

    def fabricate(self, true_feedback: Feedback) -> Feedback:
        """Plausible feedback guaranteed to differ from ``true_feedback``."""
        for _ in range(self.max_attempts):
            candidate = compute(generate_secret(self.rng), REFERENCE_GUESS)
            if candidate != true_feedback:
                return candidate
        return _first_distinct(true_feedback)


def _first_distinct(true_feedback: Feedback) -> Feedback:
    digits = range(MIN_DIGIT, MAX_DIGIT + 1)
    for combo in itertools.product(digits, repeat=CODE_LENGTH):
        candidate = compute(make_secret(combo), REFERENCE_GUESS)
        if candidate != true_feedback:
            return candidate
    # Unreachable: 1111 scores (1, 0) and 1234 scores (4, 0)
    raise ValidationError(f"No feedback distinct from {true_feedback}")
