"""
Feedback evaluator.

Pure function: compute(secret, guess) -> Feedback.
No state, no side effects, no randomness.

Misplaced digits are counted by multiset overlap of the positions that
were not exact matches, so every digit is consumed at most once:

    secret 1122 / guess 2211 -> exact 0, misplaced 4
    secret 1234 / guess 1356 -> exact 1, misplaced 1
"""

from collections import Counter

from ..errors import ValidationError
from ..state.schema import CODE_LENGTH, CodeRole, CodeSequence, Feedback


def compute(secret: CodeSequence, guess: CodeSequence) -> Feedback:
    """
    Score a guess against the secret.

    Raises:
        ValidationError: if either code has the wrong length, or the
            roles are swapped
    """
    if secret.role != CodeRole.SECRET:
        raise ValidationError("First argument must be the secret")
    if guess.role != CodeRole.GUESS:
        raise ValidationError("Second argument must be a guess")
    if len(secret.digits) != CODE_LENGTH or len(guess.digits) != CODE_LENGTH:
        raise ValidationError(f"Both codes must have {CODE_LENGTH} digits")

    exact = 0
    secret_left: Counter[int] = Counter()
    guess_left: list[int] = []

    for s, g in zip(secret.digits, guess.digits):
        if s == g:
            exact += 1
        else:
            secret_left[s] += 1
            guess_left.append(g)

    misplaced = 0
    for digit in guess_left:
        if secret_left[digit] > 0:
            secret_left[digit] -= 1
            misplaced += 1

    return Feedback(exact_positions=exact, misplaced=misplaced)
