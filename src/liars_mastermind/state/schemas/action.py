"""
Player action schemas.

Everything the player can do on their turn is one of three actions:

    GuessAction | ScanRequest | SummaryRequest

Only a GuessAction consumes a round. Scan and summary requests are
answered immediately and leave the round counter alone.

parse_player_input() is the one place raw text becomes an action.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ..schema import CodeSequence, decode_guess


# Reserved tokens, matched case-insensitively
TRUTH_SCAN_TOKEN = "t"
GUESS_SUMMARY_TOKEN = "g"


class GuessAction(BaseModel):
    """A decoded, valid guess."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["guess"] = "guess"
    code: CodeSequence


class ScanRequest(BaseModel):
    """Player wants to spend the truth scan."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["scan"] = "scan"


class SummaryRequest(BaseModel):
    """Player wants to see their guesses so far."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["summary"] = "summary"


PlayerAction = Annotated[
    Union[GuessAction, ScanRequest, SummaryRequest],
    Field(discriminator="kind"),
]


def parse_player_input(raw: str) -> PlayerAction:
    """
    Turn one line of player input into an action.

    Raises:
        InvalidGuessError: if the text is neither a reserved token nor a valid guess
    """
    text = (raw or "").strip()
    lowered = text.lower()

    if lowered == TRUTH_SCAN_TOKEN:
        return ScanRequest()
    if lowered == GUESS_SUMMARY_TOKEN:
        return SummaryRequest()

    return GuessAction(code=decode_guess(text))


def parse_yes_no(raw: str) -> bool | None:
    """'yes' -> True, 'no' -> False, anything else -> None (ask again)."""
    answer = (raw or "").strip().lower()
    if answer == "yes":
        return True
    if answer == "no":
        return False
    return None


def parse_round_number(raw: str, upper: int) -> int | None:
    """Round number in [1, upper], or None if the text isn't one."""
    text = (raw or "").strip()
    if not text.isascii() or not text.isdigit():
        return None
    number = int(text)
    if 1 <= number <= upper:
        return number
    return None
