"""
Schema contracts for the round loop's input side.

    raw text → parse_player_input() → PlayerAction

PlayerAction is a tagged union of GuessAction, ScanRequest and
SummaryRequest, discriminated by ``kind``.
"""

from .action import (
    GUESS_SUMMARY_TOKEN,
    TRUTH_SCAN_TOKEN,
    GuessAction,
    PlayerAction,
    ScanRequest,
    SummaryRequest,
    parse_player_input,
    parse_round_number,
    parse_yes_no,
)

__all__ = [
    "GUESS_SUMMARY_TOKEN",
    "TRUTH_SCAN_TOKEN",
    "GuessAction",
    "PlayerAction",
    "ScanRequest",
    "SummaryRequest",
    "parse_player_input",
    "parse_round_number",
    "parse_yes_no",
]
