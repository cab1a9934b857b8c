"""
Game systems for Liar's Mastermind.

Leaves first:
- feedback: exact/misplaced scoring
- deception: when to lie and what to say
- rounds: per-round state machine and game-over rule
- truth_scan: the once-per-session scan
- orchestrator: session lifecycle and round loop
"""

from .feedback import compute
from .deception import DECEPTION_CHANCE, REFERENCE_GUESS, DeceptionEngine
from .rounds import (
    InvalidRoundPhaseError,
    RoundPhase,
    RoundResolver,
    is_game_over,
    session_outcome,
)
from .truth_scan import ScanOutcome, ScanStatus, TruthScanner
from .orchestrator import GameOrchestrator, PlayerInput

__all__ = [
    "compute",
    "DECEPTION_CHANCE",
    "REFERENCE_GUESS",
    "DeceptionEngine",
    "InvalidRoundPhaseError",
    "RoundPhase",
    "RoundResolver",
    "is_game_over",
    "session_outcome",
    "ScanOutcome",
    "ScanStatus",
    "TruthScanner",
    "GameOrchestrator",
    "PlayerInput",
]
