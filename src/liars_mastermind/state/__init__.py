"""State, schemas and persistence for Liar's Mastermind."""

from .schema import (
    CODE_LENGTH,
    DECEPTIVE_ROUNDS_ALLOWED,
    MAX_DIGIT,
    MAX_ROUNDS,
    MIN_DIGIT,
    CodeRole,
    CodeSequence,
    Feedback,
    Outcome,
    RoundRecord,
    SessionHistoryRecord,
    SessionState,
    decode_guess,
    generate_secret,
    make_code,
    make_guess,
    make_secret,
)
from .store import (
    GameHistoryStore,
    MemoryHistoryStore,
    TextHistoryStore,
    filter_by_outcome,
    format_record,
    parse_history,
)
from .event_bus import (
    EventBus,
    EventType,
    GameEvent,
    get_event_bus,
    reset_event_bus,
)

__all__ = [
    # Schema
    "CODE_LENGTH",
    "DECEPTIVE_ROUNDS_ALLOWED",
    "MAX_DIGIT",
    "MAX_ROUNDS",
    "MIN_DIGIT",
    "CodeRole",
    "CodeSequence",
    "Feedback",
    "Outcome",
    "RoundRecord",
    "SessionHistoryRecord",
    "SessionState",
    "decode_guess",
    "generate_secret",
    "make_code",
    "make_guess",
    "make_secret",
    # Store
    "GameHistoryStore",
    "MemoryHistoryStore",
    "TextHistoryStore",
    "filter_by_outcome",
    "format_record",
    "parse_history",
    # Event Bus
    "EventBus",
    "EventType",
    "GameEvent",
    "get_event_bus",
    "reset_event_bus",
]
