"""
Event bus for game lifecycle notifications.

Keeps the orchestrator ignorant of how anything is displayed. The CLI
renderer subscribes on start-up; tests read the bus history instead.

Usage:
    from .event_bus import get_event_bus, EventType

    bus = get_event_bus()
    bus.on(EventType.ROUND_FINALIZED, show_feedback)

    # Orchestrator side
    bus.emit(EventType.ROUND_FINALIZED, session_id=state.id, round_number=3, ...)

    def show_feedback(event: GameEvent):
        print(event.data["displayed"])
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Game events that can be published."""

    # Session events
    RULES_REQUESTED = "session.rules_requested"
    SESSION_STARTED = "session.started"
    SESSION_ENDED = "session.ended"

    # Round events
    ROUND_STARTED = "round.started"
    ROUND_FINALIZED = "round.finalized"
    ROUND_FAILED = "round.failed"
    INPUT_REJECTED = "input.rejected"

    # Player requests
    TRUTH_SCAN = "scan.resolved"
    GUESS_SUMMARY = "summary.shown"

    # Persistence
    HISTORY_SAVED = "history.saved"
    HISTORY_SAVE_FAILED = "history.save_failed"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        session_id: ID of the session this event belongs to
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    session_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners run immediately inside emit(), on the emitting thread.
    No priorities, no async, no middleware.
    """

    def __init__(self, history_limit: int = 200):
        self._listeners: defaultdict[EventType, list[EventHandler]] = defaultdict(list)
        self._history: deque[GameEvent] = deque(maxlen=history_limit)

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to an event type. Subscribing twice is a no-op."""
        if handler not in self._listeners[event_type]:
            self._listeners[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        handlers = self._listeners.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_type: EventType, session_id: str = "", **data) -> GameEvent:
        """
        Emit an event to all subscribers.

        Args:
            event_type: The type of event
            session_id: Session context (optional)
            **data: Event-specific data

        Returns:
            The emitted GameEvent
        """
        event = GameEvent(type=event_type, data=data, session_id=session_id)

        self._history.append(event)  # Oldest falls off at the limit

        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception:
                # One bad listener shouldn't break the others
                logger.exception("Error in handler for %s", event_type.value)

        return event

    def clear(self) -> None:
        """Drop all listeners and history."""
        self._listeners.clear()
        self._history.clear()

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        return len(self._listeners.get(event_type, []))


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Process-wide default bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Forget the default bus. Useful for testing."""
    global _event_bus
    _event_bus = None
