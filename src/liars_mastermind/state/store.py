"""
Game history storage.

Separates persistence from the game loop for testability. The on-disk
format is plain text, one self-delimiting block per finished session:

    === GAME START ===
    Timestamp: 2025-04-02T19:22:10.513000
    Rounds:
      Round 1: Guess = 1234, Correct positions: 1, Misplaced: 2
      ...
    Truth Scan: Used in Round 4, targeting Round 2 (Not Deceptive)
    Outcome: Won
    === GAME END ===

The log is append-only and read back tolerantly: a damaged block is
dropped with a warning and parsing carries on with the next one.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .schema import ROUND_DETAIL_PATTERN, Outcome, SessionHistoryRecord

logger = logging.getLogger(__name__)


GAME_START_MARKER = "=== GAME START ==="
GAME_END_MARKER = "=== GAME END ==="
TIMESTAMP_PREFIX = "Timestamp: "
ROUNDS_HEADER = "Rounds:"
TRUTH_SCAN_PREFIX = "Truth Scan: "
OUTCOME_PREFIX = "Outcome: "
ROUND_INDENT = "  "

DEFAULT_HISTORY_FILE = Path("data") / "mastermind_history.txt"


# -----------------------------------------------------------------------------
# Codec
# -----------------------------------------------------------------------------

def format_record(record: SessionHistoryRecord) -> str:
    """Render one record as a complete block, trailing blank line included."""
    lines = [
        GAME_START_MARKER,
        TIMESTAMP_PREFIX + record.timestamp.isoformat(),
        ROUNDS_HEADER,
    ]
    lines.extend(ROUND_INDENT + detail for detail in record.round_details)
    if record.truth_scan_info:
        lines.append(TRUTH_SCAN_PREFIX + record.truth_scan_info)
    lines.append(OUTCOME_PREFIX + record.outcome.value)
    lines.append(GAME_END_MARKER)
    return "\n".join(lines) + "\n\n"


class _RecordBuffer:
    """Fields collected between a start marker and an end marker."""

    def __init__(self):
        self.timestamp: datetime | None = None
        self.round_details: list[str] = []
        self.truth_scan_info: str | None = None
        self.outcome: Outcome | None = None

    @property
    def is_complete(self) -> bool:
        return (
            self.timestamp is not None
            and bool(self.round_details)
            and self.outcome is not None
        )

    def feed(self, line: str) -> None:
        if line.startswith(TIMESTAMP_PREFIX):
            raw = line[len(TIMESTAMP_PREFIX):]
            try:
                self.timestamp = datetime.fromisoformat(raw)
            except ValueError:
                logger.warning("Could not parse timestamp: %s", line)
                self.timestamp = None
        elif ROUND_DETAIL_PATTERN.match(line):
            self.round_details.append(line)
        elif line.startswith(TRUTH_SCAN_PREFIX):
            self.truth_scan_info = line[len(TRUTH_SCAN_PREFIX):] or None
        elif line.startswith(OUTCOME_PREFIX):
            raw = line[len(OUTCOME_PREFIX):]
            self.outcome = Outcome.parse(raw)
            if self.outcome is None:
                logger.warning("Invalid outcome found: %s", raw)

    def build(self) -> SessionHistoryRecord | None:
        if not self.is_complete:
            return None
        try:
            return SessionHistoryRecord(
                timestamp=self.timestamp,
                round_details=self.round_details,
                truth_scan_info=self.truth_scan_info,
                outcome=self.outcome,
            )
        except (ValidationError, PydanticValidationError) as e:
            logger.warning("Discarding unreadable game record: %s", e)
            return None


def parse_history(
    lines: Iterable[str],
    into: list[SessionHistoryRecord] | None = None,
) -> list[SessionHistoryRecord]:
    """
    Parse history text line by line.

    Records are appended to ``into`` as soon as their end marker is read,
    so a caller whose line source fails part-way keeps everything parsed
    up to that point.

    Rules:
    - A start marker always begins a fresh buffer; an unfinished buffer
      before it is silently discarded.
    - An end marker flushes the buffer if it has a timestamp, at least one
      round line and a valid outcome; otherwise the record is dropped with
      a warning.
    - Lines outside a block are ignored.
    """
    records = into if into is not None else []
    buffer: _RecordBuffer | None = None

    for raw_line in lines:
        line = raw_line.strip()

        if line == GAME_START_MARKER:
            buffer = _RecordBuffer()
        elif line == GAME_END_MARKER:
            if buffer is None:
                continue
            record = buffer.build()
            if record is not None:
                records.append(record)
            else:
                logger.warning("Incomplete game record found in history file.")
            buffer = None
        elif buffer is not None:
            buffer.feed(line)

    if buffer is not None:
        logger.warning("History file ended unexpectedly within a game record.")

    return records


def filter_by_outcome(
    records: Iterable[SessionHistoryRecord],
    outcome_filter: str | Outcome,
) -> list[SessionHistoryRecord]:
    """Records whose outcome matches, case-insensitively, in original order."""
    wanted = outcome_filter.value if isinstance(outcome_filter, Outcome) else outcome_filter
    wanted = wanted.strip().lower()
    return [r for r in records if r.outcome.value.lower() == wanted]


# -----------------------------------------------------------------------------
# Stores
# -----------------------------------------------------------------------------

@runtime_checkable
class GameHistoryStore(Protocol):
    """
    Storage interface for finished sessions.

    Implementations:
    - TextHistoryStore: append-only text log (production)
    - MemoryHistoryStore: in-memory list (testing)
    """

    def save(self, record: SessionHistoryRecord) -> bool:
        """Append a record. Returns False if it could not be persisted."""
        ...

    def load(self) -> list[SessionHistoryRecord]:
        """All readable records, oldest first."""
        ...


class TextHistoryStore:
    """
    File-backed history log.

    Single writer only; there is no file locking.
    """

    def __init__(self, path: Path | str = DEFAULT_HISTORY_FILE):
        self.path = Path(path)

    def save(self, record: SessionHistoryRecord) -> bool:
        """Append one block, creating the parent directory if needed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8", newline="\n") as f:
                f.write(format_record(record))
        except OSError as e:
            logger.error("Error saving game history to %s: %s", self.path, e)
            return False
        return True

    def load(self) -> list[SessionHistoryRecord]:
        """
        Read every complete record.

        A missing file is an empty history. A read error part-way through
        is logged and whatever was parsed before it is returned.
        """
        records: list[SessionHistoryRecord] = []
        if not self.path.exists():
            logger.info("History file not found (%s). No history yet.", self.path)
            return records

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                parse_history(f, into=records)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error loading game history from %s: %s", self.path, e)

        return records


class MemoryHistoryStore:
    """
    In-memory history for testing.

    Goes through the same text codec as the file store so tests exercise
    the real format.
    """

    def __init__(self):
        self.text = ""

    def save(self, record: SessionHistoryRecord) -> bool:
        self.text += format_record(record)
        return True

    def load(self) -> list[SessionHistoryRecord]:
        return parse_history(self.text.splitlines())
