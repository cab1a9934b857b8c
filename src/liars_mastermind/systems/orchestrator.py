"""
Game orchestrator.

Owns the session lifecycle and the round loop:

    introduce → [start session → rounds until game over → end session
                 → save history → play again?]*

Design principles:
- Orchestrator sequences and delegates. Scoring is systems.feedback,
  lying is systems.deception, rounds are systems.rounds, scans are
  systems.truth_scan.
- Input comes in as raw text through a PlayerInput; everything shown to
  the player goes out as events on the EventBus.
- Scoring a guess may run on a single background worker. The orchestrator
  blocks on it immediately, so at most one guess is ever in flight and all
  session state is mutated on the orchestrator's own thread.

Usage:
    with GameOrchestrator(player, TextHistoryStore(path)) as game:
        game.run()
"""

from __future__ import annotations

import logging
import random
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Protocol

from ..errors import AsyncComputationError, InvalidGuessError, ValidationError
from ..state.event_bus import EventBus, EventType, get_event_bus
from ..state.schema import (
    CODE_LENGTH,
    MAX_DIGIT,
    MAX_ROUNDS,
    MIN_DIGIT,
    CodeSequence,
    Feedback,
    Outcome,
    RoundRecord,
    SessionHistoryRecord,
    SessionState,
    generate_secret,
)
from ..state.schemas.action import (
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
from ..state.store import GameHistoryStore
from .deception import DeceptionEngine
from .rounds import RoundResolver, is_game_over, session_outcome
from .truth_scan import ScanOutcome, TruthScanner

logger = logging.getLogger(__name__)


class PlayerInput(Protocol):
    """Where raw player text comes from."""

    def ask(self, prompt: str) -> str:
        """Show ``prompt`` and return one line of input."""
        ...


class GameOrchestrator:
    """
    Runs sessions of the game against one player.

    Responsibilities:
    - Session lifecycle (fresh secret and state per session)
    - Decoding player input and re-prompting on bad input
    - Background scoring with a blocking join
    - Building the history record and handing it to the store

    NOT responsible for:
    - Scoring, deception or scan rules (systems modules)
    - Rendering (event bus subscribers)
    - File formats (GameHistoryStore)
    """

    def __init__(
        self,
        player: PlayerInput,
        store: GameHistoryStore,
        *,
        bus: EventBus | None = None,
        deception: DeceptionEngine | None = None,
        scanner: TruthScanner | None = None,
        rng: random.Random | None = None,
        background_scoring: bool = True,
        max_rounds: int = MAX_ROUNDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.player = player
        self.store = store
        self.bus = bus or get_event_bus()
        self.rng = rng or random.Random()
        self.deception = deception or DeceptionEngine(self.rng)
        self.scanner = scanner or TruthScanner()
        self.background_scoring = background_scoring
        self.max_rounds = max_rounds
        self._clock = clock

        self._executor: ThreadPoolExecutor | None = None
        self._in_flight: Future | None = None
        self._state: SessionState | None = None
        self._secret: CodeSequence | None = None

        # One handler per PlayerAction kind
        self._action_handlers: dict[str, Callable[..., RoundRecord | None]] = {
            "guess": self._on_guess,
            "scan": self._on_scan,
            "summary": self._on_summary,
        }

    # ─── Lifecycle ───────────────────────────────────────────────

    def __enter__(self) -> "GameOrchestrator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the scoring worker, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    @property
    def state(self) -> SessionState | None:
        """Current (or most recently finished) session."""
        return self._state

    @property
    def secret(self) -> CodeSequence | None:
        return self._secret

    def _emit(self, event_type: EventType, **data) -> None:
        session_id = self._state.id if self._state else ""
        self.bus.emit(event_type, session_id=session_id, **data)

    def _require_session(self) -> SessionState:
        if self._state is None or self._secret is None:
            raise ValidationError("No session in progress")
        return self._state

    # ─── Top level ───────────────────────────────────────────────

    def run(self) -> int:
        """
        Introduce the game, then play sessions until the player stops.

        Returns:
            Number of sessions played
        """
        if not self.introduce():
            return 0

        played = 0
        while True:
            self.play_session()
            played += 1
            if not self.ask_yes_no("Play again? (yes/no): "):
                break
        return played

    def introduce(self) -> bool:
        """One-time consent. Returns False if the player backs out."""
        if self.ask_yes_no("Have you played this version before? (yes/no): "):
            return True

        self._emit(
            EventType.RULES_REQUESTED,
            code_length=CODE_LENGTH,
            min_digit=MIN_DIGIT,
            max_digit=MAX_DIGIT,
            max_rounds=self.max_rounds,
            scan_token=TRUTH_SCAN_TOKEN,
            summary_token=GUESS_SUMMARY_TOKEN,
        )
        return self.ask_yes_no("Are you ready to start? (yes/no): ")

    def play_session(self) -> SessionHistoryRecord | None:
        """Play one full session and persist it."""
        state = self.start_session()
        while not is_game_over(state.rounds, self.max_rounds):
            self.play_round()
        return self.end_session()

    # ─── Session ─────────────────────────────────────────────────

    def start_session(self, secret: CodeSequence | None = None) -> SessionState:
        """Fresh secret, fresh counters, fresh scan."""
        self._secret = secret or generate_secret(self.rng)
        self._state = SessionState()
        logger.debug("Session %s started", self._state.id)
        self._emit(
            EventType.SESSION_STARTED,
            code_length=CODE_LENGTH,
            max_rounds=self.max_rounds,
        )
        return self._state

    def end_session(self) -> SessionHistoryRecord | None:
        """
        Report the result and save history.

        Sessions without a single round are not saved.
        """
        state = self._require_session()
        outcome = session_outcome(state.rounds)

        self._emit(
            EventType.SESSION_ENDED,
            outcome=outcome.value,
            rounds_played=state.round_count,
            secret=str(self._secret),
        )
        logger.info(
            "Session %s ended: %s after %d round(s)",
            state.id, outcome.value, state.round_count,
        )

        if not state.rounds:
            return None

        record = self.build_summary(outcome)
        try:
            saved = self.store.save(record)
        except OSError as e:
            logger.error("History store failed: %s", e)
            saved = False

        if saved:
            self._emit(EventType.HISTORY_SAVED)
        else:
            self._emit(EventType.HISTORY_SAVE_FAILED)
        return record

    def build_summary(self, outcome: Outcome) -> SessionHistoryRecord:
        state = self._require_session()
        return SessionHistoryRecord(
            timestamp=self._clock(),
            round_details=state.summary_lines(),
            truth_scan_info=state.truth_scan_info,
            outcome=outcome,
        )

    def is_game_over(self) -> bool:
        return is_game_over(self._require_session().rounds, self.max_rounds)

    # ─── Rounds ──────────────────────────────────────────────────

    def play_round(self) -> RoundRecord:
        """
        Keep taking actions until one produces a finished round.

        Scans, summaries, bad input and failed scoring all loop back to the
        prompt without advancing the round.
        """
        state = self._require_session()
        self._emit(
            EventType.ROUND_STARTED,
            round_number=state.next_round_number,
            max_rounds=self.max_rounds,
        )

        while True:
            raw = self.player.ask("Enter your guess: ")
            try:
                action = parse_player_input(raw)
            except InvalidGuessError as e:
                self._emit(
                    EventType.INPUT_REJECTED,
                    message=e.message,
                    reason=e.reason.value,
                    hint=(
                        f"Enter {CODE_LENGTH} digits ({MIN_DIGIT}-{MAX_DIGIT}), "
                        f"'{TRUTH_SCAN_TOKEN}' for truth scan, or "
                        f"'{GUESS_SUMMARY_TOKEN}' for summary."
                    ),
                )
                continue

            record = self.handle_action(action)
            if record is not None:
                return record

    def handle_action(self, action: PlayerAction) -> RoundRecord | None:
        """Dispatch one decoded action by its kind. Only a guess can return a record."""
        handler = self._action_handlers.get(getattr(action, "kind", None))
        if handler is None:
            raise ValidationError(f"No handler registered for player action: {action!r}")
        return handler(action)

    def _on_guess(self, action: GuessAction) -> RoundRecord | None:
        return self.submit_guess(action.code)

    def _on_scan(self, action: ScanRequest) -> None:
        self.request_scan()

    def _on_summary(self, action: SummaryRequest) -> None:
        self.request_summary()

    def submit_guess(self, guess: CodeSequence) -> RoundRecord | None:
        """
        Score, finalize and append one round.

        Returns None if background scoring failed; the player can retry.
        """
        state = self._require_session()
        resolver = RoundResolver(state.next_round_number, self._secret, self.deception)

        try:
            self._score(resolver, guess)
        except AsyncComputationError as e:
            logger.error("Round %d not advanced: %s", resolver.round_number, e.cause)
            self._emit(
                EventType.ROUND_FAILED,
                round_number=resolver.round_number,
                error=str(e),
            )
            return None

        record = resolver.finalize(state)
        self._emit(
            EventType.ROUND_FINALIZED,
            round_number=record.round_number,
            guess=str(record.guess),
            displayed=record.displayed_feedback.describe(),
            exact_positions=record.displayed_feedback.exact_positions,
            misplaced=record.displayed_feedback.misplaced,
        )
        return record

    def _score(self, resolver: RoundResolver, guess: CodeSequence) -> Feedback:
        """
        Run the evaluation step, on the worker if enabled, and wait for it.

        Raises:
            AsyncComputationError: if the worker failed; the guess can be retried
            ValidationError: on a broken invariant, from either path
        """
        if self._in_flight is not None:
            raise ValidationError("A guess is already being scored")
        if not self.background_scoring:
            return resolver.evaluate(guess)

        try:
            self._in_flight = self._get_executor().submit(resolver.evaluate, guess)
            return self._in_flight.result()
        except ValidationError:
            raise
        except Exception as e:
            raise AsyncComputationError(e) from e
        finally:
            self._in_flight = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="mastermind-scoring",
            )
        return self._executor

    # ─── Requests ────────────────────────────────────────────────

    def request_scan(self) -> ScanOutcome:
        state = self._require_session()
        outcome = self.scanner.handle_request(state, self._secret, self._choose_scan_target)
        self._emit(
            EventType.TRUTH_SCAN,
            status=outcome.status.value,
            message=outcome.message(),
            target_round=outcome.target_round,
            consumed=outcome.consumed,
        )
        return outcome

    def request_summary(self) -> list[str]:
        lines = self._require_session().summary_lines()
        self._emit(EventType.GUESS_SUMMARY, lines=lines)
        return lines

    # ─── Prompts ─────────────────────────────────────────────────

    def ask_yes_no(self, prompt: str) -> bool:
        """Ask until the answer is 'yes' or 'no'."""
        while True:
            answer = parse_yes_no(self.player.ask(prompt))
            if answer is not None:
                return answer
            self._emit(
                EventType.INPUT_REJECTED,
                message="Please enter either 'yes' or 'no'.",
                reason="yes-no",
            )

    def _choose_scan_target(self, upper: int) -> int:
        while True:
            number = parse_round_number(
                self.player.ask(f"Enter round number to scan (1-{upper}): "),
                upper,
            )
            if number is not None:
                return number
            self._emit(
                EventType.INPUT_REJECTED,
                message=f"Please enter a number between 1 and {upper}.",
                reason="round-number",
            )
