"""
Tests for the game orchestrator.

Every game built by make_game has the secret 1234.
"""

import pytest
from pydantic import TypeAdapter

from liars_mastermind.errors import ValidationError
from liars_mastermind.state import EventType, MemoryHistoryStore, Outcome, make_guess, make_secret
from liars_mastermind.state.schemas import PlayerAction
from liars_mastermind.systems.feedback import compute
from liars_mastermind.systems.truth_scan import ScanStatus


def events(bus, event_type):
    return [e.data for e in bus.get_history(event_type)]


class TestFullGame:
    """End-to-end sessions driven by scripted input."""

    def test_win(self, make_game, memory_store, bus):
        game, player = make_game(["yes", "1111", "1234", "no"])

        assert game.run() == 1

        assert game.state.round_count == 2
        ended = events(bus, EventType.SESSION_ENDED)
        assert ended == [{"outcome": "Won", "rounds_played": 2, "secret": "1234"}]

        history = memory_store.load()
        assert len(history) == 1
        assert history[0].outcome == Outcome.WON
        assert history[0].round_details == (
            "Round 1: Guess = 1111, Correct positions: 1, Misplaced: 0",
            "Round 2: Guess = 1234, Correct positions: 4, Misplaced: 0",
        )
        assert history[0].truth_scan_info is None
        assert events(bus, EventType.HISTORY_SAVED) == [{}]

    def test_loss_after_round_limit(self, make_game, memory_store, bus):
        game, player = make_game(["yes"] + ["6666"] * 12 + ["no"])

        game.run()

        assert game.state.round_count == 12
        assert player.prompts.count("Enter your guess: ") == 12
        record = memory_store.load()[0]
        assert record.outcome == Outcome.LOST
        assert len(record.round_details) == 12
        assert events(bus, EventType.SESSION_ENDED)[0]["secret"] == "1234"

    def test_rules_then_decline(self, make_game, memory_store, bus):
        game, player = make_game(["no", "no"])

        assert game.run() == 0

        rules = events(bus, EventType.RULES_REQUESTED)
        assert len(rules) == 1
        assert rules[0]["scan_token"] == "t"
        assert rules[0]["summary_token"] == "g"
        assert player.prompts == [
            "Have you played this version before? (yes/no): ",
            "Are you ready to start? (yes/no): ",
        ]
        assert memory_store.load() == []

    def test_rules_then_play(self, make_game, bus):
        game, _ = make_game(["no", "yes", "1234", "no"])
        assert game.run() == 1
        assert len(events(bus, EventType.RULES_REQUESTED)) == 1

    def test_yes_no_reprompts(self, make_game, bus):
        game, player = make_game(["maybe", "YES", "1234", " No "])

        assert game.run() == 1

        rejected = events(bus, EventType.INPUT_REJECTED)
        assert [r["reason"] for r in rejected] == ["yes-no"]
        assert player.prompts[0] == player.prompts[1]

    def test_replay_starts_fresh(self, make_game, memory_store, bus, lying_engine):
        game, _ = make_game(
            ["yes", "1356", "t", "1", "1234", "yes", "1234", "no"],
            deception=lying_engine,
        )

        assert game.run() == 2

        state = game.state
        assert state.round_count == 1
        assert state.truth_scan_used is False
        assert state.truth_scan_info is None
        assert state.revealed_round is None
        # Second session has its own budget
        assert state.deceptive_rounds_used == 1
        assert len(memory_store.load()) == 2

        started = bus.get_history(EventType.SESSION_STARTED)
        assert started[0].session_id != started[1].session_id


class TestInput:
    """Bad input never advances the round."""

    def test_invalid_guesses_rejected(self, make_game, bus):
        game, _ = make_game(["yes", "12", "abcd", "7777", "1234", "no"])

        game.run()

        rejected = events(bus, EventType.INPUT_REJECTED)
        assert [r["reason"] for r in rejected] == ["length", "non-numeric", "range"]
        assert rejected[0]["message"] == "Invalid input length. Expected 4 digits, but got 2."
        assert "'t' for truth scan" in rejected[0]["hint"]
        assert game.state.round_count == 1

    def test_round_started_once_per_round(self, make_game, bus):
        game, _ = make_game(["yes", "bad", "g", "1111", "1234", "no"])

        game.run()

        started = events(bus, EventType.ROUND_STARTED)
        assert [s["round_number"] for s in started] == [1, 2]

    def test_whitespace_and_case_in_tokens(self, make_game, bus):
        game, _ = make_game(["yes", "  G ", " 1234 ", "no"])

        game.run()

        assert events(bus, EventType.GUESS_SUMMARY) == [{"lines": []}]
        assert game.state.round_count == 1


class TestTruthScan:
    """Scan requests during play."""

    def test_scan_burns_on_honest_round(self, make_game, memory_store, bus):
        game, player = make_game(["yes", "1111", "t", "1", "t", "1234", "no"])

        game.run()

        scans = events(bus, EventType.TRUTH_SCAN)
        assert [s["status"] for s in scans] == ["not_deceptive", "already_used"]
        assert [s["consumed"] for s in scans] == [True, False]
        assert player.prompts.count("Enter round number to scan (1-1): ") == 1
        assert game.state.round_count == 2

        record = memory_store.load()[0]
        assert record.truth_scan_info == "Used in Round 2, targeting Round 1 (Not Deceptive)"

    def test_scan_before_any_round(self, make_game, bus):
        game, _ = make_game(["yes", "t", "1111", "t", "1", "1234", "no"])

        game.run()

        scans = events(bus, EventType.TRUTH_SCAN)
        assert [s["status"] for s in scans] == ["no_rounds", "not_deceptive"]

    def test_bad_round_number_reprompts(self, make_game, bus):
        game, player = make_game(["yes", "1111", "2222", "t", "3", "x", "0", "2", "1234", "no"])

        game.run()

        rejected = events(bus, EventType.INPUT_REJECTED)
        assert [r["reason"] for r in rejected] == ["round-number"] * 3
        assert rejected[0]["message"] == "Please enter a number between 1 and 2."
        assert events(bus, EventType.TRUTH_SCAN)[0]["target_round"] == 2

    def test_reveal_rewrites_summary_and_history(self, make_game, memory_store, bus, lying_engine):
        game, _ = make_game(
            ["yes", "1356", "t", "1", "g", "1234", "no"],
            deception=lying_engine,
        )

        game.run()

        scan = events(bus, EventType.TRUTH_SCAN)[0]
        assert scan["status"] == ScanStatus.REVEALED.value
        assert scan["message"] == (
            "Revealing true feedback for round 1: Correct positions: 1, Misplaced: 1"
        )

        expected = (
            "Round 1: Guess = 1356, Actual Feedback: "
            "Correct positions: 1, Misplaced: 1 (Truth Revealed)"
        )
        assert events(bus, EventType.GUESS_SUMMARY)[0]["lines"] == [expected]

        record = memory_store.load()[0]
        assert record.round_details[0] == expected
        assert record.truth_scan_info == (
            "Used in Round 2, targeting Round 1 (Deceptive - Truth Revealed)"
        )


class TestDeception:
    """Lies in the displayed feedback."""

    def test_hidden_win_still_ends_game(self, make_game, memory_store, bus, lying_engine):
        """A lie on the winning guess can't keep the game going."""
        game, _ = make_game(["yes", "1234", "no"], deception=lying_engine)

        game.run()

        finalized = events(bus, EventType.ROUND_FINALIZED)[0]
        assert finalized["exact_positions"] != 4
        assert game.state.rounds[0].is_deceptive
        assert memory_store.load()[0].outcome == Outcome.WON

    def test_budget_holds_over_full_game(self, make_game, lying_engine):
        game, _ = make_game(["yes"] + ["6666"] * 12 + ["no"], deception=lying_engine)

        game.run()

        flags = [r.is_deceptive for r in game.state.rounds]
        assert flags == [True] * 3 + [False] * 9
        assert game.state.deceptive_rounds_used == 3

    def test_displayed_feedback_has_no_marker(self, make_game, bus, lying_engine):
        game, _ = make_game(["yes", "1111", "1234", "no"], deception=lying_engine)

        game.run()

        for data in events(bus, EventType.ROUND_FINALIZED):
            assert data["displayed"].startswith("Correct positions: ")
            assert "Truth" not in data["displayed"]


class TestScoring:
    """Background scoring and its failures."""

    def test_worker_failure_does_not_advance(self, make_game, bus, monkeypatch):
        calls = []

        def crash_once(secret, guess):
            calls.append(guess)
            if len(calls) == 1:
                raise RuntimeError("worker crashed")
            return compute(secret, guess)

        monkeypatch.setattr("liars_mastermind.systems.rounds.compute", crash_once)
        game, _ = make_game([])
        game.start_session()

        assert game.submit_guess(make_guess([1, 1, 1, 1])) is None

        assert game.state.round_count == 0
        failed = events(bus, EventType.ROUND_FAILED)
        assert len(failed) == 1
        assert failed[0]["round_number"] == 1
        assert failed[0]["error"].startswith("Error during feedback calculation")

        record = game.submit_guess(make_guess([1, 1, 1, 1]))
        assert record.round_number == 1
        assert game.state.round_count == 1

    def test_inline_failure_is_not_retryable(self, make_game, bus, monkeypatch):
        """Without a worker there is no background failure to report."""
        def crash(secret, guess):
            raise RuntimeError("scoring crashed")

        monkeypatch.setattr("liars_mastermind.systems.rounds.compute", crash)
        game, _ = make_game([], background_scoring=False)
        game.start_session()

        with pytest.raises(RuntimeError):
            game.submit_guess(make_guess([1, 1, 1, 1]))
        assert game.state.round_count == 0
        assert events(bus, EventType.ROUND_FAILED) == []

    @pytest.mark.parametrize("background", [True, False])
    def test_broken_invariant_propagates(self, make_game, bus, background):
        """A secret-role code passed as a guess is a caller bug, not a retry."""
        game, _ = make_game([], background_scoring=background)
        game.start_session()

        with pytest.raises(ValidationError):
            game.submit_guess(make_secret([1, 1, 1, 1]))

        assert game.state.round_count == 0
        assert events(bus, EventType.ROUND_FAILED) == []
        assert game.submit_guess(make_guess([1, 1, 1, 1])).round_number == 1

    def test_worker_matches_inline(self, make_game):
        script = ["yes", "1111", "t", "1", "g", "5612", "1234", "no"]
        background_store = MemoryHistoryStore()
        inline_store = MemoryHistoryStore()

        make_game(list(script), store=background_store)[0].run()
        make_game(list(script), background_scoring=False, store=inline_store)[0].run()

        assert background_store.text == inline_store.text
        assert background_store.load()[0].outcome == Outcome.WON

    def test_worker_started_lazily_and_closed(self, make_game):
        game, _ = make_game([])
        game.start_session()
        assert game._executor is None

        game.submit_guess(make_guess([2, 2, 2, 2]))
        assert game._executor is not None

        game.close()
        assert game._executor is None

    def test_inline_never_starts_worker(self, make_game):
        game, _ = make_game([], background_scoring=False)
        game.start_session()
        game.submit_guess(make_guess([2, 2, 2, 2]))
        assert game._executor is None


class TestSessionEnd:
    """Building and saving the history record."""

    def test_empty_session_not_saved(self, make_game, memory_store, bus):
        game, _ = make_game([])
        game.start_session()

        assert game.end_session() is None

        assert memory_store.text == ""
        assert events(bus, EventType.SESSION_ENDED)[0]["outcome"] == "Lost"
        assert events(bus, EventType.HISTORY_SAVED) == []

    def test_timestamp_from_clock(self, make_game, memory_store, fixed_clock):
        game, _ = make_game(["yes", "1234", "no"])
        game.run()
        assert memory_store.load()[0].timestamp == fixed_clock()

    def test_store_refusal_reported(self, make_game, bus):
        class RefusingStore(MemoryHistoryStore):
            def save(self, record):
                return False

        game, _ = make_game(["yes", "1234", "no"], store=RefusingStore())
        game.run()

        assert len(events(bus, EventType.HISTORY_SAVE_FAILED)) == 1
        assert events(bus, EventType.HISTORY_SAVED) == []

    def test_store_error_reported(self, make_game, bus):
        class BrokenStore(MemoryHistoryStore):
            def save(self, record):
                raise OSError("disk full")

        game, _ = make_game(["yes", "1234", "no"], store=BrokenStore())
        assert game.run() == 1
        assert len(events(bus, EventType.HISTORY_SAVE_FAILED)) == 1

    def test_requires_session(self, make_game):
        game, _ = make_game([])
        with pytest.raises(ValidationError):
            game.end_session()
        with pytest.raises(ValidationError):
            game.request_summary()

class TestHandleAction:
    """Dispatch on the action's kind."""

    def test_each_kind(self, make_game, bus):
        game, player = make_game([])
        game.start_session()
        adapter = TypeAdapter(PlayerAction)

        assert game.handle_action(adapter.validate_python({"kind": "summary"})) is None
        assert game.handle_action(adapter.validate_python({"kind": "scan"})) is None
        record = game.handle_action(
            adapter.validate_python(
                {"kind": "guess", "code": {"digits": [1, 2, 3, 4], "role": "guess"}}
            )
        )

        assert events(bus, EventType.GUESS_SUMMARY) == [{"lines": []}]
        assert events(bus, EventType.TRUTH_SCAN)[0]["status"] == "no_rounds"
        assert record.true_feedback.is_solved
        assert player.prompts == []

    def test_unknown_action_rejected(self, make_game):
        game, _ = make_game([])
        game.start_session()
        with pytest.raises(ValidationError):
            game.handle_action("1234")
