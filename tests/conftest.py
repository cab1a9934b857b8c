"""
Pytest fixtures for Liar's Mastermind tests.

Provides in-memory stores, private event buses, scripted players and
random sources that can be steered.
"""

import random
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from liars_mastermind.state import EventBus, MemoryHistoryStore, make_secret
from liars_mastermind.systems import DeceptionEngine, GameOrchestrator


class FixedRandom(random.Random):
    """random() always returns the same value; everything else is seeded."""

    def __init__(self, value: float, seed: int = 0):
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value

    # Keeps randint() on the seeded bit source instead of random()
    def getrandbits(self, k: int) -> int:
        return super().getrandbits(k)


class CyclingRandom(random.Random):
    """randint() walks a fixed list of values, wrapping around."""

    def __init__(self, values: list[int]):
        super().__init__(0)
        self.values = list(values)
        self._i = 0

    def randint(self, a: int, b: int) -> int:
        value = self.values[self._i % len(self.values)]
        self._i += 1
        return value


class ScriptedInput:
    """PlayerInput that replays canned answers and records the prompts."""

    def __init__(self, answers: list[str]):
        self.answers = list(answers)
        self.prompts: list[str] = []

    def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError(f"Script ran out of answers at prompt: {prompt!r}")
        return self.answers.pop(0)


@pytest.fixture
def memory_store():
    """In-memory history store."""
    return MemoryHistoryStore()


@pytest.fixture
def bus():
    """Private event bus so tests never share listeners."""
    return EventBus()


@pytest.fixture
def secret():
    return make_secret([1, 2, 3, 4])


@pytest.fixture
def honest_engine():
    """Deception engine that never lies."""
    return DeceptionEngine(FixedRandom(0.99))


@pytest.fixture
def lying_engine():
    """Deception engine that lies whenever the budget allows."""
    return DeceptionEngine(FixedRandom(0.0, seed=7))


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2025, 4, 2, 19, 22, 10, 513000)


@pytest.fixture
def make_game(memory_store, bus, honest_engine, fixed_clock):
    """
    Factory for orchestrators wired to the test doubles.

    Secrets generated by the orchestrator are always 1234.
    """
    created = []

    def _make(answers, *, deception=None, background_scoring=True, store=None):
        player = ScriptedInput(answers)
        game = GameOrchestrator(
            player,
            store if store is not None else memory_store,
            bus=bus,
            deception=deception or honest_engine,
            rng=CyclingRandom([1, 2, 3, 4]),
            background_scoring=background_scoring,
            clock=fixed_clock,
        )
        created.append(game)
        return game, player

    yield _make

    for game in created:
        game.close()
