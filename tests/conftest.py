"""Shared test fixtures and helpers."""

import pytest

from models import Attack, Board
from state import RandomSource


class FixedRandomSource(RandomSource):
    """Always draws the same value, clamped into the requested range."""

    def __init__(self, value=0):
        super().__init__(seed=None)
        self.value = value

    def next_int(self, bound):
        if bound <= 0:
            raise ValueError(f"bound must be positive, got {bound}")
        return min(self.value, bound - 1)


class ScriptedRandomSource(RandomSource):
    """Replays a fixed list of draws in order; fails loudly when it runs out."""

    def __init__(self, draws):
        super().__init__(seed=None)
        self.draws = list(draws)
        self.bounds = []

    def next_int(self, bound):
        if not self.draws:
            raise AssertionError("scripted random source exhausted")
        value = self.draws.pop(0)
        assert 0 <= value < bound, f"scripted draw {value} outside [0, {bound})"
        self.bounds.append(bound)
        return value


class ScriptedStrategy:
    """Strategy stand-in returning canned attacks and corrections, recording every call."""

    name = "scripted"

    def __init__(self, attack, correction=0):
        self.attack = attack
        self.correction = correction
        self.calls = []
        self.observed = []

    def launch(self, board, rng):
        self.calls.append("launch")
        self.board = board
        return self.attack

    def guide(self, attack, rng):
        self.calls.append("guide")
        return self.correction

    def observe(self, enemy_attack):
        self.calls.append("observe")
        self.observed.append(enemy_attack)


# --- Fixtures ---


@pytest.fixture
def rng():
    """Deterministic random source seeded at 42."""
    return RandomSource(42)


@pytest.fixture
def zero_rng():
    """Random source that always draws 0."""
    return FixedRandomSource(0)


@pytest.fixture
def api_client():
    """Flask test client."""
    from app import app

    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


# --- Helper functions ---


def board_at(slot):
    """Board with the flagship at slot."""
    return Board.with_flagship(slot)


def scripted(source, target, correction=0):
    return ScriptedStrategy(Attack(source=source, target=target), correction)
