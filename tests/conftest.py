"""Shared fixtures for the forest tests."""

from collections.abc import Iterable

import pytest


class ScriptedRandom:
    """A RandomSource that replays fixed draws, so tests can force outcomes."""

    def __init__(self, ints: Iterable[int] = (), flips: Iterable[int] = ()) -> None:
        self._ints = list(ints)
        self._flips = list(flips)
        self.calls: list[tuple[int, int]] = []

    def uniform_int(self, low: int, high: int) -> int:
        assert self._ints, "scripted uniform_int draws exhausted"
        value = self._ints.pop(0)
        assert low <= value <= high, f"{value} outside [{low}, {high}]"
        self.calls.append((low, high))
        return value

    def coin_flip(self) -> int:
        assert self._flips, "scripted coin flips exhausted"
        return self._flips.pop(0)


@pytest.fixture
def scripted() -> type[ScriptedRandom]:
    return ScriptedRandom
