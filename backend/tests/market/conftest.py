"""Fixtures for market data tests."""

from collections import deque

import pytest

from goldfolio.market.interface import PriceSource


class ScriptedPriceSource(PriceSource):
    """PriceSource that replays a fixed script of prices and exceptions."""

    def __init__(self, script=()):
        self.script = deque(script)
        self.calls = 0
        self.closed = False

    def push(self, *items):
        self.script.extend(items)

    def fetch_price(self) -> float:
        self.calls += 1
        item = self.script.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def scripted_source():
    """Factory for ScriptedPriceSource instances."""
    return ScriptedPriceSource
