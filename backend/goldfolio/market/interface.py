"""Abstract interface for gold price sources."""

from __future__ import annotations

from abc import ABC, abstractmethod


class PriceSource(ABC):
    """Contract for price providers.

    A source answers one question: what is the spot price right now? It does
    not poll, cache or retry. Scheduling belongs to the PriceBroadcaster,
    which calls ``fetch_price()`` from a worker thread on every tick.

    Lifecycle:
        source = create_price_source(settings)
        broadcaster = PriceBroadcaster(source)
        await broadcaster.start()
        # ... app runs ...
        await broadcaster.stop()
        source.close()
    """

    @abstractmethod
    def fetch_price(self) -> float:
        """Return the current price in USD per troy ounce.

        Blocking. The result is always finite and strictly positive; any
        failure raises PriceFetchError with the underlying cause in its message.
        """

    def close(self) -> None:
        """Release network resources. Safe to call multiple times."""
