"""Poll the price source, cache the latest quote and fan it out to subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from threading import Lock

from ..errors import PriceFetchError
from .interface import PriceSource
from .models import PriceSample

logger = logging.getLogger(__name__)

PriceCallback = Callable[[PriceSample], None]
ErrorCallback = Callable[[PriceFetchError], None]


class Subscription:
    """Handle for one registered (on_price, on_error) pair.

    Cancelling is idempotent. Usable as a context manager so the owner
    releases it on every exit path.
    """

    __slots__ = ("_broadcaster",)

    def __init__(self, broadcaster: PriceBroadcaster) -> None:
        self._broadcaster = broadcaster

    @property
    def active(self) -> bool:
        return self._broadcaster.is_subscribed(self)

    def cancel(self) -> None:
        self._broadcaster.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


class PriceBroadcaster:
    """Single owner of the poll loop, the cached price and the subscriber set.

    Writers: the poll task only.
    Readers: SSE sessions (via callbacks), ledger routes (``latest``).

    Only a value that differs from the cached one is broadcast. A failed
    poll is broadcast as an error and leaves the cache untouched, so the
    last good price survives an upstream outage.
    """

    def __init__(self, source: PriceSource, poll_interval: float = 10.0) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._source = source
        self._interval = poll_interval
        self._latest: PriceSample | None = None
        self._subscribers: dict[Subscription, tuple[PriceCallback, ErrorCallback]] = {}
        self._lock = Lock()  # guards _latest and _subscribers
        self._poll_lock = asyncio.Lock()  # at most one fetch in flight
        self._running = False
        self._task: asyncio.Task | None = None

    # --- Lifecycle ---

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Poll once immediately, then keep polling every ``poll_interval``.

        No-op if already running.
        """
        if self._running:
            return
        self._running = True
        logger.info("Price polling started (%.1fs interval)", self._interval)

        await self.poll_once()

        # stop() may have been awaited while the first poll was in flight
        if self._running:
            self._task = asyncio.create_task(self._poll_loop(), name="gold-price-poller")

    async def stop(self) -> None:
        """Cancel the poll task. Subscribers stay registered. No-op if idle."""
        if not self._running:
            return
        self._running = False
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Price polling stopped")

    # --- Cache ---

    @property
    def latest(self) -> PriceSample | None:
        """Last successfully fetched price, or None before the first success."""
        with self._lock:
            return self._latest

    @property
    def poll_interval(self) -> float:
        return self._interval

    # --- Subscribers ---

    def subscribe(
        self,
        on_price: PriceCallback,
        on_error: ErrorCallback,
        replay: bool = False,
    ) -> Subscription:
        """Register a callback pair and return its handle.

        New subscribers wait for the next price change. With ``replay=True``
        the cached price (if any) is delivered to ``on_price`` synchronously
        before this method returns.
        """
        subscription = Subscription(self)
        with self._lock:
            self._subscribers[subscription] = (on_price, on_error)
            cached = self._latest
            count = len(self._subscribers)
        logger.debug("Subscriber added (%d active)", count)

        if replay and cached is not None:
            on_price(cached)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription. Unknown or already removed handles are ignored."""
        with self._lock:
            removed = self._subscribers.pop(subscription, None)
            count = len(self._subscribers)
        if removed is not None:
            logger.debug("Subscriber removed (%d active)", count)

    def is_subscribed(self, subscription: Subscription) -> bool:
        with self._lock:
            return subscription in self._subscribers

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # --- Polling ---

    async def poll_once(self) -> PriceSample | None:
        """Run one poll cycle. Returns the new sample if one was broadcast.

        Never raises for upstream problems; they become error notifications.
        """
        async with self._poll_lock:
            try:
                # Sources are blocking; keep them off the event loop.
                value = await asyncio.to_thread(self._source.fetch_price)
                sample = PriceSample(value=value)
            except PriceFetchError as e:
                logger.error("Price poll failed: %s", e)
                self._notify_error(e)
                return None
            except Exception as e:
                error = PriceFetchError(f"Price fetch failed: {e}")
                logger.exception("Price source raised an unexpected error")
                self._notify_error(error)
                return None

            with self._lock:
                if self._latest is not None and self._latest.value == sample.value:
                    unchanged = True
                else:
                    unchanged = False
                    self._latest = sample

            if unchanged:
                logger.debug("Gold price unchanged at %.2f", sample.value)
                return None

            logger.info("Gold price updated: $%.2f/oz", sample.value)
            self._notify_price(sample)
            return sample

    async def _poll_loop(self) -> None:
        """Poll at a fixed rate. First poll already happened in start().

        Ticks are anchored to the loop start, not to fetch completion. A fetch
        that overruns one or more ticks causes those ticks to be skipped.
        """
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            await self.poll_once()

            next_tick += self._interval
            now = loop.time()
            if next_tick <= now:
                skipped = int((now - next_tick) // self._interval) + 1
                next_tick += skipped * self._interval
                logger.warning("Price poll overran its interval; skipped %d tick(s)", skipped)

    # --- Fan-out ---

    def _callbacks(self) -> list[tuple[PriceCallback, ErrorCallback]]:
        with self._lock:
            return list(self._subscribers.values())

    def _notify_price(self, sample: PriceSample) -> None:
        for on_price, _ in self._callbacks():
            try:
                on_price(sample)
            except Exception:
                logger.exception("Subscriber failed to handle price update")

    def _notify_error(self, error: PriceFetchError) -> None:
        for _, on_error in self._callbacks():
            try:
                on_error(error)
            except Exception:
                logger.exception("Subscriber failed to handle price error")
