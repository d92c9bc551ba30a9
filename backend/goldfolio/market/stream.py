"""SSE streaming endpoint for live gold price updates."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from ..errors import PriceFetchError, PriceUnavailableError
from .broadcaster import PriceBroadcaster, Subscription
from .models import PriceSample

logger = logging.getLogger(__name__)

CONNECTED_FRAME = ": connected\n\n"
KEEPALIVE_FRAME = ": ping\n\n"

_CLOSE = None  # queue sentinel that ends the event generator


def format_event(data: dict) -> str:
    """Serialize one SSE data frame."""
    return f"data: {json.dumps(data)}\n\n"


class StreamSession:
    """One client's server-sent-events connection.

    Price and error notifications arrive as broadcaster callbacks and are
    queued; ``events()`` drains the queue into SSE frames and interleaves a
    keepalive comment every ``keepalive_interval`` seconds, on a fixed
    cadence regardless of how many price frames went out in between.

    The queue is bounded. A client that falls ``max_pending`` frames behind
    is torn down instead of stalling the broadcaster or other sessions.
    Teardown (unsubscribe, stop keepalives) runs exactly once, whichever
    path triggers it.
    """

    def __init__(
        self,
        broadcaster: PriceBroadcaster,
        keepalive_interval: float = 30.0,
        disconnect_check_interval: float = 1.0,
        max_pending: int = 64,
        replay_latest: bool = False,
        client: str = "unknown",
    ) -> None:
        self._broadcaster = broadcaster
        self._keepalive_interval = keepalive_interval
        self._check_interval = disconnect_check_interval
        self._replay_latest = replay_latest
        self._client = client
        self._queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_pending)
        self._subscription: Subscription | None = None
        self._started = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Frames queued but not yet yielded."""
        return self._queue.qsize()

    # --- Broadcaster callbacks ---

    def _on_price(self, sample: PriceSample) -> None:
        self._push(format_event({"price": sample.value}))

    def _on_error(self, error: PriceFetchError) -> None:
        self._push(format_event({"error": str(error)}))

    def _push(self, frame: str) -> None:
        if self._closed:
            # Fan-out snapshot taken just before we unsubscribed
            return
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("SSE client %s fell behind; closing stream", self._client)
            self.close()

    # --- Lifecycle ---

    def close(self) -> None:
        """Unregister from the broadcaster and wake the event generator. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.cancel()

        # Drop undelivered frames; only the close sentinel matters now
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSE)
        logger.info("SSE stream closed: %s", self._client)

    async def events(
        self,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncGenerator[str, None]:
        """Async generator of SSE frames for this session.

        Registers with the broadcaster before yielding the initial comment
        frame and unregisters when the generator finishes, is closed, or is
        cancelled. ``is_disconnected`` is polled every
        ``disconnect_check_interval`` seconds.
        """
        if self._started:
            raise RuntimeError("StreamSession.events() can only be consumed once")
        self._started = True

        try:
            if self._closed:
                return
            self._subscription = self._broadcaster.subscribe(
                self._on_price, self._on_error, replay=self._replay_latest
            )
            logger.info("SSE client connected: %s", self._client)
            yield CONNECTED_FRAME

            loop = asyncio.get_running_loop()
            next_keepalive = loop.time() + self._keepalive_interval
            while True:
                if is_disconnected is not None and await is_disconnected():
                    logger.info("SSE client disconnected: %s", self._client)
                    break

                now = loop.time()
                if now >= next_keepalive:
                    yield KEEPALIVE_FRAME
                    # Fixed cadence from the previous deadline; data frames do not reset it
                    next_keepalive += self._keepalive_interval
                    if next_keepalive <= loop.time():
                        next_keepalive = loop.time() + self._keepalive_interval
                    continue

                timeout = min(self._check_interval, next_keepalive - now)
                try:
                    frame = await asyncio.wait_for(self._queue.get(), timeout=timeout)
                except asyncio.TimeoutError:
                    continue

                if frame is _CLOSE:
                    break
                yield frame
        except asyncio.CancelledError:
            logger.info("SSE stream cancelled for: %s", self._client)
            raise
        finally:
            self.close()


def create_stream_router(
    broadcaster: PriceBroadcaster,
    keepalive_interval: float = 30.0,
    replay_latest: bool = False,
) -> APIRouter:
    """Create the price router with a reference to the broadcaster.

    This factory pattern lets us inject the PriceBroadcaster without globals.
    """
    router = APIRouter(prefix="/api", tags=["price"])

    @router.get("/stream")
    async def stream_prices(request: Request) -> StreamingResponse:
        """SSE endpoint for live gold price updates.

        The client connects with EventSource and receives:

            : connected
            data: {"price": 2351.2}
            data: {"error": "Price fetch failed: HTTP status 503"}
            : ping

        Price frames are sent only when the price changes. Error frames are
        informational; the stream stays open.
        """
        session = StreamSession(
            broadcaster,
            keepalive_interval=keepalive_interval,
            replay_latest=replay_latest,
            client=request.client.host if request.client else "unknown",
        )
        return StreamingResponse(
            session.events(request.is_disconnected),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    @router.get("/price")
    async def latest_price() -> dict:
        """Last cached price. 503 until the first successful poll."""
        sample = broadcaster.latest
        if sample is None:
            raise PriceUnavailableError("No gold price has been observed yet")
        return sample.to_dict()

    return router
