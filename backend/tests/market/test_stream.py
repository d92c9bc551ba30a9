"""Tests for StreamSession and the SSE frame format."""

import asyncio
import json
import logging

import pytest

from goldfolio.errors import PriceFetchError
from goldfolio.market.broadcaster import PriceBroadcaster
from goldfolio.market.stream import (
    CONNECTED_FRAME,
    KEEPALIVE_FRAME,
    StreamSession,
    format_event,
)


def _data(frame: str) -> dict:
    """Decode a ``data: <json>`` frame."""
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


async def _open(session: StreamSession, **kwargs):
    """Start a session's event generator and consume the connected frame."""
    events = session.events(**kwargs)
    assert await anext(events) == CONNECTED_FRAME
    return events


async def _next(events, timeout: float = 1.0) -> str:
    return await asyncio.wait_for(anext(events), timeout=timeout)


class TestFormatEvent:
    def test_price_frame(self):
        assert format_event({"price": 2350.5}) == 'data: {"price": 2350.5}\n\n'

    def test_error_frame(self):
        assert format_event({"error": "down"}) == 'data: {"error": "down"}\n\n'


@pytest.mark.asyncio
class TestStreamSession:
    """Unit tests for a single SSE session."""

    async def test_open_registers_with_broadcaster(self, scripted_source):
        """Test that the connected frame is sent and the session is subscribed."""
        broadcaster = PriceBroadcaster(scripted_source())
        events = await _open(StreamSession(broadcaster))

        assert broadcaster.subscriber_count == 1
        await events.aclose()

    async def test_price_frame(self, scripted_source):
        """Test that a price notification becomes one data frame."""
        broadcaster = PriceBroadcaster(scripted_source([2350.5]))
        events = await _open(StreamSession(broadcaster))

        await broadcaster.poll_once()

        assert _data(await _next(events)) == {"price": 2350.5}
        await events.aclose()

    async def test_error_frame_keeps_session_open(self, scripted_source):
        """Errors are informational: the stream keeps delivering afterwards."""
        source = scripted_source([PriceFetchError("Price fetch failed: HTTP status 502"), 2350.5])
        broadcaster = PriceBroadcaster(source)
        session = StreamSession(broadcaster)
        events = await _open(session)

        await broadcaster.poll_once()
        assert _data(await _next(events)) == {"error": "Price fetch failed: HTTP status 502"}
        assert not session.closed

        await broadcaster.poll_once()
        assert _data(await _next(events)) == {"price": 2350.5}
        await events.aclose()

    async def test_keepalive(self, scripted_source):
        """Test that an idle stream emits keepalive comments."""
        broadcaster = PriceBroadcaster(scripted_source())
        session = StreamSession(
            broadcaster, keepalive_interval=0.05, disconnect_check_interval=0.01
        )
        events = await _open(session)

        assert await _next(events) == KEEPALIVE_FRAME
        assert await _next(events) == KEEPALIVE_FRAME
        await events.aclose()

    async def test_keepalive_while_prices_flow(self, scripted_source):
        """Keepalives keep their cadence even when price frames arrive more often."""
        broadcaster = PriceBroadcaster(scripted_source([2000.0 + i for i in range(20)]))
        session = StreamSession(
            broadcaster, keepalive_interval=0.1, disconnect_check_interval=0.01
        )
        events = await _open(session)

        async def feed():
            for _ in range(15):
                await broadcaster.poll_once()
                await asyncio.sleep(0.03)

        feeder = asyncio.create_task(feed())
        loop = asyncio.get_running_loop()
        deadline = loop.time() + 0.45
        frames = []
        while loop.time() < deadline:
            frames.append(await _next(events))
        await feeder
        await events.aclose()

        assert frames.count(KEEPALIVE_FRAME) >= 3
        assert sum(frame.startswith("data: ") for frame in frames) >= 5

    async def test_close_unsubscribes(self, scripted_source):
        """Closing the generator (client gone) releases the subscription."""
        broadcaster = PriceBroadcaster(scripted_source())
        session = StreamSession(broadcaster)
        events = await _open(session)

        await events.aclose()

        assert session.closed
        assert broadcaster.subscriber_count == 0

    async def test_disconnect_detected(self, scripted_source):
        """Test that the stream ends when the transport reports a disconnect."""
        broadcaster = PriceBroadcaster(scripted_source())
        session = StreamSession(broadcaster, disconnect_check_interval=0.01)
        gone = False

        async def is_disconnected():
            return gone

        events = await _open(session, is_disconnected=is_disconnected)
        gone = True

        with pytest.raises(StopAsyncIteration):
            await _next(events)
        assert session.closed
        assert broadcaster.subscriber_count == 0

    async def test_cancellation_cleans_up(self, scripted_source):
        """Test that cancelling the consuming task tears the session down."""
        broadcaster = PriceBroadcaster(scripted_source())
        session = StreamSession(broadcaster)
        events = await _open(session)

        task = asyncio.create_task(anext(events))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.closed
        assert broadcaster.subscriber_count == 0

    async def test_cleanup_runs_once(self, scripted_source):
        """Explicit close() followed by generator shutdown is safe."""
        broadcaster = PriceBroadcaster(scripted_source())
        session = StreamSession(broadcaster)
        events = await _open(session)

        session.close()
        session.close()  # Should not raise

        with pytest.raises(StopAsyncIteration):
            await _next(events)
        assert broadcaster.subscriber_count == 0

    async def test_events_consumed_once(self, scripted_source):
        """Test that a session cannot be streamed twice."""
        broadcaster = PriceBroadcaster(scripted_source())
        session = StreamSession(broadcaster)
        events = await _open(session)

        with pytest.raises(RuntimeError):
            await anext(session.events())
        await events.aclose()

    async def test_replay_latest(self, scripted_source):
        """With replay enabled a new session gets the cached price right away."""
        broadcaster = PriceBroadcaster(scripted_source([2350.5]))
        await broadcaster.poll_once()

        events = await _open(StreamSession(broadcaster, replay_latest=True))

        assert _data(await _next(events)) == {"price": 2350.5}
        await events.aclose()

    async def test_no_replay_by_default(self, scripted_source):
        """New sessions wait for the next change by default."""
        broadcaster = PriceBroadcaster(scripted_source([2350.5]))
        await broadcaster.poll_once()
        session = StreamSession(broadcaster)

        events = await _open(session)

        assert session.pending == 0
        await events.aclose()

    async def test_slow_client_is_dropped_without_affecting_others(self, scripted_source):
        """A session whose buffer overflows is torn down; others keep receiving."""
        broadcaster = PriceBroadcaster(scripted_source([100.0, 101.0, 102.0]))
        slow = StreamSession(broadcaster, max_pending=1, client="slow")
        fast = StreamSession(broadcaster, client="fast")
        slow_events = await _open(slow)
        fast_events = await _open(fast)

        await broadcaster.poll_once()
        await broadcaster.poll_once()  # overflows the slow session

        assert slow.closed
        assert broadcaster.subscriber_count == 1
        with pytest.raises(StopAsyncIteration):
            await _next(slow_events)

        assert _data(await _next(fast_events)) == {"price": 100.0}
        assert _data(await _next(fast_events)) == {"price": 101.0}
        await broadcaster.poll_once()
        assert _data(await _next(fast_events)) == {"price": 102.0}
        await fast_events.aclose()

    async def test_dropping_slow_client_logs_no_error(self, scripted_source, caplog):
        """An overflowing session is closed quietly, not reported as a subscriber failure."""
        broadcaster = PriceBroadcaster(scripted_source([100.0, 101.0]))
        slow = StreamSession(broadcaster, max_pending=1, client="slow")
        events = await _open(slow)

        with caplog.at_level(logging.INFO):
            await broadcaster.poll_once()
            await broadcaster.poll_once()

        assert slow.closed
        assert not [record for record in caplog.records if record.levelno >= logging.ERROR]
        assert any("fell behind" in record.getMessage() for record in caplog.records)
        await events.aclose()


@pytest.mark.asyncio
class TestEndToEnd:
    """Two sessions sharing one broadcaster."""

    async def test_fan_out_dedup_and_disconnect(self, scripted_source):
        """100 → both; 100 again → nothing; 105 → both; one leaves; 110 → the other only."""
        broadcaster = PriceBroadcaster(scripted_source([100.0, 100.0, 105.0, 110.0]))
        a, b = StreamSession(broadcaster, client="a"), StreamSession(broadcaster, client="b")
        events_a = await _open(a)
        events_b = await _open(b)

        await broadcaster.poll_once()
        assert _data(await _next(events_a)) == {"price": 100.0}
        assert _data(await _next(events_b)) == {"price": 100.0}

        await broadcaster.poll_once()
        assert a.pending == 0 and b.pending == 0

        await broadcaster.poll_once()
        assert _data(await _next(events_a)) == {"price": 105.0}
        assert _data(await _next(events_b)) == {"price": 105.0}

        await events_b.aclose()
        assert broadcaster.subscriber_count == 1

        await broadcaster.poll_once()
        assert _data(await _next(events_a)) == {"price": 110.0}
        assert b.closed
        with pytest.raises(StopAsyncIteration):
            await anext(events_b)
        await events_a.aclose()
