"""
Test suite for the outbound message queue.

Verifies:
- Priority ordering (high > normal > low, FIFO within a priority)
- Single-flight drain loop
- Bounded retries with linear backoff
- Timeouts and raised exceptions count as failures
- Fire-and-forget: terminal failures never reach the caller
"""

import asyncio
import re
import time

import pytest

from services.queue import MessageQueue, MessageState
from transport.base import ChannelResult, OutboundChannel
from transport.messages import ImageMessage, TextMessage


class ScriptedChannel(OutboundChannel):
    """Channel whose outcomes are scripted per chat id."""

    def __init__(self, outcomes=None, latency: float = 0.0, raises: bool = False):
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.latency = latency
        self.raises = raises
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def dispatch(self, request):
        self.calls.append((request.chat_id, time.monotonic()))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            if self.raises:
                raise ConnectionError("gateway unreachable")
            scripted = self.outcomes.get(request.chat_id)
            ok = scripted.pop(0) if scripted else True
            return ChannelResult.ok({"id": "x"}) if ok else ChannelResult.fail("gateway said no", 500)
        finally:
            self.in_flight -= 1

    async def get_chats(self, session=None):
        return ChannelResult.ok([])

    async def get_session_status(self, session=None):
        return ChannelResult.ok({"status": "WORKING"})

    async def get_screenshot(self, session=None):
        return ChannelResult.ok(b"")

    @property
    def order(self):
        return [chat_id for chat_id, _ in self.calls]


def text(chat_id: str) -> TextMessage:
    return TextMessage(chat_id=chat_id, text=f"hello {chat_id}")


def make_queue(channel, **kwargs) -> MessageQueue:
    kwargs.setdefault("send_delay", 0.0)
    kwargs.setdefault("retry_backoff", 0.01)
    return MessageQueue(channel, **kwargs)


class TestEnqueue:
    """Test enqueue validation and return value."""

    @pytest.mark.asyncio
    async def test_returns_id_immediately(self):
        channel = ScriptedChannel()
        queue = make_queue(channel)

        message_id = queue.enqueue(text("6281111@c.us"))

        assert re.fullmatch(r"[0-9a-z]{9}", message_id)
        assert channel.calls == []  # not dispatched yet
        assert queue.size == 1
        await queue.join()
        assert channel.order == ["6281111@c.us"]

    @pytest.mark.asyncio
    async def test_rejects_non_send_request(self):
        queue = make_queue(ScriptedChannel())

        with pytest.raises(TypeError):
            queue.enqueue({"type": "sticker", "chatId": "6281111@c.us"})

        assert queue.size == 0
        assert not queue.is_draining

    @pytest.mark.asyncio
    async def test_rejects_unknown_priority(self):
        queue = make_queue(ScriptedChannel())

        with pytest.raises(ValueError):
            queue.enqueue(text("6281111@c.us"), priority="urgent")

    @pytest.mark.asyncio
    async def test_enqueue_bulk_reports_per_request(self):
        channel = ScriptedChannel()
        queue = make_queue(channel)

        results = queue.enqueue_bulk([text("6281111@c.us"), "not a request", text("6282222@c.us")])

        assert [r["success"] for r in results] == [True, False, True]
        assert results[0]["chatId"] == "6281111@c.us"
        assert "error" in results[1]
        await queue.join()
        assert channel.order == ["6281111@c.us", "6282222@c.us"]


class TestOrdering:
    """Test priority ordering."""

    @pytest.mark.asyncio
    async def test_low_high_normal_drains_high_normal_low(self):
        channel = ScriptedChannel()
        queue = make_queue(channel)

        queue.enqueue(text("1000001@c.us"), priority="low")
        queue.enqueue(text("1000002@c.us"), priority="high")
        queue.enqueue(text("1000003@c.us"), priority="normal")
        await queue.join()

        assert channel.order == ["1000002@c.us", "1000003@c.us", "1000001@c.us"]

    @pytest.mark.asyncio
    async def test_fifo_within_priority(self):
        channel = ScriptedChannel()
        queue = make_queue(channel)

        for n in range(1, 5):
            queue.enqueue(text(f"100000{n}@c.us"))
        await queue.join()

        assert channel.order == [f"100000{n}@c.us" for n in range(1, 5)]

    @pytest.mark.asyncio
    async def test_high_enqueued_while_draining_jumps_ahead(self):
        channel = ScriptedChannel()
        queue = make_queue(channel, send_delay=0.05)

        queue.enqueue(text("2000001@c.us"))
        queue.enqueue(text("2000002@c.us"))
        queue.enqueue(text("2000003@c.us"))
        await asyncio.sleep(0.01)  # first normal dispatched, loop is pacing

        queue.enqueue(text("2999999@c.us"), priority="high")
        await queue.join()

        assert channel.order == ["2000001@c.us", "2999999@c.us", "2000002@c.us", "2000003@c.us"]

    @pytest.mark.asyncio
    async def test_mixed_kinds_share_the_queue(self):
        channel = ScriptedChannel()
        queue = make_queue(channel)

        queue.enqueue(ImageMessage(chat_id="3000001@c.us", image_url="https://x/y.png"), priority="low")
        queue.enqueue(text("3000002@c.us"))
        await queue.join()

        assert channel.order == ["3000002@c.us", "3000001@c.us"]


class TestSingleFlight:
    """Test that only one drain loop ever runs."""

    @pytest.mark.asyncio
    async def test_enqueue_while_draining_never_overlaps(self):
        channel = ScriptedChannel(latency=0.01)
        queue = make_queue(channel)

        for n in range(5):
            queue.enqueue(text(f"400000{n}@c.us"))
            assert queue.is_draining
            await asyncio.sleep(0.005)

        await queue.join()

        assert channel.max_in_flight == 1
        assert len(channel.calls) == 5
        assert not queue.is_draining

    @pytest.mark.asyncio
    async def test_pacing_delay_between_sends(self):
        channel = ScriptedChannel()
        queue = make_queue(channel, send_delay=0.05)

        queue.enqueue(text("5000001@c.us"))
        queue.enqueue(text("5000002@c.us"))
        await queue.join()

        (_, first), (_, second) = channel.calls
        assert second - first >= 0.045


class TestRetries:
    """Test bounded retries with linear backoff."""

    @pytest.mark.asyncio
    async def test_fails_twice_then_succeeds(self):
        settled = []
        channel = ScriptedChannel(outcomes={"6000001@c.us": [False, False, True]})
        queue = make_queue(channel, on_settled=settled.append)

        queue.enqueue(text("6000001@c.us"))
        await queue.join()

        assert len(channel.calls) == 3
        assert len(settled) == 1
        assert settled[0].state == MessageState.SENT
        assert settled[0].attempts == 3
        assert queue.stats == {"enqueued": 1, "sent": 1, "retried": 2, "dropped": 0}

    @pytest.mark.asyncio
    async def test_three_failures_no_fourth_attempt(self):
        settled = []
        channel = ScriptedChannel(outcomes={"6000002@c.us": [False] * 10})
        queue = make_queue(channel, on_settled=settled.append)

        queue.enqueue(text("6000002@c.us"))
        await queue.join()
        await asyncio.sleep(0.05)

        assert len(channel.calls) == 3
        assert settled[0].state == MessageState.FAILED_TERMINAL
        assert settled[0].attempts == 3
        assert settled[0].last_error == "gateway said no"
        assert queue.stats["dropped"] == 1
        assert queue.size == 0

    @pytest.mark.asyncio
    async def test_backoff_grows_linearly(self):
        channel = ScriptedChannel(outcomes={"6000003@c.us": [False] * 3})
        queue = make_queue(channel, retry_backoff=0.05)

        queue.enqueue(text("6000003@c.us"))
        await queue.join()

        times = [t for _, t in channel.calls]
        assert times[1] - times[0] >= 0.045  # 1 × backoff
        assert times[2] - times[1] >= 0.095  # 2 × backoff

    @pytest.mark.asyncio
    async def test_backing_off_message_does_not_block_others(self):
        channel = ScriptedChannel(outcomes={"6000004@c.us": [False, True]})
        queue = make_queue(channel, retry_backoff=0.05)

        queue.enqueue(text("6000004@c.us"), priority="high")
        queue.enqueue(text("6000005@c.us"), priority="low")
        await queue.join()

        assert channel.order == ["6000004@c.us", "6000005@c.us", "6000004@c.us"]

    @pytest.mark.asyncio
    async def test_raised_exception_is_a_failure(self):
        settled = []
        channel = ScriptedChannel(raises=True)
        queue = make_queue(channel, on_settled=settled.append)

        queue.enqueue(text("6000006@c.us"))
        await queue.join()

        assert len(channel.calls) == 3
        assert settled[0].state == MessageState.FAILED_TERMINAL
        assert "unreachable" in settled[0].last_error

    @pytest.mark.asyncio
    async def test_timeout_is_a_failure(self):
        settled = []
        channel = ScriptedChannel(latency=0.2)
        queue = make_queue(channel, send_timeout=0.01, max_attempts=2, on_settled=settled.append)

        queue.enqueue(text("6000007@c.us"))
        await queue.join()

        assert len(channel.calls) == 2
        assert settled[0].state == MessageState.FAILED_TERMINAL
        assert "timed out" in settled[0].last_error

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_queue(self):
        def explode(message):
            raise RuntimeError("boom")

        channel = ScriptedChannel()
        queue = make_queue(channel, on_settled=explode)

        queue.enqueue(text("6000008@c.us"))
        queue.enqueue(text("6000009@c.us"))
        await queue.join()

        assert len(channel.calls) == 2


class TestLifecycle:
    """Test snapshot and shutdown."""

    @pytest.mark.asyncio
    async def test_snapshot_lists_pending_in_dispatch_order(self):
        channel = ScriptedChannel()
        queue = make_queue(channel)

        queue.enqueue(text("7000001@c.us"), priority="low")
        queue.enqueue(text("7000002@c.us"), priority="high")
        snapshot = queue.snapshot()

        assert snapshot["size"] == 2
        assert snapshot["isProcessing"] is True
        assert [m["chatId"] for m in snapshot["messages"]] == ["7000002@c.us", "7000001@c.us"]
        assert snapshot["messages"][0]["state"] == "queued"
        await queue.join()

    @pytest.mark.asyncio
    async def test_close_discards_pending(self):
        channel = ScriptedChannel(latency=0.05)
        queue = make_queue(channel)

        for n in range(3):
            queue.enqueue(text(f"800000{n}@c.us"))
        await asyncio.sleep(0.01)
        await queue.close()

        assert queue.size == 0
        assert not queue.is_draining
        assert len(channel.calls) == 1

    @pytest.mark.asyncio
    async def test_close_counts_in_flight_message_as_dropped(self):
        channel = ScriptedChannel(latency=0.05)
        settled = []
        queue = make_queue(channel, on_settled=settled.append)

        in_flight_id = queue.enqueue(text("8100000@c.us"))
        queue.enqueue(text("8100001@c.us"))
        await asyncio.sleep(0.01)
        await queue.close()

        assert len(channel.calls) == 1
        assert queue.stats["dropped"] == 2
        assert queue.stats["sent"] == 0
        assert [m.id for m in settled] == [in_flight_id]
        assert settled[0].state == MessageState.FAILED_TERMINAL
