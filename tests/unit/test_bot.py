"""
Bot Behaviour Tests

Inbound handling, admin notifications and broadcast fan-out over a stub
channel and a mocked queue.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent.bot import ADMIN_PREFIX, APOLOGY_REPLY, MasjidBot
from services.automation import AutomationReply
from transport.messages import TextMessage
from transport.stub import StubChannel
from transport.waha.schemas import NormalizedMessage

ADMIN = "6281111111111"

CHATS = [
    {"id": "6282222222222@c.us", "name": "Jamaah A"},
    {"id": {"_serialized": "6283333333333@c.us"}, "name": "Jamaah B"},
    {"id": "6284444444444@c.us", "name": "Jamaah C"},
    {"id": "120363025@g.us", "name": "Grup Remaja Masjid"},
    {"id": "status@broadcast"},
]


def _message(**overrides):
    fields = dict(
        chat_id="6282222222222@c.us",
        sender="6282222222222",
        text="jadwal sholat",
        message_id="msg_1",
        message_type="text",
        timestamp=datetime.now(timezone.utc),
    )
    fields.update(overrides)
    return NormalizedMessage(**fields)


def _enqueued(queue):
    """(request, priority, delay) for every enqueue call."""
    calls = []
    for call in queue.enqueue.call_args_list:
        request = call.args[0]
        priority = call.kwargs.get("priority", call.args[1] if len(call.args) > 1 else "normal")
        calls.append((request, priority, call.kwargs.get("delay", 0.0)))
    return calls


@pytest.fixture
def queue():
    queue = MagicMock()
    queue.enqueue.side_effect = lambda *args, **kwargs: f"id{queue.enqueue.call_count}"
    return queue


@pytest.fixture
def sheets():
    sheets = MagicMock()
    sheets.log_message = AsyncMock(return_value={"success": True})
    sheets.get_usage_stats = AsyncMock(return_value={"success": False, "reason": "not_configured"})
    return sheets


@pytest.fixture
def automation():
    automation = MagicMock()
    automation.forward = AsyncMock(return_value=AutomationReply(reply="Maghrib 17:58", message_type="prayer"))
    return automation


@pytest.fixture
def bot(queue, sheets, automation):
    return MasjidBot(
        channel=StubChannel(session_name="masjid", chats=CHATS),
        queue=queue,
        sheets=sheets,
        automation=automation,
        admin_numbers=frozenset({ADMIN}),
        broadcast_delay=2.0,
        gateway_url="http://waha:3000",
    )


class TestHandleMessage:
    """Inbound chat message → automation → queued reply → log."""

    @pytest.mark.asyncio
    async def test_reply_queued_and_logged(self, bot, queue, sheets, automation):
        reply = await bot.handle_message(_message(), source="waha")

        assert reply == "Maghrib 17:58"

        forwarded = automation.forward.call_args.args[0]
        assert forwarded["number"] == "6282222222222"
        assert forwarded["text"] == "jadwal sholat"
        assert forwarded["isAdmin"] is False

        [(request, priority, _)] = _enqueued(queue)
        assert request == TextMessage(chat_id="6282222222222@c.us", text="Maghrib 17:58")
        assert priority == "normal"

        log = sheets.log_message.call_args.kwargs
        assert log["message_type"] == "prayer"
        assert log["reply"] == "Maghrib 17:58"
        assert log["source"] == "waha"

    @pytest.mark.asyncio
    async def test_admin_flag(self, bot, automation):
        await bot.handle_message(_message(sender=ADMIN, chat_id=f"{ADMIN}@c.us"))
        assert automation.forward.call_args.args[0]["isAdmin"] is True

    @pytest.mark.asyncio
    async def test_no_reply_nothing_queued(self, bot, queue, sheets, automation):
        automation.forward.return_value = AutomationReply(reply=None)

        assert await bot.handle_message(_message()) is None
        queue.enqueue.assert_not_called()
        sheets.log_message.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"from_me": True},
        {"chat_id": "120363025@g.us", "is_group": True},
        {"chat_id": "status@broadcast"},
    ])
    async def test_skipped_messages(self, bot, queue, automation, overrides):
        assert await bot.handle_message(_message(**overrides)) is None
        automation.forward.assert_not_called()
        queue.enqueue.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_sends_apology_at_high_priority(self, bot, queue, automation):
        automation.forward.side_effect = RuntimeError("workflow exploded")

        reply = await bot.handle_message(_message())

        assert reply == APOLOGY_REPLY
        [(request, priority, _)] = _enqueued(queue)
        assert request.text == APOLOGY_REPLY
        assert priority == "high"

    @pytest.mark.asyncio
    async def test_log_failure_after_reply_sends_no_apology(self, bot, queue, sheets):
        """Only the reply goes out when the message log fails after it was queued."""
        sheets.log_message.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")

        reply = await bot.handle_message(_message())

        assert reply == "Maghrib 17:58"
        assert [request.text for request, _, _ in _enqueued(queue)] == ["Maghrib 17:58"]


class TestSessionStatus:
    """Session changes operators must act on."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["WORKING", "SCAN_QR_CODE", "CONFLICT", "UNPAIRED"])
    async def test_known_states_notify_admins(self, bot, queue, status):
        notice = await bot.handle_session_status("masjid", status)

        assert notice is not None
        [(request, priority, _)] = _enqueued(queue)
        assert request.chat_id == f"{ADMIN}@c.us"
        assert request.text == f"{ADMIN_PREFIX}{notice}"
        assert priority == "high"

    @pytest.mark.asyncio
    async def test_other_states_are_silent(self, bot, queue):
        assert await bot.handle_session_status("masjid", "STARTING") is None
        queue.enqueue.assert_not_called()


class TestBroadcast:
    """Fan-out to private chats."""

    @pytest.mark.asyncio
    async def test_groups_and_status_skipped(self, bot, queue):
        result = await bot.broadcast("Kajian malam ini", notify=False)

        assert result == {"success": 3, "failed": 0, "total": 3}
        chat_ids = [request.chat_id for request, _, _ in _enqueued(queue)]
        assert chat_ids == ["6282222222222@c.us", "6283333333333@c.us", "6284444444444@c.us"]

    @pytest.mark.asyncio
    async def test_exclusion_in_bare_and_suffixed_form(self, bot, queue):
        result = await bot.broadcast(
            "Kajian malam ini",
            exclude=["6282222222222", "6283333333333@c.us"],
            notify=False,
        )

        assert result["total"] == 1
        [(request, _, _)] = _enqueued(queue)
        assert request.chat_id == "6284444444444@c.us"

    @pytest.mark.asyncio
    async def test_low_priority_and_spacing(self, bot, queue):
        await bot.broadcast("Kajian malam ini", notify=False)

        calls = _enqueued(queue)
        assert [priority for _, priority, _ in calls] == ["low", "low", "low"]
        assert [delay for _, _, delay in calls] == [0.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_admin_summary(self, bot, queue):
        await bot.broadcast("Kajian malam ini")

        request, priority, _ = _enqueued(queue)[-1]
        assert request.chat_id == f"{ADMIN}@c.us"
        assert "Berhasil: 3" in request.text
        assert "Gagal: 0" in request.text
        assert priority == "high"

    @pytest.mark.asyncio
    async def test_enqueue_failures_counted(self, bot, queue):
        queue.enqueue.side_effect = ValueError("queue rejected")

        result = await bot.broadcast("x", notify=False)

        assert result == {"success": 0, "failed": 3, "total": 3}

    @pytest.mark.asyncio
    async def test_chat_listing_failure(self, bot, queue):
        bot.channel.get_chats = AsyncMock(return_value=MagicMock(success=False, error="gateway down"))

        result = await bot.broadcast("x")

        assert result["error"] == "gateway down"
        assert result["total"] == 0
        queue.enqueue.assert_not_called()


class TestStatus:

    @pytest.mark.asyncio
    async def test_get_status(self, bot, queue):
        queue.snapshot.return_value = {"size": 0}

        status = await bot.get_status()

        assert status["connected"] is True
        assert status["status"] == "WORKING"
        assert status["sessionName"] == "masjid"
        assert status["wahaUrl"] == "http://waha:3000"
        assert status["queue"] == {"size": 0}

    @pytest.mark.asyncio
    async def test_get_stats_counts_chats(self, bot, queue):
        queue.size = 2
        queue.is_draining = True
        queue.stats = {"enqueued": 5, "sent": 3, "retried": 0, "dropped": 0}

        stats = await bot.get_stats()

        assert stats["totalChats"] == 5
        assert stats["groupChats"] == 1
        assert stats["queueSize"] == 2
        assert stats["isProcessingQueue"] is True
        assert stats["usage"] is None

    def test_is_admin(self, bot):
        assert bot.is_admin(ADMIN)
        assert bot.is_admin(f"{ADMIN}@c.us")
        assert not bot.is_admin("6282222222222")
