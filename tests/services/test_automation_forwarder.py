"""
Automation Forwarder Tests

n8n webhook calls with httpx mocked. The forwarder never raises.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from services.automation import (
    BUSY_REPLY,
    MAINTENANCE_REPLY,
    AutomationForwarder,
)

PAYLOAD = {
    "number": "6281234567890",
    "text": "jadwal sholat",
    "timestamp": "2026-10-19T10:00:00+00:00",
    "messageId": "msg_1",
    "isAdmin": False,
    "messageType": "text",
    "wahaMessage": {},
}


def _patched(post_result=None, post_error=None):
    mock_client = MagicMock()
    if post_error is not None:
        mock_client.post = AsyncMock(side_effect=post_error)
    else:
        mock_client.post = AsyncMock(return_value=post_result)

    mock_cls = MagicMock()
    mock_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_cls.return_value.__aexit__ = AsyncMock(return_value=None)
    return mock_cls, mock_client


def _response(json_data, content=b"{...}"):
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = json_data
    response.content = content
    return response


class TestForward:
    """forward() outcomes."""

    @pytest.mark.asyncio
    async def test_not_configured_returns_maintenance_reply(self):
        forwarder = AutomationForwarder(webhook_url=None)

        with patch("httpx.AsyncClient") as mock_cls:
            result = await forwarder.forward(PAYLOAD)

        assert forwarder.is_configured() is False
        assert result.reply == MAINTENANCE_REPLY
        assert result.forwarded is False
        assert result.error == "not_configured"
        mock_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_reply_returned(self):
        mock_cls, mock_client = _patched(_response({"reply": "Maghrib 17:58", "messageType": "prayer"}))
        forwarder = AutomationForwarder(webhook_url="http://n8n:5678/webhook/masjid")

        with patch("httpx.AsyncClient", mock_cls):
            result = await forwarder.forward(PAYLOAD)

        assert result.forwarded is True
        assert result.reply == "Maghrib 17:58"
        assert result.message_type == "prayer"

        assert mock_client.post.call_args.args[0] == "http://n8n:5678/webhook/masjid"
        assert mock_client.post.call_args.kwargs["json"] == PAYLOAD
        assert mock_client.post.call_args.kwargs["headers"]["User-Agent"].startswith("Masjid-WhatsApp-Bot")

    @pytest.mark.asyncio
    async def test_no_reply_field(self):
        mock_cls, _ = _patched(_response({"ok": True}))
        forwarder = AutomationForwarder(webhook_url="http://n8n/webhook")

        with patch("httpx.AsyncClient", mock_cls):
            result = await forwarder.forward(PAYLOAD)

        assert result.forwarded is True
        assert result.reply is None
        assert result.data == {"ok": True}

    @pytest.mark.asyncio
    async def test_empty_body(self):
        mock_cls, _ = _patched(_response(None, content=b""))
        forwarder = AutomationForwarder(webhook_url="http://n8n/webhook")

        with patch("httpx.AsyncClient", mock_cls):
            result = await forwarder.forward(PAYLOAD)

        assert result.reply is None
        assert result.data == {}

    @pytest.mark.asyncio
    async def test_timeout_returns_busy_reply(self):
        mock_cls, _ = _patched(post_error=httpx.ReadTimeout("slow"))
        forwarder = AutomationForwarder(webhook_url="http://n8n/webhook")

        with patch("httpx.AsyncClient", mock_cls):
            result = await forwarder.forward(PAYLOAD)

        assert result.reply == BUSY_REPLY
        assert result.forwarded is False
        assert result.error.startswith("timeout")

    @pytest.mark.asyncio
    async def test_http_error_returns_busy_reply(self):
        failing = _response({})
        failing.raise_for_status.side_effect = httpx.HTTPStatusError(
            "500 Internal Server Error", request=MagicMock(), response=MagicMock()
        )
        mock_cls, _ = _patched(failing)
        forwarder = AutomationForwarder(webhook_url="http://n8n/webhook")

        with patch("httpx.AsyncClient", mock_cls):
            result = await forwarder.forward(PAYLOAD)

        assert result.reply == BUSY_REPLY
        assert "500" in result.error
