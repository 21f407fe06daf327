"""
Automation webhook forwarder (n8n).

Posts each inbound chat message to the workflow webhook and returns the
reply it produced. No retries. Never raises.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "Masjid-WhatsApp-Bot/2.0-WAHA"

MAINTENANCE_REPLY = "🔧 Bot sedang dalam maintenance. Silakan coba lagi nanti."
BUSY_REPLY = "🙏 Maaf, sistem sedang sibuk. Silakan coba lagi dalam beberapa menit."


@dataclass
class AutomationReply:
    """What the workflow answered. `forwarded` is False when a fallback reply was used."""

    reply: Optional[str] = None
    message_type: Optional[str] = None
    forwarded: bool = True
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


class AutomationForwarder:
    """Thin async client for the n8n webhook."""

    def __init__(self, webhook_url: Optional[str], timeout: float = 30.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    async def forward(self, payload: Dict[str, Any]) -> AutomationReply:
        """
        Args:
            payload: {number, text, timestamp, messageId, isAdmin, messageType, wahaMessage}

        Returns:
            AutomationReply; maintenance reply when unconfigured, busy reply on failure
        """
        if not self.is_configured():
            logger.error("N8N_WEBHOOK_URL not configured")
            return AutomationReply(reply=MAINTENANCE_REPLY, forwarded=False, error="not_configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json", "User-Agent": USER_AGENT},
                )
                response.raise_for_status()
            data = response.json() if response.content else {}
        except httpx.TimeoutException as e:
            logger.error(f"Automation webhook timed out: {e}")
            return AutomationReply(reply=BUSY_REPLY, forwarded=False, error=f"timeout: {e}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error sending to automation webhook: {e}")
            return AutomationReply(reply=BUSY_REPLY, forwarded=False, error=str(e))

        if not isinstance(data, dict):
            data = {}
        return AutomationReply(
            reply=data.get("reply") or None,
            message_type=data.get("messageType"),
            data=data,
        )
