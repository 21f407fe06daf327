"""
Masjid WhatsApp bot behaviour.

Everything the bot does in reaction to gateway events or operator calls:
- inbound chat message → automation webhook → queued reply → message log
- session status change → admin notification
- admin notification and broadcast fan-out

All outbound traffic goes through the MessageQueue; nothing here calls the
gateway's send endpoints directly.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Optional

from services.automation import AutomationForwarder
from services.queue import MessageQueue
from services.sheets import SheetsStore
from transport.base import OutboundChannel
from transport.identifiers import (
    GROUP_SUFFIX,
    STATUS_BROADCAST,
    chat_id_of,
    is_member,
    normalize_identifiers,
    to_chat_id,
)
from transport.messages import TextMessage
from transport.waha.normalize import should_skip
from transport.waha.schemas import NormalizedMessage

logger = logging.getLogger(__name__)

APOLOGY_REPLY = "🙏 Maaf, terjadi kendala teknis. Silakan coba lagi dalam beberapa saat."
ADMIN_PREFIX = "🔔 ADMIN NOTIFICATION\n\n"

SESSION_STATUS_NOTICES = {
    "CONFLICT": "⚠️ Bot mengalami konflik session. Perlu restart dan autentikasi ulang.",
    "UNPAIRED": "⚠️ Bot mengalami konflik session. Perlu restart dan autentikasi ulang.",
    "WORKING": "✅ Bot berhasil terhubung dan siap beroperasi!",
    "SCAN_QR_CODE": "📱 Bot memerlukan scan QR code. Silakan buka dashboard WAHA.",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MasjidBot:
    """
    Bot behaviour wired over the queue and its collaborators.

    Args:
        channel: Outbound channel (status, chat listing)
        queue: Outbound message queue
        sheets: Spreadsheet logger
        automation: n8n forwarder producing replies
        admin_numbers: Normalized admin allow-list
        broadcast_delay: Seconds between consecutive broadcast sends
        gateway_url: Shown in status responses
    """

    def __init__(
        self,
        channel: OutboundChannel,
        queue: MessageQueue,
        sheets: SheetsStore,
        automation: AutomationForwarder,
        admin_numbers: FrozenSet[str] = frozenset(),
        broadcast_delay: float = 2.0,
        gateway_url: str = "",
    ):
        self.channel = channel
        self.queue = queue
        self.sheets = sheets
        self.automation = automation
        self.admin_numbers = frozenset(admin_numbers)
        self.broadcast_delay = broadcast_delay
        self.gateway_url = gateway_url

    def is_admin(self, identifier: str) -> bool:
        return is_member(identifier, self.admin_numbers)

    # ──────────────────────────────────────────────────────────
    # Inbound
    # ──────────────────────────────────────────────────────────

    async def handle_message(self, message: NormalizedMessage, source: str = "whatsapp") -> Optional[str]:
        """
        Answer one inbound chat message.

        Returns:
            The reply text that was queued, or None if the message was skipped
            or the workflow produced no reply
        """
        if should_skip(message):
            logger.debug(f"Skipping message {message.message_id} from {message.chat_id}")
            return None

        logger.info(
            f"Message received from {message.sender}: {message.text or message.message_type}",
            extra={"sender": message.sender, "message_id": message.message_id},
        )

        try:
            is_admin = self.is_admin(message.sender)
            result = await self.automation.forward({
                "number": message.sender,
                "text": message.text,
                "timestamp": _now_iso(),
                "messageId": message.message_id,
                "isAdmin": is_admin,
                "messageType": message.message_type,
                "wahaMessage": message.raw,
            })

            if not result.reply:
                return None

            self.queue.enqueue(TextMessage(chat_id=message.chat_id, text=result.reply), priority="normal")

        except Exception as e:
            logger.error(f"Error processing message {message.message_id}: {e}", exc_info=True)
            self.queue.enqueue(TextMessage(chat_id=message.chat_id, text=APOLOGY_REPLY), priority="high")
            return APOLOGY_REPLY

        # The reply is already queued; a logging failure must not trigger the apology.
        try:
            await self.sheets.log_message(
                number=message.sender,
                text=message.text,
                message_type=result.message_type or message.message_type or "unknown",
                reply=result.reply,
                is_admin=is_admin,
                source=source,
            )
        except Exception as e:
            logger.error(f"Failed to log message {message.message_id}: {e}", exc_info=True)
        return result.reply

    async def handle_session_status(self, session: str, status: str) -> Optional[str]:
        """Notify admins about the session states operators must act on."""
        logger.info(f"Session '{session}' status changed: {status}")
        notice = SESSION_STATUS_NOTICES.get((status or "").upper())
        if notice:
            await self.notify_admins(notice)
        return notice

    # ──────────────────────────────────────────────────────────
    # Outbound fan-out
    # ──────────────────────────────────────────────────────────

    async def notify_admins(self, text: str) -> int:
        """Queue a high-priority notice to every admin. Returns how many were queued."""
        queued = 0
        for admin in sorted(self.admin_numbers):
            try:
                chat_id = to_chat_id(admin)
            except ValueError as e:
                logger.error(f"Cannot notify admin {admin}: {e}")
                continue
            self.queue.enqueue(TextMessage(chat_id=chat_id, text=f"{ADMIN_PREFIX}{text}"), priority="high")
            queued += 1
        return queued

    async def broadcast(
        self,
        text: str,
        exclude: Iterable[str] = (),
        priority: str = "low",
        notify: bool = True,
    ) -> Dict[str, Any]:
        """
        Queue `text` to every private chat not in `exclude`.

        Exclusions match whether given bare ("62812...") or suffixed ("62812...@c.us").
        Consecutive sends are spaced by broadcast_delay on top of queue pacing.

        Returns:
            {"success": n_queued, "failed": n_failed, "total": n_targets}
        """
        excluded = normalize_identifiers(exclude)

        chats = await self.channel.get_chats()
        if not chats.success:
            logger.error(f"Broadcast aborted, cannot list chats: {chats.error}")
            return {"success": 0, "failed": 0, "total": 0, "error": chats.error}

        targets = []
        for chat in chats.data or []:
            chat_id = chat_id_of(chat)
            if not chat_id or chat_id.endswith(GROUP_SUFFIX) or chat_id == STATUS_BROADCAST:
                continue
            if is_member(chat_id, excluded):
                continue
            targets.append(chat_id)

        success = failed = 0
        for index, chat_id in enumerate(targets):
            try:
                self.queue.enqueue(
                    TextMessage(chat_id=to_chat_id(chat_id), text=text),
                    priority=priority,
                    delay=index * self.broadcast_delay,
                )
                success += 1
            except (TypeError, ValueError) as e:
                logger.error(f"Broadcast to {chat_id} not queued: {e}")
                failed += 1

        logger.info(f"Broadcast queued: {success} ok, {failed} failed, {len(targets)} targets")

        if notify:
            await self.notify_admins(f"📊 Broadcast selesai:\n✅ Berhasil: {success}\n❌ Gagal: {failed}")

        return {"success": success, "failed": failed, "total": len(targets)}

    # ──────────────────────────────────────────────────────────
    # Status
    # ──────────────────────────────────────────────────────────

    async def get_status(self) -> Dict[str, Any]:
        status = await self.channel.get_session_status()
        state = (status.data or {}).get("status", "UNKNOWN") if isinstance(status.data, dict) else "UNKNOWN"
        return {
            "connected": status.success and state == "WORKING",
            "status": state,
            "sessionName": self.channel.session_name,
            "wahaUrl": self.gateway_url,
            "queue": self.queue.snapshot(),
            "timestamp": _now_iso(),
        }

    async def get_stats(self) -> Dict[str, Any]:
        """Chat/contact counts (when the channel can provide them) plus queue state and sheet usage."""
        stats: Dict[str, Any] = {"session": self.channel.session_name}

        detailed = getattr(self.channel, "get_detailed_status", None)
        if detailed is not None:
            stats.update(await detailed())
        else:
            chats = await self.channel.get_chats()
            chat_list = chats.data if chats.success and isinstance(chats.data, list) else []
            groups = sum(1 for chat in chat_list if chat_id_of(chat).endswith(GROUP_SUFFIX))
            stats.update({
                "totalChats": len(chat_list),
                "privateChats": len(chat_list) - groups,
                "groupChats": groups,
            })

        usage = await self.sheets.get_usage_stats()
        stats.update({
            "queueSize": self.queue.size,
            "isProcessingQueue": self.queue.is_draining,
            "queueStats": dict(self.queue.stats),
            "usage": usage.get("stats") if usage.get("success") else None,
            "timestamp": _now_iso(),
        })
        return stats
