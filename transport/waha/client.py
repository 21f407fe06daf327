"""
WAHA Gateway Client

Outbound channel backed by a WAHA (WhatsApp HTTP API) gateway.
No formatting intelligence. No retries. No logic.
If WAHA fails → log and return ChannelResult(success=False).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from transport.base import ChannelResult, OutboundChannel
from transport.identifiers import GROUP_SUFFIX, InvalidChatId, chat_id_of, to_chat_id
from transport.messages import (
    ContactMessage,
    DocumentMessage,
    ImageMessage,
    LocationMessage,
    SendRequest,
    TextMessage,
    VoiceMessage,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
HEALTH_TIMEOUT_S = 5.0
SESSION_EVENTS = ["message", "session.status"]
WEBHOOK_EVENTS = ["message", "session.status", "message.reaction", "message.revoked"]


class WAHAClient(OutboundChannel):
    """
    Async client for the WAHA REST API.

    Every public call returns a ChannelResult and never raises for
    network errors, non-2xx responses or malformed chat ids.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        api_key: str = "admin",
        session_name: str = "default",
        webhook_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session_name = session_name
        self.webhook_url = webhook_url
        self.timeout = timeout

    # ──────────────────────────────────────────────────────────
    # HTTP plumbing
    # ──────────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Api-Key": self.api_key,
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        binary: bool = False,
    ) -> ChannelResult:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=timeout or self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=self._headers(),
                )
        except httpx.TimeoutException as e:
            return ChannelResult.fail(f"WAHA request timed out: {method} {path} ({e})")
        except httpx.RequestError as e:
            return ChannelResult.fail(f"HTTP request failed: {e}")

        if not 200 <= response.status_code < 300:
            return ChannelResult.fail(
                f"WAHA API returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if binary:
            return ChannelResult.ok(response.content, status_code=response.status_code)

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = {"raw_text": response.text}
        return ChannelResult.ok(data, status_code=response.status_code)

    async def _send(self, path: str, chat_id: str, label: str, **fields: Any) -> ChannelResult:
        try:
            chat = to_chat_id(chat_id)
        except InvalidChatId as e:
            logger.error(f"Refusing to send {label}: {e}", extra={"chat_id": chat_id})
            return ChannelResult.fail(str(e))

        body = {"session": self.session_name, "chatId": chat, **fields}
        result = await self._request("POST", path, json=body)

        if result.success:
            logger.info(f"{label.capitalize()} sent to {chat}", extra={"chat_id": chat})
        else:
            logger.error(
                f"Failed to send {label} to {chat}: {result.error}",
                extra={"chat_id": chat, "status_code": result.status_code},
            )
        return result

    def _session_params(self, session: Optional[str] = None) -> Dict[str, str]:
        return {"session": session or self.session_name}

    # ──────────────────────────────────────────────────────────
    # Dispatch (queue entry point)
    # ──────────────────────────────────────────────────────────

    async def dispatch(self, request: SendRequest) -> ChannelResult:
        if isinstance(request, TextMessage):
            return await self.send_text(request.chat_id, request.text)
        elif isinstance(request, ImageMessage):
            return await self.send_image(request.chat_id, request.image_url, request.caption)
        elif isinstance(request, VoiceMessage):
            return await self.send_voice(request.chat_id, request.audio_url)
        elif isinstance(request, DocumentMessage):
            return await self.send_document(
                request.chat_id, request.document_url, request.filename, request.caption
            )
        elif isinstance(request, LocationMessage):
            return await self.send_location(
                request.chat_id, request.latitude, request.longitude, request.name, request.address
            )
        elif isinstance(request, ContactMessage):
            return await self.send_contact(request.chat_id, request.contact)
        return ChannelResult.fail(f"Unknown message type: {type(request).__name__}")

    # ──────────────────────────────────────────────────────────
    # Sending
    # ──────────────────────────────────────────────────────────

    async def send_text(self, chat_id: str, text: str) -> ChannelResult:
        return await self._send("/api/sendText", chat_id, "message", text=text)

    async def send_image(self, chat_id: str, image_url: str, caption: str = "") -> ChannelResult:
        return await self._send("/api/sendImage", chat_id, "image", url=image_url, caption=caption)

    async def send_voice(self, chat_id: str, audio_url: str) -> ChannelResult:
        return await self._send("/api/sendVoice", chat_id, "voice message", url=audio_url)

    async def send_document(
        self, chat_id: str, document_url: str, filename: str = "", caption: str = ""
    ) -> ChannelResult:
        return await self._send(
            "/api/sendFile", chat_id, "document", url=document_url, filename=filename, caption=caption
        )

    async def send_location(
        self,
        chat_id: str,
        latitude: float,
        longitude: float,
        name: str = "",
        address: str = "",
    ) -> ChannelResult:
        return await self._send(
            "/api/sendLocation",
            chat_id,
            "location",
            latitude=float(latitude),
            longitude=float(longitude),
            name=name,
            address=address,
        )

    async def send_contact(self, chat_id: str, contact: Dict[str, Any]) -> ChannelResult:
        return await self._send("/api/sendContact", chat_id, "contact", contact=contact)

    async def reply_to_message(self, chat_id: str, text: str, message_id: str) -> ChannelResult:
        return await self._send("/api/reply", chat_id, "reply", text=text, reply_to=message_id)

    async def react_to_message(self, chat_id: str, message_id: str, emoji: str) -> ChannelResult:
        return await self._send(
            "/api/reaction", chat_id, "reaction", messageId=message_id, reaction=emoji
        )

    async def mark_as_read(self, chat_id: str, message_id: str) -> ChannelResult:
        return await self._send("/api/markAsRead", chat_id, "read receipt", messageId=message_id)

    async def start_typing(self, chat_id: str) -> ChannelResult:
        return await self._send("/api/startTyping", chat_id, "typing indicator")

    async def stop_typing(self, chat_id: str) -> ChannelResult:
        return await self._send("/api/stopTyping", chat_id, "typing stop")

    async def set_presence(self, presence: str) -> ChannelResult:
        """presence: available | unavailable | composing | recording"""
        return await self._request(
            "POST", "/api/presence", json={"session": self.session_name, "presence": presence}
        )

    # ──────────────────────────────────────────────────────────
    # Groups
    # ──────────────────────────────────────────────────────────

    async def create_group(self, name: str, participants: List[str]) -> ChannelResult:
        return await self._request(
            "POST",
            "/api/groups",
            json={"session": self.session_name, "name": name, "participants": participants},
        )

    async def _group_participants(self, method: str, group_id: str, suffix: str, participant_id: str) -> ChannelResult:
        if not group_id.endswith(GROUP_SUFFIX):
            return ChannelResult.fail(f"Malformed group id: {group_id!r}")
        return await self._request(
            method,
            f"/api/groups/{group_id}{suffix}",
            json={"session": self.session_name, "participants": [participant_id]},
        )

    async def add_participant(self, group_id: str, participant_id: str) -> ChannelResult:
        return await self._group_participants("POST", group_id, "/participants", participant_id)

    async def remove_participant(self, group_id: str, participant_id: str) -> ChannelResult:
        return await self._group_participants("DELETE", group_id, "/participants", participant_id)

    async def promote_participant(self, group_id: str, participant_id: str) -> ChannelResult:
        return await self._group_participants("POST", group_id, "/admin/promote", participant_id)

    async def demote_participant(self, group_id: str, participant_id: str) -> ChannelResult:
        return await self._group_participants("POST", group_id, "/admin/demote", participant_id)

    async def set_group_description(self, group_id: str, description: str) -> ChannelResult:
        return await self._request(
            "PUT",
            f"/api/groups/{group_id}/description",
            json={"session": self.session_name, "description": description},
        )

    async def set_group_subject(self, group_id: str, subject: str) -> ChannelResult:
        return await self._request(
            "PUT",
            f"/api/groups/{group_id}/subject",
            json={"session": self.session_name, "subject": subject},
        )

    # ──────────────────────────────────────────────────────────
    # Contacts & chats
    # ──────────────────────────────────────────────────────────

    async def get_contacts(self, session: Optional[str] = None) -> ChannelResult:
        return await self._request("GET", "/api/contacts", params=self._session_params(session))

    async def get_contact_info(self, contact_id: str) -> ChannelResult:
        return await self._request(
            "GET", f"/api/contacts/{contact_id}", params=self._session_params()
        )

    async def get_profile_picture(self, contact_id: str) -> ChannelResult:
        return await self._request(
            "GET", f"/api/contacts/{contact_id}/picture", params=self._session_params()
        )

    async def block_contact(self, contact_id: str) -> ChannelResult:
        return await self._request(
            "POST", "/api/contacts/block", json={"session": self.session_name, "contactId": contact_id}
        )

    async def unblock_contact(self, contact_id: str) -> ChannelResult:
        return await self._request(
            "POST", "/api/contacts/unblock", json={"session": self.session_name, "contactId": contact_id}
        )

    async def get_chats(self, session: Optional[str] = None) -> ChannelResult:
        return await self._request("GET", "/api/chats", params=self._session_params(session))

    async def mute_chat(self, chat_id: str) -> ChannelResult:
        return await self._send("/api/chats/mute", chat_id, "mute")

    async def unmute_chat(self, chat_id: str) -> ChannelResult:
        return await self._send("/api/chats/unmute", chat_id, "unmute")

    async def clear_chat(self, chat_id: str) -> ChannelResult:
        return await self._send("/api/chats/clear", chat_id, "clear")

    async def delete_chat(self, chat_id: str) -> ChannelResult:
        return await self._request(
            "DELETE", f"/api/chats/{chat_id}", json={"session": self.session_name}
        )

    # ──────────────────────────────────────────────────────────
    # Sessions
    # ──────────────────────────────────────────────────────────

    async def check_health(self) -> ChannelResult:
        """GET /api/version: is the WAHA service reachable?"""
        result = await self._request("GET", "/api/version", timeout=HEALTH_TIMEOUT_S)
        if result.success:
            version = (result.data or {}).get("version") if isinstance(result.data, dict) else None
            logger.info(f"WAHA service is running, version: {version}")
        else:
            result.error = f"WAHA service is not available at {self.base_url}: {result.error}"
        return result

    async def get_session_status(self, session: Optional[str] = None) -> ChannelResult:
        name = session or self.session_name
        result = await self._request("GET", f"/api/sessions/{name}")
        if not result.success:
            # Status endpoints report FAILED rather than erroring
            result.data = {"name": name, "status": "FAILED", "error": result.error}
        return result

    async def list_sessions(self) -> ChannelResult:
        return await self._request("GET", "/api/sessions")

    async def start_session(self) -> ChannelResult:
        """Start the configured session unless it is already WORKING."""
        sessions = await self.list_sessions()
        if sessions.success and isinstance(sessions.data, list):
            for existing in sessions.data:
                if existing.get("name") == self.session_name and existing.get("status") == "WORKING":
                    logger.info(f"Session '{self.session_name}' is already running")
                    return ChannelResult.ok(existing)

        webhooks = [{"url": self.webhook_url, "events": SESSION_EVENTS}] if self.webhook_url else []
        result = await self._request(
            "POST",
            "/api/sessions",
            json={"name": self.session_name, "config": {"proxy": None, "webhooks": webhooks}},
        )
        if result.status_code == 409:
            logger.info(f"Session '{self.session_name}' already exists")
            return await self.get_session_status()
        if result.success:
            logger.info(f"Session '{self.session_name}' started successfully")
        return result

    async def stop_session(self) -> ChannelResult:
        result = await self._request("DELETE", f"/api/sessions/{self.session_name}")
        if result.success:
            logger.info(f"Session '{self.session_name}' stopped")
        else:
            logger.error(f"Error stopping session: {result.error}")
        return result

    async def setup_webhook(self) -> ChannelResult:
        if not self.webhook_url:
            return ChannelResult.fail("WEBHOOK_URL not configured")
        result = await self._request(
            "POST",
            f"/api/sessions/{self.session_name}/webhooks",
            json={"url": self.webhook_url, "events": WEBHOOK_EVENTS},
        )
        if result.success:
            logger.info("Webhook configured successfully")
        else:
            logger.warning(f"Failed to setup webhook: {result.error}")
        return result

    async def initialize(self) -> ChannelResult:
        """
        Bring the gateway session up: health → session → webhook.

        Stops at the first failing step and returns its result.
        """
        health = await self.check_health()
        if not health.success:
            return health

        session = await self.start_session()
        if not session.success:
            return session

        if self.webhook_url:
            await self.setup_webhook()
        return session

    async def get_qr_code(self, session: Optional[str] = None) -> ChannelResult:
        name = session or self.session_name
        return await self._request("GET", f"/api/sessions/{name}/qr", binary=True)

    async def get_screenshot(self, session: Optional[str] = None) -> ChannelResult:
        return await self._request(
            "GET", "/api/screenshot", params=self._session_params(session), binary=True
        )

    async def download_media(self, message_id: str, session: Optional[str] = None) -> ChannelResult:
        """Raw bytes of the media attached to an inbound message."""
        if not message_id:
            return ChannelResult.fail("message_id is required")

        result = await self._request(
            "GET", f"/api/files/{quote(message_id, safe='@')}",
            params=self._session_params(session), binary=True,
        )
        if not result.success:
            logger.error(f"Failed to download media for {message_id}: {result.error}")
        return result

    async def get_detailed_status(self) -> Dict[str, Any]:
        """Session status plus chat/contact counts, fetched concurrently."""
        session, chats, contacts = await asyncio.gather(
            self.get_session_status(),
            self.get_chats(),
            self.get_contacts(),
        )
        chat_list = chats.data if chats.success and isinstance(chats.data, list) else []
        contact_list = contacts.data if contacts.success and isinstance(contacts.data, list) else []
        group_count = sum(1 for chat in chat_list if chat_id_of(chat).endswith(GROUP_SUFFIX))

        return {
            "session": session.data,
            "totalChats": len(chat_list),
            "privateChats": len(chat_list) - group_count,
            "groupChats": group_count,
            "totalContacts": len(contact_list),
        }
