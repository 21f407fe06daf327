"""
Stub outbound channel for testing and offline development.

Deterministic, never touches the network, records every dispatch.
"""

from typing import Dict, List, Optional

from .base import ChannelResult, OutboundChannel
from .identifiers import InvalidChatId, to_chat_id
from .messages import SendRequest, is_send_request

# 1x1 transparent PNG
_BLANK_PNG = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01"
    b"\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


class StubChannel(OutboundChannel):
    """
    In-memory channel.

    Chats returned by get_chats() are whatever was passed in; every
    successful dispatch is appended to `sent`.
    """

    def __init__(self, session_name: str = "default", chats: Optional[List[Dict]] = None):
        self.session_name = session_name
        self.chats = list(chats or [])
        self.sent: List[SendRequest] = []

    async def dispatch(self, request: SendRequest) -> ChannelResult:
        if not is_send_request(request):
            return ChannelResult.fail(f"Unknown message type: {type(request).__name__}")
        try:
            to_chat_id(request.chat_id)
        except InvalidChatId as e:
            return ChannelResult.fail(str(e))

        self.sent.append(request)
        return ChannelResult.ok(
            {"id": f"stub_{len(self.sent)}", "kind": request.kind, "chatId": request.chat_id}
        )

    async def get_chats(self, session: Optional[str] = None) -> ChannelResult:
        return ChannelResult.ok(list(self.chats))

    async def get_session_status(self, session: Optional[str] = None) -> ChannelResult:
        return ChannelResult.ok({"name": session or self.session_name, "status": "WORKING"})

    async def get_screenshot(self, session: Optional[str] = None) -> ChannelResult:
        return ChannelResult.ok(_BLANK_PNG)
