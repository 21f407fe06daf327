"""
Outbound send endpoints.

POST /webhook/send-message  → queue a text message
POST /webhook/send-image    → queue an image
POST /webhook/broadcast     → queue a text to every private chat

Nothing here waits for delivery: responses report what was queued.
"""

import logging
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.errors import error_response
from infra.bootstrap import InfraBootstrap, get_infra
from transport.identifiers import InvalidChatId, to_chat_id
from transport.messages import ImageMessage, TextMessage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["outbound"])


class SendMessageBody(BaseModel):
    chatId: str = Field(..., min_length=1, description="Number or chat id (…@c.us / …@g.us)")
    text: str = Field(..., min_length=1)
    sessionName: Optional[str] = None
    priority: Literal["high", "normal", "low"] = "normal"


class SendImageBody(BaseModel):
    chatId: str = Field(..., min_length=1)
    imageUrl: str = Field(..., min_length=1)
    caption: str = ""
    sessionName: Optional[str] = None
    priority: Literal["high", "normal", "low"] = "normal"


class BroadcastBody(BaseModel):
    message: str = Field(..., min_length=1)
    excludeNumbers: List[str] = Field(default_factory=list)
    sessionName: Optional[str] = None


def _check_session(infra: InfraBootstrap, session_name: Optional[str]) -> None:
    configured = infra.get_channel().session_name
    if session_name and session_name != configured:
        logger.warning(f"Request for session '{session_name}' served by '{configured}'")


@router.post("/send-message")
async def send_message(body: SendMessageBody, infra: InfraBootstrap = Depends(get_infra)):
    """
    Queue a text message.

    Returns:
        {"success": true, "messageId": "...", "chatId": "...@c.us", "status": "queued"}
    """
    _check_session(infra, body.sessionName)
    try:
        chat_id = to_chat_id(body.chatId)
    except InvalidChatId as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))

    message_id = infra.get_queue().enqueue(TextMessage(chat_id=chat_id, text=body.text), body.priority)
    return {"success": True, "messageId": message_id, "chatId": chat_id, "status": "queued"}


@router.post("/send-image")
async def send_image(body: SendImageBody, infra: InfraBootstrap = Depends(get_infra)):
    """Queue an image with optional caption."""
    _check_session(infra, body.sessionName)
    try:
        chat_id = to_chat_id(body.chatId)
    except InvalidChatId as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))

    request = ImageMessage(chat_id=chat_id, image_url=body.imageUrl, caption=body.caption)
    message_id = infra.get_queue().enqueue(request, body.priority)
    return {"success": True, "messageId": message_id, "chatId": chat_id, "status": "queued"}


@router.post("/broadcast")
async def broadcast(body: BroadcastBody, infra: InfraBootstrap = Depends(get_infra)):
    """
    Queue `message` to every private chat of the session.

    excludeNumbers may mix bare numbers and …@c.us ids.
    """
    _check_session(infra, body.sessionName)
    result = await infra.get_bot().broadcast(body.message, exclude=body.excludeNumbers)

    if "error" in result:
        return error_response(status.HTTP_502_BAD_GATEWAY, result["error"], successCount=0, errorCount=0)

    return {
        "success": True,
        "successCount": result["success"],
        "errorCount": result["failed"],
        "total": result["total"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
