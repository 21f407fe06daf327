"""
Automation-facing webhooks (called by n8n workflows and schedulers).

POST /webhook/n8n                  {type, payload} → reply / broadcast / prayer reminder
POST /webhook/prayer-notification  {prayerName, time, city?} → broadcast reminder
POST /webhook/status               {status, session?} → admin notification
"""

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.errors import error_response, parse_nested
from config import Config
from infra.bootstrap import InfraBootstrap, get_infra
from webhook.outbound import BroadcastBody
from transport.identifiers import to_chat_id
from transport.messages import UnsupportedMessageType, parse_send_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["automation"])

N8N_TYPES = ["message_reply", "broadcast", "prayer_reminder"]


class N8nBody(BaseModel):
    type: str = Field(..., min_length=1)
    payload: Dict[str, Any] = Field(default_factory=dict)


class PrayerNotificationBody(BaseModel):
    prayerName: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)
    city: Optional[str] = None
    excludeNumbers: List[str] = Field(default_factory=list)


class StatusBody(BaseModel):
    status: Optional[str] = None
    session: Optional[str] = None

    class Config:
        extra = "allow"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_prayer_notification(prayer_name: str, time: str, city: Optional[str]) -> str:
    return (
        f"🕌 *Waktu Sholat {prayer_name}*\n\n"
        f"⏰ Waktu: {time}\n"
        f"📍 Lokasi: {city or Config.DEFAULT_CITY}\n\n"
        f"🤲 Mari bersiap untuk menunaikan sholat {prayer_name}"
    )


async def _message_reply(infra: InfraBootstrap, payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = dict(payload)
    fields.setdefault("chatId", payload.get("number"))
    request = parse_send_request(fields)
    request = dataclasses.replace(request, chat_id=to_chat_id(request.chat_id))

    message_id = infra.get_queue().enqueue(request, payload.get("priority", "normal"))
    return {
        "success": True,
        "action": "message_queued",
        "number": payload.get("number"),
        "chatId": request.chat_id,
        "messageId": message_id,
    }


async def _broadcast(infra: InfraBootstrap, payload: Dict[str, Any]) -> Dict[str, Any]:
    if not payload.get("message"):
        raise ValueError("payload.message is required")
    body = parse_nested(BroadcastBody, payload, "payload")
    message = body.message.strip()
    if not message:
        raise ValueError("payload.message is required")
    result = await infra.get_bot().broadcast(message, exclude=body.excludeNumbers)
    return {
        "success": "error" not in result,
        "action": "broadcast_queued",
        "successCount": result["success"],
        "errorCount": result["failed"],
        "total": result["total"],
    }


async def _prayer_reminder(infra: InfraBootstrap, payload: Dict[str, Any]) -> Dict[str, Any]:
    if not payload.get("prayerName") or not payload.get("time"):
        raise ValueError("payload.prayerName and payload.time are required")
    body = parse_nested(PrayerNotificationBody, payload, "payload")
    text = format_prayer_notification(body.prayerName, body.time, body.city)
    result = await infra.get_bot().broadcast(
        text, exclude=body.excludeNumbers, priority="normal", notify=False
    )
    return {
        "success": "error" not in result,
        "action": "prayer_reminder_queued",
        "prayerName": body.prayerName,
        "time": body.time,
        "city": body.city,
        "successCount": result["success"],
        "errorCount": result["failed"],
    }


@router.post("/n8n")
async def n8n_webhook(body: N8nBody, infra: InfraBootstrap = Depends(get_infra)):
    """Dispatch on `type`; unknown types are a 400."""
    logger.info(f"n8n webhook received: {body.type}")

    handlers = {
        "message_reply": _message_reply,
        "broadcast": _broadcast,
        "prayer_reminder": _prayer_reminder,
    }
    handler = handlers.get(body.type)
    if handler is None:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Unknown webhook type",
            type=body.type,
            availableTypes=N8N_TYPES,
        )

    try:
        result = await handler(infra, body.payload)
    except (UnsupportedMessageType, ValueError) as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e), type=body.type)

    result["timestamp"] = _now_iso()
    return result


@router.post("/prayer-notification")
async def prayer_notification(body: PrayerNotificationBody, infra: InfraBootstrap = Depends(get_infra)):
    """Broadcast a prayer-time reminder to every private chat."""
    logger.info(f"Prayer notification: {body.prayerName} at {body.time} in {body.city or Config.DEFAULT_CITY}")

    text = format_prayer_notification(body.prayerName, body.time, body.city)
    result = await infra.get_bot().broadcast(
        text, exclude=body.excludeNumbers, priority="normal", notify=False
    )
    if "error" in result:
        return error_response(status.HTTP_502_BAD_GATEWAY, result["error"])

    return {
        "success": True,
        "message": "Prayer notification queued",
        "prayerName": body.prayerName,
        "time": body.time,
        "city": body.city,
        "successCount": result["success"],
        "errorCount": result["failed"],
        "timestamp": _now_iso(),
    }


@router.post("/status")
async def status_update(body: StatusBody, infra: InfraBootstrap = Depends(get_infra)):
    """Accept an external status update; known session states notify admins."""
    logger.info(f"Status update received: {body.model_dump()}")

    notice = None
    if body.status:
        session = body.session or infra.get_channel().session_name
        notice = await infra.get_bot().handle_session_status(session, body.status)

    return {
        "success": True,
        "message": "Status update processed",
        "adminsNotified": notice is not None,
        "timestamp": _now_iso(),
    }
