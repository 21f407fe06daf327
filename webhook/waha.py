"""
WAHA Webhook Receiver

Receives gateway events (POST /webhook/waha) and hands them to the bot.

Event Flow:
  raw body → HMAC check (if configured) → WahaWebhookEvent
    message        → normalize → bot.handle_message (background)
    session.status → bot.handle_session_status (background)
    anything else  → acknowledged and ignored

The gateway always gets a fast 200 once the event is accepted; replies go
out through the queue.
"""

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import ValidationError

from infra.bootstrap import InfraBootstrap, get_infra
from transport.waha.normalize import NormalizationError, normalize_message, should_skip
from transport.waha.schemas import WahaSessionStatusPayload, WahaWebhookEvent
from transport.waha.security import SignatureVerificationError, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["WAHA Transport"])


@router.post("/waha")
async def waha_webhook_receiver(
    request: Request,
    background_tasks: BackgroundTasks,
    infra: InfraBootstrap = Depends(get_infra),
) -> Dict[str, Any]:
    """
    Receive WAHA webhook events.

    Expected payload:
    {
        "event": "message",
        "session": "default",
        "payload": {
            "id": "false_6281234567890@c.us_3EB0...",
            "timestamp": 1707500000,
            "from": "6281234567890@c.us",
            "fromMe": false,
            "body": "Assalamualaikum"
        }
    }

    Raises:
        HTTPException(401): Missing signature (HMAC key configured)
        HTTPException(403): Invalid signature
        HTTPException(400): Malformed JSON or event envelope
    """
    body = await request.body()

    # Security boundary
    try:
        await verify_signature(request, body, infra.config.webhook_hmac_key)
    except HTTPException as e:
        logger.warning(f"Signature verification failed: {e.detail}")
        raise
    except SignatureVerificationError as e:
        logger.warning(f"Signature error: {e}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    try:
        event = WahaWebhookEvent.model_validate(json.loads(body))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Invalid WAHA webhook payload: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")

    bot = infra.get_bot()

    if event.event == "message":
        try:
            message = normalize_message(event)
        except NormalizationError as e:
            logger.warning(f"Normalization failed: {e}")
            return {"status": "ignored", "reason": str(e)}

        if should_skip(message):
            return {"status": "ignored", "reason": "group, own or status message"}

        background_tasks.add_task(bot.handle_message, message, "waha")
        return {"status": "accepted", "messageId": message.message_id}

    if event.event == "session.status":
        try:
            session_status = WahaSessionStatusPayload.model_validate(event.payload)
        except ValidationError:
            return {"status": "ignored", "reason": "missing status"}
        background_tasks.add_task(bot.handle_session_status, event.session, session_status.status)
        return {"status": "accepted", "sessionStatus": session_status.status}

    logger.debug(f"Ignoring WAHA event: {event.event}")
    return {"status": "ignored", "event": event.event}
