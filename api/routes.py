"""
REST API under /api.

Serves:
- /api/status: Gateway, queue and integration status
- /api/session/status/{session}, /api/screenshot/{session}: Gateway session views
- /api/prayer/{city}: Today's prayer times (Aladhan, MyQuran fallback)
- /api/ai-chat: One-shot AI answer
- /api/faq, /api/sheets/test: Spreadsheet store
- /api/message: Simulated inbound message (automation webhook + log, no reply sent)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, Field

from api.errors import error_response
from config import Config
from inference import ModelRequest
from infra.bootstrap import InfraBootstrap, get_infra
from services.prayer import PrayerTimesUnavailable, format_prayer_times
from services.sheets import search_faq

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

_started_at = time.time()


class AIChatBody(BaseModel):
    message: str = Field(..., min_length=1)


class SimulatedMessageBody(BaseModel):
    number: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/status")
async def api_status(infra: InfraBootstrap = Depends(get_infra)):
    """Process status plus the bot's view of the gateway session."""
    bot_status = await infra.get_bot().get_status()
    return {
        "status": "healthy",
        "timestamp": _now_iso(),
        "uptime": time.time() - _started_at,
        "bot": bot_status,
        "environment": {
            "environment": Config.ENVIRONMENT,
            "channel_backend": infra.config.channel_backend,
            "openrouter_configured": infra.get_llm_backend().is_configured(),
            "google_sheets_configured": infra.get_sheets().is_configured(),
            "automation_configured": infra.get_automation().is_configured(),
            "prayer_api": infra.config.prayer_api_base,
        },
    }


@router.get("/session/status/{session_name}")
async def session_status(session_name: str, infra: InfraBootstrap = Depends(get_infra)):
    result = await infra.get_channel().get_session_status(session_name)
    return {"success": result.success, "session": session_name, "data": result.data, "error": result.error}


@router.get("/screenshot/{session_name}")
async def session_screenshot(session_name: str, infra: InfraBootstrap = Depends(get_infra)):
    """PNG screenshot of the session."""
    result = await infra.get_channel().get_screenshot(session_name)
    if not result.success:
        return error_response(status.HTTP_502_BAD_GATEWAY, "Screenshot failed", message=result.error)
    return Response(content=result.data, media_type="image/png")


@router.get("/prayer/{city}")
async def prayer_times(city: str, infra: InfraBootstrap = Depends(get_infra)):
    sheets = infra.get_sheets()
    try:
        times = await infra.get_prayer_resolver().resolve(city)
    except PrayerTimesUnavailable as e:
        logger.error(f"Prayer times error: {e}")
        await sheets.log_prayer_request("api_test", city, source="api_error", success=False, error=str(e))
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to get prayer times",
            message=str(e),
        )

    await sheets.log_prayer_request("api_test", city, source=times.source, success=True)
    return {"success": True, "data": times.to_dict(), "formatted": format_prayer_times(times)}


@router.post("/ai-chat")
async def ai_chat(body: AIChatBody, infra: InfraBootstrap = Depends(get_infra)):
    backend = infra.get_llm_backend()
    if not backend.is_configured():
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "OpenRouter API not configured")

    # Blocking HTTP client; keep it off the event loop
    response = await run_in_threadpool(backend.generate, ModelRequest(task="chat", prompt=body.message))

    if response.status != "success":
        metadata = response.metadata or {}
        logger.error(f"AI chat failed: {response.error_type} {metadata.get('error', '')}")
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "AI Chat failed",
            message=metadata.get("error") or response.error_type,
        )

    await infra.get_sheets().log_message(
        number="api_test",
        text=body.message,
        message_type="ai_chat",
        reply=response.output or "",
        source="api_direct",
    )
    return {
        "success": True,
        "data": {
            "question": body.message,
            "answer": response.output,
            "model": (response.metadata or {}).get("model"),
            "timestamp": _now_iso(),
        },
    }


@router.get("/faq")
async def faq(q: Optional[str] = None, infra: InfraBootstrap = Depends(get_infra)):
    """All FAQ entries, or the best match for ?q=."""
    sheets = infra.get_sheets()
    if not sheets.is_configured():
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Google Sheets not configured")

    entries = await sheets.get_faq()
    if q is not None:
        match = search_faq(entries, q)
        return {"success": True, "query": q, "data": match.to_dict() if match else None, "timestamp": _now_iso()}

    return {
        "success": True,
        "count": len(entries),
        "data": [entry.to_dict() for entry in entries],
        "timestamp": _now_iso(),
    }


@router.get("/sheets/test")
async def sheets_test(infra: InfraBootstrap = Depends(get_infra)):
    sheets = infra.get_sheets()
    if not sheets.is_configured():
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Google Sheets not configured",
            message="GOOGLE_SHEETS_API_KEY or GOOGLE_SHEETS_ID missing",
        )

    connection = await sheets.test_connection()
    logged = await sheets.log_message(
        number="api_test",
        text="Test message from API endpoint",
        message_type="api_test",
        reply="Test successful",
        source="api_endpoint",
    )
    ok = connection["success"] and logged["success"]
    return {
        "success": ok,
        "message": "Google Sheets connection working!" if ok else "Google Sheets test failed",
        "data": {"connection": connection, "log": logged},
        "timestamp": _now_iso(),
    }


@router.post("/message")
async def simulated_message(body: SimulatedMessageBody, infra: InfraBootstrap = Depends(get_infra)):
    """Run a message through the automation webhook and log it; nothing is sent to WhatsApp."""
    logger.info(f"Simulated message from {body.number}: {body.text}")

    message_data = {
        "number": body.number,
        "text": body.text,
        "timestamp": _now_iso(),
        "messageId": f"test_{int(time.time() * 1000)}",
        "isAdmin": infra.get_bot().is_admin(body.number),
    }

    automation = infra.get_automation()
    reply = await automation.forward(message_data) if automation.is_configured() else None

    logged = await infra.get_sheets().log_message(
        number=body.number,
        text=body.text,
        message_type="api_test",
        reply=(reply.reply if reply and reply.reply else "No reply from n8n"),
        is_admin=message_data["isAdmin"],
        source="api_test",
    )
    return {
        "success": True,
        "message": "Message processed successfully",
        "data": {
            "original_message": message_data,
            "n8n_response": (reply.data or {"reply": reply.reply, "error": reply.error}) if reply else None,
            "sheets_logged": logged.get("success", False),
            "timestamp": _now_iso(),
        },
    }
