"""
Admin command endpoint.

POST /webhook/admin {command, adminNumber, data}

Only numbers on the ADMIN_NUMBERS allow-list may call it; anything else is
rejected with 403 before any command runs. Executed commands are recorded
in the AdminLog sheet.
"""

import base64
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from api.errors import error_response, parse_nested
from infra.bootstrap import InfraBootstrap, get_infra
from webhook.outbound import BroadcastBody

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["admin"])

ADMIN_COMMANDS = ["broadcast", "status", "stats", "screenshot"]


class AdminCommandBody(BaseModel):
    command: str = Field(..., min_length=1)
    adminNumber: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)


async def _run_command(infra: InfraBootstrap, command: str, data: Dict[str, Any]) -> Dict[str, Any]:
    bot = infra.get_bot()

    if command == "broadcast":
        if not data.get("message"):
            raise ValueError("data.message is required")
        body = parse_nested(BroadcastBody, data, "data")
        message = body.message.strip()
        if not message:
            raise ValueError("data.message is required")
        result = await bot.broadcast(message, exclude=body.excludeNumbers)
        return {"successCount": result["success"], "errorCount": result["failed"], "total": result["total"]}

    elif command == "status":
        return await bot.get_status()

    elif command == "stats":
        return {"stats": await bot.get_stats()}

    elif command == "screenshot":
        shot = await infra.get_channel().get_screenshot()
        if not shot.success:
            raise RuntimeError(shot.error or "Screenshot failed")
        return {"mimeType": "image/png", "screenshot": base64.b64encode(shot.data).decode("ascii")}

    raise ValueError(f"Unknown admin command: {command}")


@router.post("/admin")
async def admin_command(body: AdminCommandBody, infra: InfraBootstrap = Depends(get_infra)):
    """
    Run an admin command.

    Returns:
        {"success": true, "command": ..., "result": {...}, "timestamp": ...}

    Errors:
        403: adminNumber not on the allow-list
        400: unknown command or invalid data
        500: command failed
    """
    bot = infra.get_bot()
    if not bot.is_admin(body.adminNumber):
        logger.warning(f"Rejected admin command '{body.command}' from {body.adminNumber}")
        return error_response(status.HTTP_403_FORBIDDEN, "Unauthorized: Not an admin number")

    if body.command not in ADMIN_COMMANDS:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Unknown admin command",
            availableCommands=ADMIN_COMMANDS,
        )

    logger.info(f"Admin command '{body.command}' from {body.adminNumber}")
    sheets = infra.get_sheets()

    try:
        result = await _run_command(infra, body.command, body.data)
    except ValueError as e:
        await sheets.log_admin_action(body.adminNumber, body.command, str(body.data), success=False, error=str(e))
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception as e:
        logger.error(f"Admin command '{body.command}' failed: {e}", exc_info=True)
        await sheets.log_admin_action(body.adminNumber, body.command, str(body.data), success=False, error=str(e))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Admin command failed", message=str(e))

    await sheets.log_admin_action(body.adminNumber, body.command, str(body.data), success=True)
    return {
        "success": True,
        "command": body.command,
        "result": result,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
