"""
WAHA Transport Layer - Pydantic Schemas

PURE DATA MODELS - NO LOGIC
Only defines the contract between WAHA webhook events and the normalized
inbound message the bot consumes.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ============================================================================
# NORMALIZED MESSAGE (THE CONTRACT)
# ============================================================================

class NormalizedMessage(BaseModel):
    """
    Canonical inbound message.

    The bot never sees the raw WAHA payload shape, only this.
    """

    chat_id: str = Field(..., description="Gateway chat id the message came from")
    sender: str = Field(..., description="Bare phone number (no @c.us suffix)")
    text: str = Field("", description="Message body. Empty for media-only messages.")
    message_id: str = Field(..., description="Gateway message id")
    message_type: str = Field("text", description="text, image, voice, document, ...")
    from_me: bool = Field(False, description="Sent by the bot's own account")
    is_group: bool = Field(False, description="Chat id is a group (@g.us)")
    timestamp: datetime = Field(..., description="Message timestamp UTC")
    raw: dict[str, Any] = Field(default_factory=dict, description="Original payload")

    class Config:
        """Pydantic config."""
        frozen = True


# ============================================================================
# WAHA WEBHOOK PAYLOAD SCHEMAS (INPUT)
# ============================================================================

class WahaMessagePayload(BaseModel):
    """payload of a `message` event."""
    id: str
    timestamp: Optional[int] = None
    from_: str = Field(..., alias="from")
    fromMe: bool = False
    to: Optional[str] = None
    body: Optional[str] = None
    hasMedia: bool = False
    type: Optional[str] = None

    class Config:
        populate_by_name = True
        extra = "allow"


class WahaSessionStatusPayload(BaseModel):
    """payload of a `session.status` event."""
    status: str
    name: Optional[str] = None

    class Config:
        extra = "allow"


class WahaWebhookEvent(BaseModel):
    """
    Envelope of every WAHA webhook call.

    ref: https://waha.devlike.pro/docs/how-to/events/
    """

    event: str = Field(..., description="message, session.status, message.reaction, ...")
    session: str = Field("default", description="Session the event belongs to")
    payload: dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "allow"  # WAHA adds engine/environment metadata
