"""
WAHA Input Normalization

PURE CONVERSION - NO LOGIC, NO NETWORK

Converts a WAHA `message` event payload into the canonical NormalizedMessage.
"""

from datetime import datetime, timezone
from typing import Any, Union

from pydantic import ValidationError

from transport.identifiers import STATUS_BROADCAST, is_group, normalize_identifier

from .schemas import NormalizedMessage, WahaMessagePayload, WahaWebhookEvent


class NormalizationError(Exception):
    """Input normalization failed."""
    pass


def extract_sender_id(payload: dict[str, Any]) -> str:
    """Bare sender number from a message payload ("6281...@c.us" → "6281...")."""
    sender = payload.get("from")
    if not sender:
        raise NormalizationError("Missing sender")
    return normalize_identifier(sender)


def _message_type(message: WahaMessagePayload) -> str:
    if message.type and message.type != "chat":
        return message.type
    return "media" if message.hasMedia else "text"


def normalize_message(event: Union[dict, WahaWebhookEvent]) -> NormalizedMessage:
    """
    Convert a WAHA `message` event into NormalizedMessage.

    Accepts either the whole envelope ({"event", "session", "payload"}) or
    just its payload.

    Raises:
        NormalizationError: Missing or malformed fields
    """
    if isinstance(event, WahaWebhookEvent):
        payload = event.payload
    elif isinstance(event, dict):
        payload = event.get("payload", event) if "event" in event else event
    else:
        raise NormalizationError(f"Unsupported payload type: {type(event).__name__}")

    try:
        message = WahaMessagePayload.model_validate(payload)
    except ValidationError as e:
        raise NormalizationError(f"Invalid message payload: {e.errors()[0]['msg']}")

    chat_id = message.from_
    if message.timestamp:
        timestamp = datetime.fromtimestamp(message.timestamp, tz=timezone.utc)
    else:
        timestamp = datetime.now(timezone.utc)

    return NormalizedMessage(
        chat_id=chat_id,
        sender=extract_sender_id(payload),
        text=(message.body or "").strip(),
        message_id=message.id,
        message_type=_message_type(message),
        from_me=message.fromMe,
        is_group=is_group(chat_id),
        timestamp=timestamp,
        raw=dict(payload),
    )


def should_skip(message: NormalizedMessage) -> bool:
    """Own messages, group chats and status broadcasts are never answered."""
    return message.from_me or message.is_group or message.chat_id == STATUS_BROADCAST
