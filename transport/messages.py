"""
Outbound send requests.

PURE DATA MODELS - NO I/O

One frozen dataclass per message kind. Channels dispatch on the concrete
class, so adding a kind means adding a class here and a branch in every
channel's dispatch.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Union


class UnsupportedMessageType(ValueError):
    """Send request kind is not known to the channel."""
    pass


@dataclass(frozen=True)
class TextMessage:
    chat_id: str
    text: str

    kind: ClassVar[str] = "text"


@dataclass(frozen=True)
class ImageMessage:
    chat_id: str
    image_url: str
    caption: str = ""

    kind: ClassVar[str] = "image"


@dataclass(frozen=True)
class VoiceMessage:
    chat_id: str
    audio_url: str

    kind: ClassVar[str] = "voice"


@dataclass(frozen=True)
class DocumentMessage:
    chat_id: str
    document_url: str
    filename: str = ""
    caption: str = ""

    kind: ClassVar[str] = "document"


@dataclass(frozen=True)
class LocationMessage:
    chat_id: str
    latitude: float
    longitude: float
    name: str = ""
    address: str = ""

    kind: ClassVar[str] = "location"


@dataclass(frozen=True)
class ContactMessage:
    chat_id: str
    contact: Dict[str, Any] = field(default_factory=dict)

    kind: ClassVar[str] = "contact"


SendRequest = Union[
    TextMessage,
    ImageMessage,
    VoiceMessage,
    DocumentMessage,
    LocationMessage,
    ContactMessage,
]

SEND_REQUEST_TYPES = (
    TextMessage,
    ImageMessage,
    VoiceMessage,
    DocumentMessage,
    LocationMessage,
    ContactMessage,
)


def is_send_request(value: Any) -> bool:
    return isinstance(value, SEND_REQUEST_TYPES)


def parse_send_request(payload: Dict[str, Any]) -> SendRequest:
    """
    Build a send request from a loosely-typed payload.

    Accepts both snake_case and the camelCase keys used by the HTTP API
    and the automation webhook ({"type": "image", "chatId": ..., "imageUrl": ...}).

    Raises:
        UnsupportedMessageType: unknown "type"
        ValueError: required field missing
    """
    kind = (payload.get("type") or "text").lower()

    def pick(*keys: str, default: Optional[Any] = None) -> Any:
        for key in keys:
            if payload.get(key) not in (None, ""):
                return payload[key]
        return default

    chat_id = pick("chat_id", "chatId")
    if not chat_id:
        raise ValueError("chatId is required")

    if kind == "text":
        text = pick("text", "message")
        if not text:
            raise ValueError("text is required")
        return TextMessage(chat_id=chat_id, text=text)

    elif kind == "image":
        url = pick("image_url", "imageUrl", "url")
        if not url:
            raise ValueError("imageUrl is required")
        return ImageMessage(chat_id=chat_id, image_url=url, caption=pick("caption", default=""))

    elif kind == "voice":
        url = pick("audio_url", "audioUrl", "url")
        if not url:
            raise ValueError("audioUrl is required")
        return VoiceMessage(chat_id=chat_id, audio_url=url)

    elif kind == "document":
        url = pick("document_url", "documentUrl", "url")
        if not url:
            raise ValueError("documentUrl is required")
        return DocumentMessage(
            chat_id=chat_id,
            document_url=url,
            filename=pick("filename", default=""),
            caption=pick("caption", default=""),
        )

    elif kind == "location":
        try:
            latitude = float(pick("latitude"))
            longitude = float(pick("longitude"))
        except (TypeError, ValueError):
            raise ValueError("latitude and longitude must be numbers")
        return LocationMessage(
            chat_id=chat_id,
            latitude=latitude,
            longitude=longitude,
            name=pick("name", default=""),
            address=pick("address", default=""),
        )

    elif kind == "contact":
        return ContactMessage(chat_id=chat_id, contact=dict(pick("contact", default={})))

    else:
        raise UnsupportedMessageType(f"Unknown message type: {kind}")
