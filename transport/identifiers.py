"""
WhatsApp identifier normalization.

Single place where phone numbers and gateway chat ids are reconciled:
- "628123456789", "+62 812-3456-789", "628123456789@c.us" all normalize
  to "628123456789"
- group ids ("1203630@g.us") are kept whole

Used by inbound admin detection, the admin allow-list and broadcast
exclusion, so the three can never disagree.
"""

import re
from typing import FrozenSet, Iterable

CONTACT_SUFFIX = "@c.us"
GROUP_SUFFIX = "@g.us"
STATUS_BROADCAST = "status@broadcast"

_PERSONAL_SUFFIXES = (CONTACT_SUFFIX, "@s.whatsapp.net")
_SEPARATORS_RE = re.compile(r"[\s\-()]")
_CHAT_ID_RE = re.compile(r"^[0-9]{5,20}@(c\.us|s\.whatsapp\.net|lid)$|^[0-9\-]{5,40}@g\.us$")


class InvalidChatId(ValueError):
    """Destination identifier cannot be turned into a gateway chat id."""
    pass


def normalize_identifier(value: str) -> str:
    """
    Reduce a phone number or personal chat id to its bare number.

    Group ids and unrecognized suffixes are returned trimmed but otherwise
    untouched.
    """
    if value is None:
        return ""
    ident = str(value).strip()
    for suffix in _PERSONAL_SUFFIXES:
        if ident.endswith(suffix):
            ident = ident[: -len(suffix)]
            break
    if "@" in ident:
        return ident
    ident = _SEPARATORS_RE.sub("", ident)
    return ident.lstrip("+")


def to_chat_id(value: str) -> str:
    """
    Build a gateway chat id from a number or chat id.

    Raises:
        InvalidChatId: value is empty or malformed
    """
    ident = (value or "").strip()
    if not ident:
        raise InvalidChatId("Chat id is empty")

    if "@" not in ident:
        ident = f"{normalize_identifier(ident)}{CONTACT_SUFFIX}"

    if not _CHAT_ID_RE.match(ident):
        raise InvalidChatId(f"Malformed chat id: {value!r}")
    return ident


def is_valid_chat_id(value: str) -> bool:
    try:
        to_chat_id(value)
    except InvalidChatId:
        return False
    return True


def is_group(chat_id: str) -> bool:
    return bool(chat_id) and chat_id.endswith(GROUP_SUFFIX)


def parse_identifier_list(raw: str) -> FrozenSet[str]:
    """Parse a comma-separated list (e.g. ADMIN_NUMBERS) into normalized identifiers."""
    if not raw:
        return frozenset()
    return normalize_identifiers(raw.split(","))


def normalize_identifiers(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(
        ident for ident in (normalize_identifier(v) for v in values or []) if ident
    )


def is_member(value: str, identifiers: FrozenSet[str]) -> bool:
    """True if value, in bare or suffixed form, belongs to the normalized set."""
    ident = normalize_identifier(value)
    return bool(ident) and ident in identifiers


def chat_id_of(chat: dict) -> str:
    """Chat id from a gateway chat object; ids come as strings or {"_serialized": ...}."""
    chat_id = chat.get("id", "")
    if isinstance(chat_id, dict):
        chat_id = chat_id.get("_serialized", "")
    return str(chat_id)
