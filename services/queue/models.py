"""
Queue data models.

PURE DATA MODELS - NO I/O
"""

import random
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Optional

from transport.messages import SendRequest

Priority = Literal["high", "normal", "low"]

# Higher rank drains first
PRIORITY_RANK: Dict[str, int] = {"high": 3, "normal": 2, "low": 1}

_ID_ALPHABET = string.digits + string.ascii_lowercase


class MessageState(str, Enum):
    """
    queued → dispatching → sent
                         → failed_retry (waits for not_before, then dispatched again)
                         → failed_terminal
    """

    QUEUED = "queued"
    DISPATCHING = "dispatching"
    SENT = "sent"
    FAILED_RETRY = "failed_retry"
    FAILED_TERMINAL = "failed_terminal"


def generate_message_id() -> str:
    """Opaque 9-character base36 token."""
    return "".join(random.choices(_ID_ALPHABET, k=9))


@dataclass
class QueuedMessage:
    """A send request owned by the queue until it is sent or dropped."""

    request: SendRequest
    priority: Priority = "normal"
    sequence: int = 0
    not_before: float = 0.0
    id: str = field(default_factory=generate_message_id)
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempts: int = 0
    state: MessageState = MessageState.QUEUED
    last_error: Optional[str] = None

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self.priority]

    @property
    def is_settled(self) -> bool:
        return self.state in (MessageState.SENT, MessageState.FAILED_TERMINAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.request.kind,
            "chatId": self.request.chat_id,
            "priority": self.priority,
            "state": self.state.value,
            "attempts": self.attempts,
            "enqueuedAt": self.enqueued_at.isoformat(),
            "lastError": self.last_error,
        }
