"""
Outbound message queue exports.
"""

from .models import PRIORITY_RANK, MessageState, Priority, QueuedMessage, generate_message_id
from .queue import MessageQueue

__all__ = [
    "MessageQueue",
    "QueuedMessage",
    "MessageState",
    "Priority",
    "PRIORITY_RANK",
    "generate_message_id",
]
