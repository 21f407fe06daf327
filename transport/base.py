"""
Outbound channel abstract interface.

Role: typed send request → remote gateway call.

Rules:
- Pure adapter (no retries; retrying is the queue's job)
- Never raises for network errors, non-2xx responses or malformed
  destinations; every call returns a ChannelResult
- Callers must check ChannelResult.success
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from .messages import SendRequest


@dataclass
class ChannelResult:
    """Outcome of a single gateway call."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, data: Any = None, status_code: Optional[int] = None) -> "ChannelResult":
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: Optional[int] = None) -> "ChannelResult":
        return cls(success=False, error=error, status_code=status_code)


class OutboundChannel(ABC):
    """
    Abstract outbound boundary.
    Queue and routers depend ONLY on this interface.
    """

    session_name: str = "default"

    @abstractmethod
    async def dispatch(self, request: SendRequest) -> ChannelResult:
        """
        Deliver a send request.

        Args:
            request: One of the send request variants

        Returns:
            ChannelResult; success=False with the underlying error attached
            on any failure
        """
        raise NotImplementedError

    @abstractmethod
    async def get_chats(self, session: Optional[str] = None) -> ChannelResult:
        """List chats known to the session (data: list of chat dicts)."""
        raise NotImplementedError

    @abstractmethod
    async def get_session_status(self, session: Optional[str] = None) -> ChannelResult:
        """Session status (data: dict with at least "status")."""
        raise NotImplementedError

    @abstractmethod
    async def get_screenshot(self, session: Optional[str] = None) -> ChannelResult:
        """Screenshot of the session (data: PNG bytes)."""
        raise NotImplementedError
