"""
Outbound Message Queue

Every outbound send goes through here: priority ordering, a fixed pacing
delay between gateway calls, and linear-backoff retries bounded by
max_attempts.

Rules:
- One drain loop at a time (the `draining` flag is the only guard)
- A message is owned by the queue from enqueue until sent or dropped
- Fire-and-forget: terminal failures are logged, never raised to callers
"""

import asyncio
import contextlib
import itertools
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from transport.base import OutboundChannel
from transport.messages import SendRequest, is_send_request

from .models import PRIORITY_RANK, MessageState, Priority, QueuedMessage

logger = logging.getLogger(__name__)


class MessageQueue:
    """
    In-memory priority queue in front of an OutboundChannel.

    Args:
        channel: Where messages are dispatched
        send_delay: Minimum seconds between two dispatches
        retry_backoff: Backoff unit; a message that failed n times waits n × retry_backoff
        max_attempts: Total dispatch attempts before a message is dropped
        send_timeout: Per-dispatch timeout in seconds
        on_settled: Called with the QueuedMessage once it is sent or dropped
    """

    def __init__(
        self,
        channel: OutboundChannel,
        send_delay: float = 1.0,
        retry_backoff: float = 5.0,
        max_attempts: int = 3,
        send_timeout: float = 30.0,
        on_settled: Optional[Callable[[QueuedMessage], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.channel = channel
        self.send_delay = send_delay
        self.retry_backoff = retry_backoff
        self.max_attempts = max_attempts
        self.send_timeout = send_timeout
        self.on_settled = on_settled
        self._clock = clock

        self._items: List[QueuedMessage] = []
        self._sequence = itertools.count()
        self._draining = False
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Optional[QueuedMessage] = None
        self._wakeup: Optional[asyncio.Event] = None
        self._last_dispatch: Optional[float] = None

        self.stats: Dict[str, int] = {"enqueued": 0, "sent": 0, "retried": 0, "dropped": 0}

    # ──────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────

    @property
    def size(self) -> int:
        return len(self._items)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def enqueue(self, request: SendRequest, priority: Priority = "normal", delay: float = 0.0) -> str:
        """
        Queue a send request and make sure the drain loop is running.

        Must be called from inside a running event loop.

        Args:
            request: One of the send request variants
            priority: high | normal | low
            delay: Seconds before the message becomes eligible for dispatch

        Returns:
            The queued message id (returned immediately; delivery is not awaited)

        Raises:
            TypeError: request is not a send request
            ValueError: unknown priority
        """
        if not is_send_request(request):
            raise TypeError(f"Not a send request: {type(request).__name__}")
        if priority not in PRIORITY_RANK:
            raise ValueError(f"Unknown priority: {priority!r}")

        message = QueuedMessage(
            request=request,
            priority=priority,
            sequence=next(self._sequence),
            not_before=self._clock() + max(0.0, delay),
        )
        self._items.append(message)
        self.stats["enqueued"] += 1

        logger.info(
            f"Message queued: {message.id} ({request.kind}, {priority})",
            extra={"message_id": message.id, "chat_id": request.chat_id, "queue_size": self.size},
        )

        if self._wakeup is not None:
            self._wakeup.set()
        if not self._draining:
            self._draining = True
            self._task = asyncio.get_running_loop().create_task(self._drain())
        return message.id

    def enqueue_bulk(self, requests: Iterable[SendRequest], priority: Priority = "normal") -> List[Dict[str, Any]]:
        """Queue several requests; one result dict per request, in order."""
        results = []
        for request in requests:
            chat_id = getattr(request, "chat_id", None)
            try:
                message_id = self.enqueue(request, priority)
                results.append({"success": True, "messageId": message_id, "chatId": chat_id})
            except (TypeError, ValueError) as e:
                results.append({"success": False, "error": str(e), "chatId": chat_id})
        return results

    def snapshot(self) -> Dict[str, Any]:
        """Point-in-time view for status endpoints."""
        return {
            "size": self.size,
            "isProcessing": self._draining,
            "stats": dict(self.stats),
            "messages": [m.to_dict() for m in self._ordered()],
        }

    async def join(self) -> None:
        """Wait until the queue has drained."""
        while self._task is not None:
            await self._task

    async def close(self) -> None:
        """Stop the drain loop. The in-flight message and those still queued are discarded."""
        task = self._task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        message = self._in_flight
        if message is not None:
            self._in_flight = None
            message.state = MessageState.FAILED_TERMINAL
            message.last_error = "Queue closed during dispatch"
            self.stats["dropped"] += 1
            logger.warning(
                f"Message {message.id} dropped: queue closed during dispatch (attempt {message.attempts})",
                extra={"message_id": message.id, "chat_id": message.request.chat_id},
            )
            self._settle(message)

        if self._items:
            logger.warning(f"Queue closed with {self.size} undelivered message(s)")
            self.stats["dropped"] += len(self._items)
            self._items.clear()

    # ──────────────────────────────────────────────────────────
    # Drain loop
    # ──────────────────────────────────────────────────────────

    def _ordered(self) -> List[QueuedMessage]:
        return sorted(self._items, key=lambda m: (-m.rank, m.sequence))

    def _next_ready(self) -> Optional[QueuedMessage]:
        now = self._clock()
        for message in self._ordered():
            if message.not_before <= now:
                return message
        return None

    def _pacing_remaining(self) -> float:
        if self._last_dispatch is None:
            return 0.0
        return self._last_dispatch + self.send_delay - self._clock()

    async def _wait_for_ready(self) -> None:
        """Sleep until the earliest backoff expires or a new message arrives."""
        timeout = max(0.0, min(m.not_before for m in self._items) - self._clock())
        self._wakeup.clear()
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass

    async def _drain(self) -> None:
        logger.debug("Queue drain started")
        self._wakeup = asyncio.Event()
        try:
            while self._items:
                pause = self._pacing_remaining()
                if pause > 0:
                    await asyncio.sleep(pause)
                    continue

                message = self._next_ready()
                if message is None:
                    await self._wait_for_ready()
                    continue

                await self._process(message)
        finally:
            self._draining = False
            self._task = None
            logger.debug("Queue drain finished")

    async def _process(self, message: QueuedMessage) -> None:
        self._items.remove(message)
        message.state = MessageState.DISPATCHING
        message.attempts += 1
        self._last_dispatch = self._clock()

        # Left set if the drain task is cancelled mid-dispatch; close() accounts for it.
        self._in_flight = message
        error = await self._dispatch(message)
        self._in_flight = None

        if error is None:
            message.state = MessageState.SENT
            message.last_error = None
            self.stats["sent"] += 1
            logger.info(
                f"Message sent: {message.id} (attempt {message.attempts})",
                extra={"message_id": message.id, "chat_id": message.request.chat_id},
            )
            self._settle(message)
            return

        message.last_error = error
        if message.attempts < self.max_attempts:
            backoff = message.attempts * self.retry_backoff
            message.state = MessageState.FAILED_RETRY
            message.not_before = self._clock() + backoff
            message.sequence = next(self._sequence)
            self._items.append(message)
            self.stats["retried"] += 1
            logger.warning(
                f"Message {message.id} failed (attempt {message.attempts}/{self.max_attempts}), "
                f"retrying in {backoff:.1f}s: {error}",
                extra={"message_id": message.id, "chat_id": message.request.chat_id},
            )
        else:
            message.state = MessageState.FAILED_TERMINAL
            self.stats["dropped"] += 1
            logger.error(
                f"Message {message.id} dropped after {message.attempts} attempts: {error}",
                extra={"message_id": message.id, "chat_id": message.request.chat_id},
            )
            self._settle(message)

    async def _dispatch(self, message: QueuedMessage) -> Optional[str]:
        """Returns None on success, otherwise the error text."""
        try:
            result = await asyncio.wait_for(
                self.channel.dispatch(message.request),
                timeout=self.send_timeout,
            )
        except asyncio.TimeoutError:
            return f"Dispatch timed out after {self.send_timeout}s"
        except Exception as e:
            logger.error(f"Dispatch raised for {message.id}: {e}", exc_info=True)
            return str(e) or type(e).__name__

        if result.success:
            return None
        return result.error or "Dispatch failed"

    def _settle(self, message: QueuedMessage) -> None:
        if self.on_settled is None:
            return
        try:
            self.on_settled(message)
        except Exception as e:
            logger.error(f"on_settled callback failed for {message.id}: {e}", exc_info=True)
