"""
Notification intents and the background dispatcher that delivers them.

The lifecycle manager only enqueues intents. A background task drains the
queue and calls the notifier, so a slow or failing mail provider never
blocks or fails a status change.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from gatepass.models.gatepass_request import GatepassRequest, GatepassStatus
from gatepass.services.exceptions import NotificationFailedError

logger = logging.getLogger(__name__)


class RecipientRole(str, Enum):
    PARENT = "parent"
    WARDEN = "warden"


@dataclass(frozen=True)
class NotificationIntent:
    """What to tell whom about a request after a transition committed."""
    recipient_role: RecipientRole
    request: GatepassRequest
    prior_status: Optional[GatepassStatus]
    new_status: GatepassStatus
    approval_link: Optional[str] = None


@dataclass(frozen=True)
class NotificationResult:
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "NotificationResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> "NotificationResult":
        return cls(ok=False, reason=reason)


class Notifier(Protocol):
    async def notify(self, intent: NotificationIntent) -> NotificationResult:
        ...


class NotificationDispatcher:
    """Queue of intents consumed by a single background task.

    Delivery is attempted at most once per intent; there is no retry.
    """

    def __init__(self, notifier: Notifier, max_queue_size: int = 1000):
        self.notifier = notifier
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._worker: Optional[asyncio.Task] = None
        self.delivered = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._consume(), name="notification-dispatcher")
        logger.info("Notification dispatcher started")

    async def stop(self) -> None:
        """Deliver whatever is queued, then stop the worker."""
        if not self.running:
            return
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info(f"Notification dispatcher stopped (delivered={self.delivered}, failed={self.failed})")

    def submit(self, intent: NotificationIntent) -> bool:
        """Enqueue an intent without waiting. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(intent)
        except asyncio.QueueFull:
            self.failed += 1
            logger.error(
                f"Notification queue full, dropped {intent.recipient_role.value} notification "
                f"for request {intent.request.id}"
            )
            return False
        return True

    async def wait_idle(self) -> None:
        """Block until every queued intent has been handled."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            intent = await self._queue.get()
            try:
                await self.deliver(intent)
            finally:
                self._queue.task_done()

    async def deliver(self, intent: NotificationIntent) -> NotificationResult:
        """Call the notifier once, logging (never raising) a failure."""
        try:
            result = await self.notifier.notify(intent)
        except Exception as e:
            # Notifiers should not raise; treat it as a failed delivery
            result = NotificationResult.failed(str(e))

        if result.ok:
            self.delivered += 1
            logger.info(
                f"Sent {intent.recipient_role.value} notification for request {intent.request.id}",
                extra={"request_id": str(intent.request.id), "new_status": intent.new_status.value},
            )
        else:
            self.failed += 1
            error = NotificationFailedError(result.reason or "unknown error")
            logger.error(
                f"Failed to notify {intent.recipient_role.value} for request {intent.request.id}: {error.message}",
                extra={"request_id": str(intent.request.id), "new_status": intent.new_status.value},
            )
        return result
