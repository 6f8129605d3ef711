"""NotificationDispatcher — post-commit, fire-and-forget notification fan-out.

Request handlers call emit() after their transaction commits; emit() never
blocks and never raises. A single worker task (started from the app
lifespan) drains the queue and hands each event to the Notifier. Failed
deliveries are logged and dropped.
"""

import asyncio
import logging

from config.settings import settings
from src.mk_notification.domain.events import NotificationEvent, Notifier
from src.mk_notification.infrastructure.redis_notifier import RedisNotifier

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, notifier: Notifier | None = None, maxsize: int | None = None) -> None:
        self._notifier: Notifier = notifier or RedisNotifier()
        self._queue: asyncio.Queue[NotificationEvent] = asyncio.Queue(
            maxsize=maxsize if maxsize is not None else settings.NOTIFICATION_QUEUE_SIZE
        )

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def emit(self, event: NotificationEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Notification queue full, dropping %s for user %s", event.kind, event.user_id
            )

    def emit_all(self, events: list[NotificationEvent]) -> None:
        for event in events:
            self.emit(event)

    async def deliver_pending(self) -> int:
        """Deliver everything currently queued. Returns the number delivered."""
        delivered = 0
        while not self._queue.empty():
            event = self._queue.get_nowait()
            if await self._deliver(event):
                delivered += 1
        return delivered

    async def _deliver(self, event: NotificationEvent) -> bool:
        try:
            await self._notifier.notify(event)
            return True
        except Exception:
            logger.exception("Notification %s to user %s failed", event.kind, event.user_id)
            return False

    async def run(self, stop_event: asyncio.Event, poll_interval: float = 0.5) -> None:
        """Worker loop: deliver events until stop_event is set, then flush."""
        logger.info("Notification worker started")
        while not stop_event.is_set():
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=poll_interval)
            except asyncio.TimeoutError:
                continue
            await self._deliver(event)
        flushed = await self.deliver_pending()
        logger.info("Notification worker stopped (flushed %d)", flushed)


_dispatcher: NotificationDispatcher | None = None


def get_notification_dispatcher() -> NotificationDispatcher:
    global _dispatcher  # noqa: PLW0603
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
