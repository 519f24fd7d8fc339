import asyncio
import logging
import uuid
from collections import deque
from datetime import UTC, datetime

from dps.config import NOTIFICATION_HISTORY_LIMIT
from dps.models.notification import Notification, Severity

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Fire-and-forget user feedback, broadcast to connected clients."""

    def __init__(self, history_limit: int = NOTIFICATION_HISTORY_LIMIT) -> None:
        self._subscribers: set[asyncio.Queue] = set()
        self._recent: deque[Notification] = deque(maxlen=history_limit)

    def subscribe(self) -> asyncio.Queue:
        """Subscribe to notifications. Returns a queue to await them from."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def recent(self) -> list[Notification]:
        """Latest notifications, newest first."""
        return list(reversed(self._recent))

    def clear(self) -> None:
        self._recent.clear()

    def add_notification(self, message: str, severity: Severity = "info") -> Notification:
        notification = Notification(
            id=uuid.uuid4().hex,
            message=message,
            severity=severity,
            timestamp=datetime.now(UTC).isoformat(),
        )
        self._recent.append(notification)
        if severity == "error":
            logger.warning("Notification [%s]: %s", severity, message)
        else:
            logger.info("Notification [%s]: %s", severity, message)

        event = {"type": "notification", **notification.model_dump()}
        for queue in self._subscribers:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Notification queue full for subscriber")
        return notification


notifications = NotificationCenter()
