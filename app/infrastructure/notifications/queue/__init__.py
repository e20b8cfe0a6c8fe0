"""Asynchronous delivery queue.

Usage:
    from infrastructure.notifications.queue import (
        DeliveryQueue,
        EnqueueOptions,
        QueueConfig,
        QueueEventType,
    )

    queue = DeliveryQueue(dispatcher, QueueConfig(max_concurrent=5))
    queue.on(QueueEventType.ITEM_DEAD_LETTERED, lambda event: ...)
    queue.start()

    result = queue.enqueue(
        notification,
        preferences,
        EnqueueOptions(priority=Severity.CRITICAL),
    )
"""

from infrastructure.notifications.queue.config import QueueConfig
from infrastructure.notifications.queue.delivery_queue import DeliveryQueue
from infrastructure.notifications.queue.models import (
    EnqueueOptions,
    EnqueueResult,
    QueueEventType,
    QueueItem,
    QueueStats,
)

__all__ = [
    "DeliveryQueue",
    "EnqueueOptions",
    "EnqueueResult",
    "QueueConfig",
    "QueueEventType",
    "QueueItem",
    "QueueStats",
]
