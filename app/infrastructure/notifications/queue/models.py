"""Delivery queue models.

Queue items are the only mutable records in the delivery pipeline: the
queue advances `attempts` and `next_eligible_at` as dispatches complete.
Everything an item carries besides that (notification, preferences,
priority) is fixed at enqueue.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from infrastructure.notifications.models import Notification, Severity, utc_now
from infrastructure.notifications.preferences import DeliveryPreferences


class QueueEventType(Enum):
    """Events emitted by the delivery queue.

    Values:
        ITEM_ADDED: Item accepted into pending
        ITEM_DISPATCHED: Item delivered and removed
        ITEM_RETRIED: Attempt failed, item returned to pending with a delay
        ITEM_DEAD_LETTERED: Attempts exhausted, item moved to dead-letter
        ITEM_DISCARDED: Item removed without delivery (expired or no channel)
        QUEUE_FULL: Enqueue rejected because pending is at capacity
        PROCESSING_STARTED: Worker loop started or resumed
        PROCESSING_STOPPED: Worker loop stopped or paused
    """

    ITEM_ADDED = "item_added"
    ITEM_DISPATCHED = "item_dispatched"
    ITEM_RETRIED = "item_retried"
    ITEM_DEAD_LETTERED = "item_dead_lettered"
    ITEM_DISCARDED = "item_discarded"
    QUEUE_FULL = "queue_full"
    PROCESSING_STARTED = "processing_started"
    PROCESSING_STOPPED = "processing_stopped"


@dataclass(frozen=True)
class EnqueueOptions:
    """Producer overrides for one enqueued notification.

    Fields:
        priority: Queue priority instead of the notification's severity
        max_attempts: Attempt ceiling instead of the queue default
        scheduled_for: Earliest time the item becomes eligible
    """

    priority: Optional[Severity] = None
    max_attempts: Optional[int] = None
    scheduled_for: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass(frozen=True)
class EnqueueResult:
    """Synchronous answer to an enqueue call."""

    success: bool
    queue_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def accepted(cls, queue_id: str) -> "EnqueueResult":
        return cls(success=True, queue_id=queue_id)

    @classmethod
    def rejected(cls, error_code: str, error: str) -> "EnqueueResult":
        return cls(success=False, error=error, error_code=error_code)


@dataclass
class QueueItem:
    """A notification waiting for, or undergoing, delivery.

    Fields:
        notification: Notification to deliver
        preferences: Recipient preferences captured at enqueue
        priority: Ordering priority, fixed for the item's lifetime
        max_attempts: Dispatch attempts allowed before dead-lettering
        id: Queue identifier ("queue_<hex>")
        attempts: Completed dispatch attempts
        next_eligible_at: Unset until a retry is scheduled
        scheduled_for: Producer-supplied earliest eligibility
        created_at: Enqueue time, the FIFO tie-break
        seq: Insertion sequence number, the final tie-break
        last_error: Error summary of the last failed attempt
    """

    notification: Notification
    preferences: Optional[DeliveryPreferences]
    priority: Severity
    max_attempts: int

    id: str = field(default_factory=lambda: f"queue_{uuid4().hex}")
    attempts: int = 0
    next_eligible_at: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)
    seq: int = 0
    last_error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @property
    def sort_key(self) -> Tuple[int, datetime, int]:
        """Higher priority first, then oldest first, then insertion order."""
        return (-self.priority.rank, self.created_at, self.seq)

    def is_eligible(self, now: datetime) -> bool:
        if self.scheduled_for is not None and now < self.scheduled_for:
            return False
        if self.next_eligible_at is not None and now < self.next_eligible_at:
            return False
        return True

    def is_expired(self, now: datetime) -> bool:
        return self.notification.is_expired(now)

    def to_dict(self) -> Dict[str, Any]:
        """Summary used in event payloads and dead-letter listings."""
        return {
            "queue_id": self.id,
            "notification_id": self.notification.id,
            "priority": self.priority.value,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "next_eligible_at": (
                self.next_eligible_at.isoformat() if self.next_eligible_at else None
            ),
            "created_at": self.created_at.isoformat(),
            "last_error": self.last_error,
        }


@dataclass(frozen=True)
class QueueStats:
    """Point-in-time queue counters."""

    pending: int
    in_flight: int
    dead_letter_count: int
    completed: int
    failed: int
    discarded: int
    average_processing_time_ms: float
    running: bool
    paused: bool
