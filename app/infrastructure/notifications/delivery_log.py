"""Append-only delivery log.

The dispatcher appends one entry per provider attempt, success or failure.
Entries are never updated or removed individually; the in-memory log keeps
the most recent `max_entries` and drops the oldest beyond that.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Deque, List, Optional, Protocol
from uuid import uuid4

from infrastructure.notifications.models import (
    Category,
    ChannelId,
    DeliveryResult,
    Notification,
    utc_now,
)


@dataclass(frozen=True)
class DeliveryLogEntry:
    """One provider attempt."""

    notification_id: str
    channel: ChannelId
    category: Category
    success: bool
    result: DeliveryResult
    user_id: Optional[str] = None
    queue_id: Optional[str] = None
    id: str = field(default_factory=lambda: f"log_{uuid4().hex}")
    created_at: datetime = field(default_factory=utc_now)

    @property
    def status(self) -> str:
        return "sent" if self.success else "failed"

    @classmethod
    def from_result(
        cls,
        notification: Notification,
        result: DeliveryResult,
        queue_id: Optional[str] = None,
    ) -> "DeliveryLogEntry":
        return cls(
            notification_id=notification.id,
            channel=result.channel,
            category=notification.category,
            success=result.success,
            result=result,
            user_id=notification.recipient_user_id,
            queue_id=queue_id,
            created_at=result.timestamp,
        )


class DeliveryLog(Protocol):
    def append(self, entry: DeliveryLogEntry) -> None: ...

    def entries(
        self,
        notification_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[DeliveryLogEntry]: ...


class InMemoryDeliveryLog:
    """Thread-safe bounded delivery log.

    Args:
        max_entries: Entries retained before the oldest are dropped
    """

    def __init__(self, max_entries: int = 10000):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: Deque[DeliveryLogEntry] = deque(maxlen=max_entries)
        self._lock = Lock()

    def append(self, entry: DeliveryLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries(
        self,
        notification_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[DeliveryLogEntry]:
        """Query the log, newest first.

        Args:
            notification_id: Only entries for this notification
            user_id: Only entries for this recipient
            limit: Maximum entries returned

        Returns:
            Matching entries ordered from newest to oldest
        """
        with self._lock:
            snapshot = list(self._entries)

        matched = []
        for entry in reversed(snapshot):
            if notification_id is not None and entry.notification_id != notification_id:
                continue
            if user_id is not None and entry.user_id != user_id:
                continue
            matched.append(entry)
            if len(matched) >= limit:
                break
        return matched

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
