"""Event models for the in-process event bus."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict
from uuid import UUID, uuid4


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """Record of something that happened inside the delivery pipeline.

    Events are fire-and-forget notifications for logging and metrics
    collectors; the bus never persists them.
    """

    type: str
    """The event type (e.g., 'item_added', 'item_dead_lettered')."""

    data: Dict[str, Any] = field(default_factory=dict)
    """Event payload."""

    timestamp: datetime = field(default_factory=_utc_now)
    """When the event occurred."""

    correlation_id: UUID = field(default_factory=uuid4)
    """Unique ID of this emission."""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the event with an ISO timestamp and string correlation id."""
        return {
            "type": self.type,
            "data": dict(self.data),
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": str(self.correlation_id),
        }


EventListener = Callable[[Event], Any]
