"""In-process event bus.

Usage:

    from infrastructure.events import EventBus, Event

    bus = EventBus()

    def on_dead_letter(event: Event) -> None:
        print(event.data["queue_id"])

    bus.subscribe("item_dead_lettered", on_dead_letter)
    bus.emit("item_dead_lettered", {"queue_id": "queue_abc"})
"""

from infrastructure.events.bus import EventBus
from infrastructure.events.models import Event, EventListener

__all__ = [
    "Event",
    "EventBus",
    "EventListener",
]
