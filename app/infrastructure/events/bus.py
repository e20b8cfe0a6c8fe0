"""Observer registry for pipeline events.

An EventBus holds typed listener lists per event type. Emission is
synchronous and fire-and-forget: listener return values are ignored and
listener exceptions are logged and swallowed so a faulty subscriber can
never stall the queue that emits.
"""

from threading import Lock
from typing import Any, Dict, List, Optional

from infrastructure.events.models import Event, EventListener
from infrastructure.logging import get_module_logger

logger = get_module_logger()

WILDCARD = "*"


class EventBus:
    """In-process publish/subscribe registry.

    Subscribing to "*" receives every event.

    Usage:
        bus = EventBus()
        bus.subscribe("item_dead_lettered", alert_operator)
        bus.emit("item_dead_lettered", {"queue_id": "queue_abc"})
    """

    def __init__(self, name: str = "events"):
        self._name = name
        self._listeners: Dict[str, List[EventListener]] = {}
        self._lock = Lock()

    def subscribe(self, event_type: str, listener: EventListener) -> None:
        with self._lock:
            self._listeners.setdefault(event_type, []).append(listener)
            total = len(self._listeners[event_type])
        logger.debug(
            "event_listener_registered",
            bus=self._name,
            event_type=event_type,
            listener=getattr(listener, "__name__", repr(listener)),
            total_listeners=total,
        )

    def unsubscribe(self, event_type: str, listener: EventListener) -> bool:
        """Remove a listener.

        Returns:
            True if the listener was registered, False otherwise.
        """
        with self._lock:
            listeners = self._listeners.get(event_type, [])
            if listener not in listeners:
                return False
            listeners.remove(listener)
            return True

    def listeners_for(self, event_type: str) -> List[EventListener]:
        with self._lock:
            return list(self._listeners.get(event_type, [])) + list(
                self._listeners.get(WILDCARD, [])
            )

    def emit(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> Event:
        """Build an event and deliver it to every matching listener.

        Args:
            event_type: Type of the event.
            data: Event payload.

        Returns:
            The emitted Event.
        """
        event = Event(type=event_type, data=data or {})
        self.publish(event)
        return event

    def publish(self, event: Event) -> None:
        for listener in self.listeners_for(event.type):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "event_listener_failed",
                    bus=self._name,
                    event_type=event.type,
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                    correlation_id=str(event.correlation_id),
                )

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()
