"""Unit tests for the in-process event bus."""

from datetime import datetime
from uuid import UUID

import pytest

from infrastructure.events import Event, EventBus


@pytest.fixture
def bus():
    return EventBus(name="test")


@pytest.mark.unit
class TestEventBus:
    """Tests for EventBus subscribe/emit/unsubscribe."""

    def test_emit_delivers_to_subscribers(self, bus):
        received = []
        bus.subscribe("item_added", received.append)

        event = bus.emit("item_added", {"queue_id": "queue_1"})

        assert received == [event]
        assert event.type == "item_added"
        assert event.data == {"queue_id": "queue_1"}

    def test_emit_without_data(self, bus):
        event = bus.emit("queue_paused")

        assert event.data == {}

    def test_other_event_types_not_delivered(self, bus):
        received = []
        bus.subscribe("item_added", received.append)

        bus.emit("item_dead_lettered", {"queue_id": "queue_1"})

        assert received == []

    def test_wildcard_receives_everything(self, bus):
        received = []
        bus.subscribe("*", received.append)

        bus.emit("item_added")
        bus.emit("item_expired")

        assert [e.type for e in received] == ["item_added", "item_expired"]

    def test_specific_listeners_run_before_wildcard(self, bus):
        order = []
        bus.subscribe("*", lambda e: order.append("wildcard"))
        bus.subscribe("item_added", lambda e: order.append("specific"))

        bus.emit("item_added")

        assert order == ["specific", "wildcard"]

    def test_unsubscribe(self, bus):
        received = []
        bus.subscribe("item_added", received.append)

        assert bus.unsubscribe("item_added", received.append) is True
        bus.emit("item_added")

        assert received == []

    def test_unsubscribe_unknown_listener(self, bus):
        assert bus.unsubscribe("item_added", lambda e: None) is False

    def test_listener_exception_is_swallowed(self, bus):
        received = []

        def broken(event):
            raise RuntimeError("listener down")

        bus.subscribe("item_added", broken)
        bus.subscribe("item_added", received.append)

        event = bus.emit("item_added")

        assert received == [event]

    def test_clear(self, bus):
        received = []
        bus.subscribe("item_added", received.append)
        bus.subscribe("*", received.append)

        bus.clear()
        bus.emit("item_added")

        assert received == []
        assert bus.listeners_for("item_added") == []


@pytest.mark.unit
class TestEvent:
    """Tests for the Event model."""

    def test_defaults(self):
        event = Event(type="item_added")

        assert isinstance(event.timestamp, datetime)
        assert event.timestamp.tzinfo is not None
        assert isinstance(event.correlation_id, UUID)

    def test_to_dict(self):
        event = Event(type="item_retrying", data={"attempt": 2})

        payload = event.to_dict()

        assert payload["type"] == "item_retrying"
        assert payload["data"] == {"attempt": 2}
        assert payload["timestamp"] == event.timestamp.isoformat()
        assert payload["correlation_id"] == str(event.correlation_id)

    def test_frozen(self):
        event = Event(type="item_added")

        with pytest.raises(AttributeError):
            event.type = "other"
