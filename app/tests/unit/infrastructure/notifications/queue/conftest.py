"""Fixtures for delivery queue tests."""

from typing import List, Optional

import pytest

from infrastructure.events import Event, EventBus
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.queue import DeliveryQueue, QueueConfig


@pytest.fixture
def queue_factory(fake_clock, inline_executor):
    """Factory for DeliveryQueue instances driven by process_tick().

    Dispatches run inline on submit, so a completion is applied on the
    tick after the one that admitted it.
    """

    def _factory(
        dispatcher: NotificationDispatcher,
        config: Optional[QueueConfig] = None,
        event_bus: Optional[EventBus] = None,
    ) -> DeliveryQueue:
        return DeliveryQueue(
            dispatcher=dispatcher,
            config=config or QueueConfig(),
            event_bus=event_bus or EventBus(name="test_queue"),
            clock=fake_clock,
            executor=inline_executor,
        )

    return _factory


@pytest.fixture
def recorded_events():
    """Listener collecting every event it receives."""

    class Recorder:
        def __init__(self):
            self.events: List[Event] = []

        def __call__(self, event: Event) -> None:
            self.events.append(event)

        def types(self) -> List[str]:
            return [e.type for e in self.events]

        def of_type(self, event_type: str) -> List[Event]:
            return [e for e in self.events if e.type == event_type]

    return Recorder()


@pytest.fixture
def drain(fake_clock):
    """Tick a queue until nothing is pending or in flight.

    The clock jumps over the longest retry delay between ticks. Returns the
    number of ticks taken.
    """

    def _drain(queue: DeliveryQueue, max_ticks: int = 50) -> int:
        for ticks in range(1, max_ticks + 1):
            queue.process_tick()
            stats = queue.stats()
            if stats.pending == 0 and stats.in_flight == 0:
                return ticks
            fake_clock.advance(max(queue.config.retry_delays_seconds))
        raise AssertionError("queue did not settle")

    return _drain
