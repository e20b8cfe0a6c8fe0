"""Prioritized delivery queue with retry and dead-letter handling.

The queue is the asynchronous entry point of the delivery pipeline. Each
processing tick:

1. Applies dispatches completed by the worker pool since the last tick
2. Discards pending items whose notification has expired
3. Admits the highest-priority eligible items until `max_concurrent`
   dispatches are in flight

A failed attempt returns the item to pending with the next delay from the
retry schedule; an item that exhausts `max_attempts` moves to the bounded
dead-letter ring, where an operator can inspect, requeue or clear it.
"""

import bisect
import itertools
import time
from collections import deque
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Event as ThreadEvent
from threading import Lock, Thread
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple, Union

import structlog

from infrastructure.events import EventBus, EventListener
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.models import (
    DispatchOutcome,
    DispatchStatus,
    Notification,
    utc_now,
)
from infrastructure.notifications.preferences import DeliveryPreferences
from infrastructure.notifications.queue.config import QueueConfig
from infrastructure.notifications.queue.models import (
    EnqueueOptions,
    EnqueueResult,
    QueueEventType,
    QueueItem,
    QueueStats,
)

logger = structlog.get_logger()

EventName = Union[QueueEventType, str]


@dataclass(frozen=True)
class _Completion:
    item: QueueItem
    outcome: Optional[DispatchOutcome]
    error: Optional[str]
    elapsed_ms: float


def _event_name(event_type: EventName) -> str:
    if isinstance(event_type, QueueEventType):
        return event_type.value
    return event_type


def _empty_tick_stats() -> Dict[str, int]:
    return {
        "completed": 0,
        "delivered": 0,
        "retried": 0,
        "dead_lettered": 0,
        "discarded": 0,
        "expired": 0,
        "admitted": 0,
    }


class DeliveryQueue:
    """In-process delivery queue feeding the NotificationDispatcher.

    Pending items are kept sorted by priority (critical first), then
    creation time, then insertion order. Pending, in-flight and
    dead-letter state only change under the queue lock; dispatches run on
    the worker pool and report back through a completion buffer that only
    the tick drains.

    Attributes:
        dispatcher: Dispatcher invoked once per attempt
        config: QueueConfig controlling concurrency and retries
        events: EventBus receiving queue lifecycle events

    Example:
        queue = DeliveryQueue(dispatcher, QueueConfig())
        queue.on(QueueEventType.ITEM_DEAD_LETTERED, alert_operator)
        queue.start()

        result = queue.enqueue(notification, preferences)
        if not result.success:
            logger.warning("enqueue_rejected", error_code=result.error_code)
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        config: Optional[QueueConfig] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utc_now,
        executor: Optional[Executor] = None,
    ):
        self.dispatcher = dispatcher
        self.config = config or QueueConfig()
        self.events = event_bus or EventBus(name="delivery_queue")
        self._clock = clock
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_concurrent, thread_name_prefix="delivery"
        )

        self._lock = Lock()
        self._seq = itertools.count()
        self._pending: List[QueueItem] = []
        self._in_flight: Dict[str, QueueItem] = {}
        self._dead_letter: Deque[QueueItem] = deque(maxlen=self.config.dead_letter_size)
        self._completions: Deque[_Completion] = deque()
        self._processing_times: Deque[float] = deque(
            maxlen=self.config.processing_time_window
        )
        self._counters = {"completed": 0, "failed": 0, "discarded": 0}

        self._paused = False
        self._stop_event = ThreadEvent()
        self._thread: Optional[Thread] = None

        self.log = logger.bind(component="delivery_queue")
        self.log.info(
            "initialized_delivery_queue",
            max_concurrent=self.config.max_concurrent,
            max_attempts=self.config.max_attempts,
            retry_delays_seconds=list(self.config.retry_delays_seconds),
            max_queue_size=self.config.max_queue_size,
        )

    # ------------------------------------------------------------------
    # Producer API
    # ------------------------------------------------------------------

    def enqueue(
        self,
        notification: Notification,
        preferences: Optional[DeliveryPreferences],
        options: Optional[EnqueueOptions] = None,
    ) -> EnqueueResult:
        """Accept a notification for asynchronous delivery.

        Args:
            notification: Notification to deliver
            preferences: Recipient preferences, captured for every attempt
            options: Optional priority, max_attempts and scheduled_for overrides

        Returns:
            EnqueueResult with the queue id, or error_code "expired" or
            "queue_full"
        """
        options = options or EnqueueOptions()
        now = self._clock()

        if notification.is_expired(now):
            self.log.info("enqueue_rejected_expired", notification_id=notification.id)
            return EnqueueResult.rejected("expired", "Notification has already expired")

        item = None
        with self._lock:
            pending = len(self._pending)
            if pending < self.config.max_queue_size:
                item = QueueItem(
                    notification=notification,
                    preferences=preferences,
                    priority=options.priority or notification.severity,
                    max_attempts=options.max_attempts or self.config.max_attempts,
                    scheduled_for=options.scheduled_for,
                    created_at=now,
                    seq=next(self._seq),
                )
                self._insert_pending(item)

        if item is None:
            self.log.warning(
                "queue_full",
                notification_id=notification.id,
                max_queue_size=self.config.max_queue_size,
            )
            self._emit(
                QueueEventType.QUEUE_FULL,
                {
                    "notification_id": notification.id,
                    "pending": pending,
                    "max_queue_size": self.config.max_queue_size,
                },
            )
            return EnqueueResult.rejected("queue_full", "Delivery queue is full")

        self.log.info(
            "queue_item_added",
            queue_id=item.id,
            notification_id=notification.id,
            priority=item.priority.value,
            pending=pending + 1,
        )
        self._emit(QueueEventType.ITEM_ADDED, item.to_dict())
        return EnqueueResult.accepted(item.id)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process_tick(self) -> dict:
        """Run one processing cycle.

        Safe to call repeatedly; the worker thread calls it every
        `tick_interval_seconds`, tests call it directly.

        Returns:
            Dictionary with tick statistics:
                - completed: Dispatch completions applied
                - delivered: Items delivered and removed
                - retried: Items returned to pending with a delay
                - dead_lettered: Items moved to dead-letter
                - discarded: Completed items removed without delivery
                - expired: Pending items purged because they expired
                - admitted: Items moved to in-flight
        """
        stats = _empty_tick_stats()
        self._apply_completions(stats)
        self._purge_expired(stats)
        if not self._paused:
            self._admit(stats)

        if any(stats.values()):
            self.log.info("queue_tick_complete", **stats, **self._sizes())
        else:
            self.log.debug("queue_tick_idle")
        return stats

    def _admit(self, stats: Dict[str, int]) -> None:
        now = self._clock()
        admitted: List[QueueItem] = []
        with self._lock:
            capacity = self.config.max_concurrent - len(self._in_flight)
            index = 0
            while capacity > 0 and index < len(self._pending):
                item = self._pending[index]
                if not item.is_eligible(now):
                    index += 1
                    continue
                del self._pending[index]
                self._in_flight[item.id] = item
                admitted.append(item)
                capacity -= 1

        for item in admitted:
            self.log.debug(
                "queue_item_admitted",
                queue_id=item.id,
                notification_id=item.notification.id,
                attempt=item.attempts + 1,
            )
            try:
                self._executor.submit(self._run, item)
            except RuntimeError as e:
                # Executor already shut down
                self.log.error("queue_submit_failed", queue_id=item.id, error=str(e))
                with self._lock:
                    self._in_flight.pop(item.id, None)
                    self._insert_pending(item)
                continue
            stats["admitted"] += 1

    def _run(self, item: QueueItem) -> None:
        """Dispatch one attempt on a worker thread and record the completion."""
        started = time.monotonic()
        outcome = None
        error = None
        try:
            outcome = self.dispatcher.dispatch(
                item.notification, item.preferences, queue_id=item.id
            )
        except Exception as e:
            self.log.error(
                "queue_dispatch_exception",
                queue_id=item.id,
                notification_id=item.notification.id,
                error=str(e),
                exc_info=True,
            )
            error = f"Unhandled exception: {e}"
        elapsed_ms = (time.monotonic() - started) * 1000
        self._completions.append(_Completion(item, outcome, error, elapsed_ms))

    def _apply_completions(self, stats: Dict[str, int]) -> None:
        while True:
            try:
                completion = self._completions.popleft()
            except IndexError:
                return
            stats["completed"] += 1
            self._apply_completion(completion, stats)

    def _apply_completion(self, completion: _Completion, stats: Dict[str, int]) -> None:
        item = completion.item
        now = self._clock()

        # Leaving in-flight and landing in pending or dead-letter is one step
        with self._lock:
            self._in_flight.pop(item.id, None)
            self._processing_times.append(completion.elapsed_ms)
            disposition, detail = self._settle(item, completion, now)

        if disposition == "delivered":
            stats["delivered"] += 1
            self.log.info(
                "queue_item_dispatched",
                queue_id=item.id,
                notification_id=item.notification.id,
                attempts=item.attempts + 1,
            )
            self._emit(
                QueueEventType.ITEM_DISPATCHED,
                {**item.to_dict(), "results": len(completion.outcome.results)},
            )
        elif disposition == "discarded":
            self._report_discard(item, detail, stats)
        elif disposition == "dead_lettered":
            self._report_dead_letter(item, *detail, stats)
        else:
            stats["retried"] += 1
            self.log.warning(
                "queue_item_retried",
                queue_id=item.id,
                notification_id=item.notification.id,
                attempts=item.attempts,
                max_attempts=item.max_attempts,
                delay_seconds=detail,
                last_error=item.last_error,
            )
            self._emit(
                QueueEventType.ITEM_RETRIED, {**item.to_dict(), "delay_seconds": detail}
            )

    def _settle(
        self, item: QueueItem, completion: _Completion, now: datetime
    ) -> Tuple[str, Any]:
        """Decide where a completed item goes and move it there. Caller holds the lock.

        Returns:
            (disposition, detail) where disposition is "delivered",
            "discarded" (detail: reason), "dead_lettered" (detail:
            (policy_only, evicted item or None)) or "retried" (detail: delay)
        """
        outcome = completion.outcome

        if outcome is not None and outcome.status == DispatchStatus.DELIVERED:
            self._counters["completed"] += 1
            return "delivered", None

        if outcome is not None and outcome.status == DispatchStatus.NO_APPLICABLE_CHANNEL:
            self._counters["discarded"] += 1
            return "discarded", "no_applicable_channel"

        if (outcome is not None and outcome.status == DispatchStatus.EXPIRED) or (
            item.is_expired(now)
        ):
            self._counters["discarded"] += 1
            return "discarded", "expired"

        item.attempts += 1
        item.last_error = completion.error or (outcome.error_summary if outcome else None)
        policy_only = outcome is not None and outcome.only_policy_rejections

        if item.attempts >= item.max_attempts or (
            policy_only and not self.config.retry_policy_rejections
        ):
            evicted = None
            if len(self._dead_letter) == self._dead_letter.maxlen:
                evicted = self._dead_letter[0]
            self._dead_letter.append(item)
            self._counters["failed"] += 1
            return "dead_lettered", (policy_only, evicted)

        delay = self.config.retry_delay(item.attempts)
        item.next_eligible_at = now + timedelta(seconds=delay)
        self._insert_pending(item)
        return "retried", delay

    def _report_discard(self, item: QueueItem, reason: str, stats: Dict[str, int]) -> None:
        stats["discarded"] += 1
        self.log.info(
            "queue_item_discarded",
            queue_id=item.id,
            notification_id=item.notification.id,
            reason=reason,
        )
        self._emit(QueueEventType.ITEM_DISCARDED, {**item.to_dict(), "reason": reason})

    def _report_dead_letter(
        self,
        item: QueueItem,
        policy_only: bool,
        evicted: Optional[QueueItem],
        stats: Dict[str, int],
    ) -> None:
        stats["dead_lettered"] += 1
        if evicted is not None:
            self.log.warning("dead_letter_evicted", queue_id=evicted.id)
        self.log.error(
            "queue_item_dead_lettered",
            queue_id=item.id,
            notification_id=item.notification.id,
            attempts=item.attempts,
            max_attempts=item.max_attempts,
            policy_rejections_only=policy_only,
            last_error=item.last_error,
        )
        self._emit(QueueEventType.ITEM_DEAD_LETTERED, item.to_dict())

    def _purge_expired(self, stats: Dict[str, int]) -> None:
        now = self._clock()
        with self._lock:
            expired = [item for item in self._pending if item.is_expired(now)]
            if expired:
                self._pending = [i for i in self._pending if not i.is_expired(now)]
                self._counters["discarded"] += len(expired)

        for item in expired:
            stats["expired"] += 1
            self.log.info(
                "queue_item_discarded",
                queue_id=item.id,
                notification_id=item.notification.id,
                reason="expired",
            )
            self._emit(QueueEventType.ITEM_DISCARDED, {**item.to_dict(), "reason": "expired"})

    def _insert_pending(self, item: QueueItem) -> None:
        """Insert into pending keeping priority order. Caller holds the lock."""
        bisect.insort(self._pending, item, key=lambda i: i.sort_key)

    # ------------------------------------------------------------------
    # Dead-letter management
    # ------------------------------------------------------------------

    def list_dead_letter(self) -> List[QueueItem]:
        with self._lock:
            return list(self._dead_letter)

    def requeue_dead_letter(self, ids: Optional[Iterable[str]] = None) -> int:
        """Move dead-lettered items back to pending.

        Attempts reset to zero and the retry delay is cleared; each item
        keeps its original priority and creation time.

        Args:
            ids: Queue ids to requeue (default: every dead-lettered item)

        Returns:
            Number of items requeued
        """
        wanted = set(ids) if ids is not None else None
        with self._lock:
            requeued = [i for i in self._dead_letter if wanted is None or i.id in wanted]
            for item in requeued:
                self._dead_letter.remove(item)
                item.attempts = 0
                item.next_eligible_at = None
                self._insert_pending(item)

        for item in requeued:
            self._emit(QueueEventType.ITEM_ADDED, {**item.to_dict(), "requeued": True})
        self.log.info("dead_letter_requeued", count=len(requeued))
        return len(requeued)

    def clear_dead_letter(self) -> int:
        with self._lock:
            count = len(self._dead_letter)
            self._dead_letter.clear()
        self.log.info("dead_letter_cleared", count=count)
        return count

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_pending(self) -> List[QueueItem]:
        """Pending items in admission order."""
        with self._lock:
            return list(self._pending)

    def list_in_flight(self) -> List[QueueItem]:
        with self._lock:
            return list(self._in_flight.values())

    def stats(self) -> QueueStats:
        with self._lock:
            times = list(self._processing_times)
            return QueueStats(
                pending=len(self._pending),
                in_flight=len(self._in_flight),
                dead_letter_count=len(self._dead_letter),
                completed=self._counters["completed"],
                failed=self._counters["failed"],
                discarded=self._counters["discarded"],
                average_processing_time_ms=(
                    round(sum(times) / len(times), 3) if times else 0.0
                ),
                running=self.is_running,
                paused=self._paused,
            )

    def _sizes(self) -> Dict[str, int]:
        with self._lock:
            return {
                "pending": len(self._pending),
                "in_flight": len(self._in_flight),
                "dead_letter": len(self._dead_letter),
            }

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_type: EventName, listener: EventListener) -> None:
        self.events.subscribe(_event_name(event_type), listener)

    def off(self, event_type: EventName, listener: EventListener) -> bool:
        return self.events.unsubscribe(_event_name(event_type), listener)

    def _emit(self, event_type: QueueEventType, data: Dict[str, Any]) -> None:
        self.events.emit(event_type.value, data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_paused(self) -> bool:
        return self._paused

    def start(self) -> None:
        """Start the background worker loop. No-op when already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="delivery-queue", daemon=True)
        self._thread.start()
        self.log.info(
            "queue_processing_started",
            tick_interval_seconds=self.config.tick_interval_seconds,
        )
        self._emit(QueueEventType.PROCESSING_STARTED, {"reason": "started"})

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker loop. In-flight dispatches keep running."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        self._thread = None
        self.log.info("queue_processing_stopped", **self._sizes())
        self._emit(QueueEventType.PROCESSING_STOPPED, {"reason": "stopped"})

    def pause(self) -> None:
        """Stop admitting new items; completions are still applied."""
        if self._paused:
            return
        self._paused = True
        self.log.info("queue_paused")
        self._emit(QueueEventType.PROCESSING_STOPPED, {"reason": "paused"})

    def resume(self) -> None:
        if not self._paused:
            return
        self._paused = False
        self.log.info("queue_resumed")
        self._emit(QueueEventType.PROCESSING_STARTED, {"reason": "resumed"})

    def wait_idle(self, timeout: float = 30.0, poll_interval: float = 0.01) -> bool:
        """Block until no dispatch is in flight.

        Completions are applied while waiting, so this also works when the
        worker loop is not running.

        Returns:
            True if the queue went idle before the timeout
        """
        deadline = time.monotonic() + timeout
        while True:
            self._apply_completions(_empty_tick_stats())
            with self._lock:
                busy = bool(self._in_flight)
            if not busy:
                return True
            if time.monotonic() >= deadline:
                self.log.warning("queue_wait_idle_timeout", **self._sizes())
                return False
            time.sleep(poll_interval)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop the loop, wait for in-flight work and release the worker pool."""
        self.stop(timeout)
        self.wait_idle(timeout if timeout is not None else 30.0)
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.process_tick()
            except Exception as e:
                self.log.error("queue_tick_failed", error=str(e), exc_info=True)
            self._stop_event.wait(self.config.tick_interval_seconds)
