"""Delivery queue configuration."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from infrastructure.configuration import QueueSettings


@dataclass
class QueueConfig:
    """Configuration for delivery queue behavior.

    Attributes:
        max_concurrent: Maximum in-flight dispatch attempts
        retry_delays_seconds: Strictly increasing delay schedule. After the
            Nth failed attempt the item waits
            retry_delays_seconds[min(N - 1, len - 1)] seconds.
        max_attempts: Attempt ceiling per item. Defaults to one initial
            attempt plus one retry per delay.
        max_queue_size: Pending items allowed before enqueue returns queue_full
        tick_interval_seconds: Interval between worker loop ticks
        dead_letter_size: Dead-letter ring capacity, oldest evicted first
        retry_policy_rejections: When False, an attempt whose failures were
            all policy rejections is dead-lettered without further retries
        processing_time_window: Samples kept for the average processing time

    Example:
        # Default configuration
        config = QueueConfig()

        # Fast schedule for tests
        config = QueueConfig(retry_delays_seconds=(0.1, 0.2), max_attempts=3)
    """

    max_concurrent: int = 5
    retry_delays_seconds: Tuple[float, ...] = (1.0, 5.0, 15.0, 60.0)
    max_attempts: Optional[int] = None
    max_queue_size: int = 1000
    tick_interval_seconds: float = 1.0
    dead_letter_size: int = 100
    retry_policy_rejections: bool = True
    processing_time_window: int = field(default=100)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        self.retry_delays_seconds = tuple(self.retry_delays_seconds)
        if self.max_attempts is None:
            self.max_attempts = len(self.retry_delays_seconds) + 1

        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if not self.retry_delays_seconds:
            raise ValueError("retry_delays_seconds must not be empty")
        if any(d < 0 for d in self.retry_delays_seconds):
            raise ValueError("retry_delays_seconds must be non-negative")
        delays = self.retry_delays_seconds
        if any(later <= earlier for earlier, later in zip(delays, delays[1:])):
            raise ValueError("retry_delays_seconds must be strictly increasing")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1")
        if self.tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be positive")
        if self.dead_letter_size < 1:
            raise ValueError("dead_letter_size must be at least 1")
        if self.processing_time_window < 1:
            raise ValueError("processing_time_window must be at least 1")

    def retry_delay(self, attempts: int) -> float:
        """Delay before the next attempt once `attempts` attempts have failed."""
        index = min(max(attempts, 1) - 1, len(self.retry_delays_seconds) - 1)
        return self.retry_delays_seconds[index]

    @classmethod
    def from_settings(cls, settings: "QueueSettings") -> "QueueConfig":
        return cls(
            max_concurrent=settings.max_concurrent,
            retry_delays_seconds=tuple(settings.retry_delays_seconds),
            max_attempts=settings.max_attempts or None,
            max_queue_size=settings.max_size,
            tick_interval_seconds=settings.tick_interval_seconds,
            dead_letter_size=settings.dead_letter_size,
            retry_policy_rejections=settings.retry_policy_rejections,
        )
