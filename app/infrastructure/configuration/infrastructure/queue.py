"""Delivery queue settings."""

from typing import List

from pydantic import Field, field_validator

from infrastructure.configuration.base import InfrastructureSettings


class QueueSettings(InfrastructureSettings):
    """Delivery queue configuration.

    Environment Variables:
        QUEUE_MAX_CONCURRENT: Maximum in-flight dispatches (default: 5)
        QUEUE_RETRY_DELAYS_SECONDS: JSON list of retry delays, strictly
            increasing (default: [1, 5, 15, 60])
        QUEUE_MAX_ATTEMPTS: Default attempt ceiling per item. Zero means
            one initial attempt plus one retry per delay (default: 0)
        QUEUE_MAX_SIZE: Maximum pending items before enqueue is rejected
            (default: 1000)
        QUEUE_TICK_INTERVAL_SECONDS: Worker loop tick interval (default: 1.0)
        QUEUE_DEAD_LETTER_SIZE: Dead-letter ring capacity (default: 100)
        QUEUE_RETRY_POLICY_REJECTIONS: Retry attempts that failed only with
            policy rejections (default: True)

    Retry Schedule:
        Delay after the Nth failed attempt is
        retry_delays[min(N - 1, len(retry_delays) - 1)].

        Example with defaults:
            Attempt 1 fails: retry after 1s
            Attempt 2 fails: retry after 5s
            Attempt 3 fails: retry after 15s
            Attempt 4 fails: retry after 60s
            Attempt 5 fails: dead-letter

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        concurrency = settings.queue.max_concurrent
        ```
    """

    max_concurrent: int = Field(
        default=5,
        alias="QUEUE_MAX_CONCURRENT",
        description="Maximum number of in-flight dispatch attempts",
    )
    retry_delays_seconds: List[float] = Field(
        default_factory=lambda: [1.0, 5.0, 15.0, 60.0],
        alias="QUEUE_RETRY_DELAYS_SECONDS",
        description="Strictly increasing retry delay schedule (seconds)",
    )
    max_attempts: int = Field(
        default=0,
        alias="QUEUE_MAX_ATTEMPTS",
        description="Attempt ceiling per item, 0 derives it from the delay schedule",
    )
    max_size: int = Field(
        default=1000,
        alias="QUEUE_MAX_SIZE",
        description="Maximum pending items before queue_full is returned",
    )
    tick_interval_seconds: float = Field(
        default=1.0,
        alias="QUEUE_TICK_INTERVAL_SECONDS",
        description="Interval between worker loop ticks (seconds)",
    )
    dead_letter_size: int = Field(
        default=100,
        alias="QUEUE_DEAD_LETTER_SIZE",
        description="Dead-letter ring capacity, oldest evicted first",
    )
    retry_policy_rejections: bool = Field(
        default=True,
        alias="QUEUE_RETRY_POLICY_REJECTIONS",
        description="Retry attempts whose failures were all policy rejections",
    )

    @field_validator("retry_delays_seconds")
    @classmethod
    def validate_retry_delays(cls, v: List[float]) -> List[float]:
        if not v:
            raise ValueError("QUEUE_RETRY_DELAYS_SECONDS must not be empty")
        if any(later <= earlier for earlier, later in zip(v, v[1:])):
            raise ValueError("QUEUE_RETRY_DELAYS_SECONDS must be strictly increasing")
        return v
