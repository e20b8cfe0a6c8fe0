"""Dispatcher settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class DispatcherSettings(InfrastructureSettings):
    """Synchronous dispatcher configuration.

    Environment Variables:
        DISPATCHER_PROVIDER_TIMEOUT_SECONDS: Timeout applied to every provider
            call (default: 45)
        DISPATCHER_MAX_PROVIDER_WORKERS: Threads available for timed provider
            calls (default: 16)
        DELIVERY_LOG_MAX_ENTRIES: Entries retained by the in-memory delivery
            log (default: 10000)
    """

    provider_timeout_seconds: float = Field(
        default=45.0,
        alias="DISPATCHER_PROVIDER_TIMEOUT_SECONDS",
        description="Timeout for a single provider call (seconds)",
    )
    max_provider_workers: int = Field(
        default=16,
        alias="DISPATCHER_MAX_PROVIDER_WORKERS",
        description="Worker threads used to enforce provider timeouts",
    )
    delivery_log_max_entries: int = Field(
        default=10000,
        alias="DELIVERY_LOG_MAX_ENTRIES",
        description="Maximum entries kept in the in-memory delivery log",
    )
