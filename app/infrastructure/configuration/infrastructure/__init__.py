"""Delivery pipeline settings."""

from infrastructure.configuration.infrastructure.dispatcher import DispatcherSettings
from infrastructure.configuration.infrastructure.queue import QueueSettings

__all__ = [
    "DispatcherSettings",
    "QueueSettings",
]
