"""Delivery context binding for structured logging.

Binds notification-scoped identifiers to structlog's context variables so
every log line emitted while a notification is being dispatched carries
the same correlation keys.

Usage:
    from infrastructure.logging import bind_delivery_context

    with bind_delivery_context(notification_id=notification.id, queue_id=item.id):
        logger.info("dispatch_started")

Dependencies:
    - structlog.contextvars
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_delivery_context(
    notification_id: Optional[str] = None,
    queue_id: Optional[str] = None,
    user_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind delivery-scoped context to all logs within the block.

    Args:
        notification_id: Notification being delivered.
        queue_id: Queue item id when the dispatch is driven by the queue.
        user_id: Recipient user id.
        correlation_id: Correlation id. Defaults to the notification id, or
            a fresh uuid when no notification id is given.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is bound to structlog's context vars.
    """
    context: dict[str, Any] = {
        "correlation_id": correlation_id or notification_id or str(uuid.uuid4())
    }

    if notification_id is not None:
        context["notification_id"] = notification_id

    if queue_id is not None:
        context["queue_id"] = queue_id

    if user_id is not None:
        context["user_id"] = user_id

    context.update(extra_context)

    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context.

    Returns:
        The correlation ID if set, None otherwise.
    """
    return structlog.contextvars.get_contextvars().get("correlation_id")


def clear_delivery_context() -> None:
    """Clear all bound context. Worker threads call this between items."""
    structlog.contextvars.clear_contextvars()
