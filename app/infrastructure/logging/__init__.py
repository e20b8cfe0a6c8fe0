"""Structured logging infrastructure.

Centralized structlog configuration for the notification delivery service.

Public API:
    - configure_logging(): Initialize logging for the process
    - get_module_logger(): Get a logger bound to the calling module
    - bind_delivery_context(): Context manager for notification-scoped logging
    - get_correlation_id(): Current correlation ID from context
    - clear_delivery_context(): Clear all bound context

Processors:
    - add_deployment_info(): Stamp git sha and environment
    - mask_sensitive_data(): Redact credential-bearing keys
    - mask_contact_details(): Mask phone numbers and e-mail addresses
    - truncate_large_values(): Bound string lengths

Example:
    from infrastructure.logging import configure_logging, get_module_logger

    configure_logging()

    logger = get_module_logger()
    logger.info("queue_started")
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_delivery_context,
    clear_delivery_context,
    get_correlation_id,
)

from infrastructure.logging.formatters import (
    add_deployment_info,
    mask_contact_details,
    mask_sensitive_data,
    truncate_large_values,
    SENSITIVE_PATTERNS,
)

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_delivery_context",
    "clear_delivery_context",
    "get_correlation_id",
    "add_deployment_info",
    "mask_contact_details",
    "mask_sensitive_data",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
