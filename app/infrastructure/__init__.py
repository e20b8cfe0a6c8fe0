"""Infrastructure modules for the notification delivery service.

Centralized infrastructure components:
- configuration: Settings management (settings, QueueSettings, MailSettings)
- logging: Structured logging (configure_logging, get_module_logger)
- events: In-process event bus
- operations: Operation results and error classification
- notifications: Providers, dispatcher and delivery queue
- services: Application-scoped providers (get_settings, get_notification_service)
"""

# Configuration
from infrastructure.configuration import settings

# Logging
from infrastructure.logging import get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "settings",
    # Logging
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
