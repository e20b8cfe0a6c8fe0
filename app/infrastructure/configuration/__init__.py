"""Configuration package - public API.

Centralized configuration for the notification delivery service using
Pydantic BaseSettings, organized by concern.

Exports:
    settings: Process-wide Settings instance
    Settings: Main settings class (for testing/overrides)
    QueueSettings, DispatcherSettings: Pipeline sections
    MailSettings, SmsSettings, WebhookSettings, PushSettings: Transport sections

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    if settings.is_production:
        ...
    ```
"""

from infrastructure.configuration.infrastructure import (
    DispatcherSettings,
    QueueSettings,
)
from infrastructure.configuration.integrations import (
    MailSettings,
    PushSettings,
    SmsSettings,
    WebhookSettings,
)
from infrastructure.configuration.settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "DispatcherSettings",
    "QueueSettings",
    "MailSettings",
    "PushSettings",
    "SmsSettings",
    "WebhookSettings",
]
