"""Notification delivery configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Transport back-end settings
from infrastructure.configuration.integrations import (
    MailSettings,
    PushSettings,
    SmsSettings,
    WebhookSettings,
)

# Delivery pipeline settings
from infrastructure.configuration.infrastructure import (
    DispatcherSettings,
    QueueSettings,
)


class Settings(BaseSettings):
    """Notification delivery settings - main aggregator.

    Aggregates the per-concern settings into a single configuration object:

    - **Integrations**: Transport back-ends (SMTP relay, SMS gateway,
      webhooks, push relay)
    - **Infrastructure**: Queue scheduling and dispatcher timeouts

    Environment Variables:
        PREFIX: Environment prefix, empty in production
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        relay = settings.mail.SMTP_HOST
        ceiling = settings.sms.SMS_MAX_DAILY_COST
        concurrency = settings.queue.max_concurrent
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    mail: MailSettings
    sms: SmsSettings
    webhook: WebhookSettings
    push: PushSettings

    # Infrastructure settings
    queue: QueueSettings
    dispatcher: DispatcherSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings, instantiating any section not passed in.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "mail": MailSettings,
            "sms": SmsSettings,
            "webhook": WebhookSettings,
            "push": PushSettings,
            "queue": QueueSettings,
            "dispatcher": DispatcherSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
