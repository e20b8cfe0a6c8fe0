"""Mail relay settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class MailSettings(IntegrationSettings):
    """SMTP relay configuration for the mail channel.

    Environment Variables:
        SMTP_HOST: Relay hostname. The mail channel is unconfigured when empty.
        SMTP_PORT: Relay port (default: 587)
        SMTP_USE_TLS: Issue STARTTLS after connecting (default: True)
        SMTP_USERNAME: Relay login
        SMTP_PASSWORD: Relay password
        SMTP_TIMEOUT_SECONDS: Socket timeout (default: 30)
        MAIL_FROM_ADDRESS: Sender address
        MAIL_FROM_NAME: Sender display name
        MAIL_DASHBOARD_URL: Base URL linked from every message

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        host = settings.mail.SMTP_HOST
        ```
    """

    SMTP_HOST: str = Field(default="", alias="SMTP_HOST")
    SMTP_PORT: int = Field(default=587, alias="SMTP_PORT")
    SMTP_USE_TLS: bool = Field(default=True, alias="SMTP_USE_TLS")
    SMTP_USERNAME: str | None = Field(default=None, alias="SMTP_USERNAME")
    SMTP_PASSWORD: str | None = Field(default=None, alias="SMTP_PASSWORD")
    SMTP_TIMEOUT_SECONDS: float = Field(default=30.0, alias="SMTP_TIMEOUT_SECONDS")
    MAIL_FROM_ADDRESS: str = Field(
        default="notifications@example.com", alias="MAIL_FROM_ADDRESS"
    )
    MAIL_FROM_NAME: str = Field(default="Notifications", alias="MAIL_FROM_NAME")
    MAIL_DASHBOARD_URL: str = Field(
        default="http://localhost:3000", alias="MAIL_DASHBOARD_URL"
    )
