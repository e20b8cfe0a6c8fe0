"""Push relay settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class PushSettings(IntegrationSettings):
    """Web push relay configuration.

    Environment Variables:
        PUSH_RELAY_URL: HTTP endpoint of the push relay
        PUSH_API_KEY: Relay API key
        PUSH_VAPID_SUBJECT: Contact URI sent with VAPID claims
        PUSH_TIMEOUT_SECONDS: Relay request timeout (default: 10)
        PUSH_APP_URL: Base URL used for notification deep links
    """

    PUSH_RELAY_URL: str = Field(default="", alias="PUSH_RELAY_URL")
    PUSH_API_KEY: str | None = Field(default=None, alias="PUSH_API_KEY")
    PUSH_VAPID_SUBJECT: str = Field(
        default="mailto:notifications@example.com", alias="PUSH_VAPID_SUBJECT"
    )
    PUSH_TIMEOUT_SECONDS: float = Field(default=10.0, alias="PUSH_TIMEOUT_SECONDS")
    PUSH_APP_URL: str = Field(default="http://localhost:3000", alias="PUSH_APP_URL")
