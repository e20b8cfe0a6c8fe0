"""Webhook fan-out settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class WebhookSettings(IntegrationSettings):
    """Outbound webhook configuration.

    Environment Variables:
        WEBHOOK_TIMEOUT_SECONDS: Per-request timeout (default: 10)
        WEBHOOK_RETRY_ATTEMPTS: Immediate attempts per target inside one
            provider call. 1 disables inner retries (default: 3)
        WEBHOOK_RETRY_DELAY_SECONDS: Linear delay unit between inner attempts
            (default: 1)
        WEBHOOK_USER_AGENT: User-Agent header sent with every request
        WEBHOOK_USERNAME: Display name used in Slack and Discord payloads

    Note:
        Inner attempts compound with the delivery queue's attempt ceiling:
        one logical notification may reach a target up to
        WEBHOOK_RETRY_ATTEMPTS * QUEUE max attempts times.
    """

    WEBHOOK_TIMEOUT_SECONDS: float = Field(default=10.0, alias="WEBHOOK_TIMEOUT_SECONDS")
    WEBHOOK_RETRY_ATTEMPTS: int = Field(default=3, alias="WEBHOOK_RETRY_ATTEMPTS")
    WEBHOOK_RETRY_DELAY_SECONDS: float = Field(
        default=1.0, alias="WEBHOOK_RETRY_DELAY_SECONDS"
    )
    WEBHOOK_USER_AGENT: str = Field(
        default="Delivery-Notifications/1.0", alias="WEBHOOK_USER_AGENT"
    )
    WEBHOOK_USERNAME: str = Field(default="Notifications", alias="WEBHOOK_USERNAME")
