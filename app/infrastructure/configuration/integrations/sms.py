"""SMS gateway settings."""

from decimal import Decimal

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class SmsSettings(IntegrationSettings):
    """SMS gateway configuration and spending ceilings.

    Environment Variables:
        SMS_GATEWAY_URL: HTTP endpoint accepting outbound messages
        SMS_API_KEY: Gateway API key
        SMS_FROM_NUMBER: Sender number in E.164 format
        SMS_TIMEOUT_SECONDS: Gateway request timeout (default: 10)
        SMS_MAX_HOURLY_COUNT: Messages per user per hour (default: 10)
        SMS_MAX_DAILY_COST: Spend per user per UTC day (default: 50.00)
        SMS_COST_PER_MESSAGE: Fixed cost charged per message (default: 0.0075)

    The channel is considered configured only when the gateway URL, API key
    and sender number are all set.
    """

    SMS_GATEWAY_URL: str = Field(default="", alias="SMS_GATEWAY_URL")
    SMS_API_KEY: str | None = Field(default=None, alias="SMS_API_KEY")
    SMS_FROM_NUMBER: str | None = Field(default=None, alias="SMS_FROM_NUMBER")
    SMS_TIMEOUT_SECONDS: float = Field(default=10.0, alias="SMS_TIMEOUT_SECONDS")
    SMS_MAX_HOURLY_COUNT: int = Field(default=10, alias="SMS_MAX_HOURLY_COUNT")
    SMS_MAX_DAILY_COST: Decimal = Field(
        default=Decimal("50.00"), alias="SMS_MAX_DAILY_COST"
    )
    SMS_COST_PER_MESSAGE: Decimal = Field(
        default=Decimal("0.0075"), alias="SMS_COST_PER_MESSAGE"
    )
