"""Transport back-end settings."""

from infrastructure.configuration.integrations.mail import MailSettings
from infrastructure.configuration.integrations.push import PushSettings
from infrastructure.configuration.integrations.sms import SmsSettings
from infrastructure.configuration.integrations.webhook import WebhookSettings

__all__ = [
    "MailSettings",
    "PushSettings",
    "SmsSettings",
    "WebhookSettings",
]
