"""Notification channel implementations."""

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.channels.email import EmailChannel, SmtpMailTransport
from infrastructure.notifications.channels.push import (
    HttpPushGateway,
    PushChannel,
    PushSubscriptionRegistry,
)
from infrastructure.notifications.channels.rate_limiter import (
    SmsRateLimiter,
    SmsUsage,
)
from infrastructure.notifications.channels.sms import HttpSmsGateway, SMSChannel
from infrastructure.notifications.channels.webhook import WebhookChannel

__all__ = [
    "NotificationChannel",
    "EmailChannel",
    "SmtpMailTransport",
    "SMSChannel",
    "HttpSmsGateway",
    "SmsRateLimiter",
    "SmsUsage",
    "WebhookChannel",
    "PushChannel",
    "HttpPushGateway",
    "PushSubscriptionRegistry",
]
