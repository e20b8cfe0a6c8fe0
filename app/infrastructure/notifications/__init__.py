"""Multi-channel notification delivery.

Provides delivery over e-mail, SMS, webhooks and web push with:
- Per-user channel preferences filtered by category and severity
- Per-user SMS rate and cost ceilings
- A synchronous dispatcher with a per-provider timeout
- A prioritized delivery queue with retries and a dead-letter ring

Usage:
    from infrastructure.notifications import (
        Category,
        DeliveryPreferences,
        EmailPreference,
        Notification,
        NotificationService,
        Severity,
    )

    notification = Notification(
        category=Category.ALERT,
        severity=Severity.HIGH,
        title="Stock below threshold",
        body="SKU-123 has 2 units left",
        recipient_user_id="user-1",
    )
    preferences = DeliveryPreferences(
        user_id="user-1",
        email=EmailPreference(address="user@example.com"),
    )

    # Time-sensitive: deliver now
    outcome = service.dispatch(notification, preferences)

    # Best effort: deliver in the background with retries
    result = service.enqueue(notification, preferences)
"""

# Models
from infrastructure.notifications.models import (
    CHANNEL_ORDER,
    Category,
    ChannelId,
    DeliveryErrorKind,
    DeliveryResult,
    DispatchOutcome,
    DispatchStatus,
    Notification,
    Severity,
)

# Preferences
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    EmailPreference,
    InMemoryPreferenceStore,
    PreferenceStore,
    PushPreference,
    PushSubscription,
    SmsPreference,
    WebhookFormat,
    WebhookKind,
    WebhookPreference,
    WebhookTarget,
    applicable_channels,
)

# Delivery log
from infrastructure.notifications.delivery_log import (
    DeliveryLog,
    DeliveryLogEntry,
    InMemoryDeliveryLog,
)

# Channel interface and implementations
from infrastructure.notifications.channels import (
    EmailChannel,
    NotificationChannel,
    PushChannel,
    SMSChannel,
    SmsRateLimiter,
    WebhookChannel,
)

# Dispatcher and queue
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.queue import (
    DeliveryQueue,
    EnqueueOptions,
    EnqueueResult,
    QueueConfig,
    QueueEventType,
)

# Service facade
from infrastructure.notifications.service import NotificationService

__all__ = [
    # Models
    "CHANNEL_ORDER",
    "Category",
    "ChannelId",
    "DeliveryErrorKind",
    "DeliveryResult",
    "DispatchOutcome",
    "DispatchStatus",
    "Notification",
    "Severity",
    # Preferences
    "DeliveryPreferences",
    "EmailPreference",
    "InMemoryPreferenceStore",
    "PreferenceStore",
    "PushPreference",
    "PushSubscription",
    "SmsPreference",
    "WebhookFormat",
    "WebhookKind",
    "WebhookPreference",
    "WebhookTarget",
    "applicable_channels",
    # Delivery log
    "DeliveryLog",
    "DeliveryLogEntry",
    "InMemoryDeliveryLog",
    # Channels
    "NotificationChannel",
    "EmailChannel",
    "SMSChannel",
    "SmsRateLimiter",
    "WebhookChannel",
    "PushChannel",
    # Dispatcher and queue
    "NotificationDispatcher",
    "DeliveryQueue",
    "EnqueueOptions",
    "EnqueueResult",
    "QueueConfig",
    "QueueEventType",
    # Service
    "NotificationService",
]
