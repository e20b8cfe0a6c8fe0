"""Notification service for dependency injection.

Provides a class-based facade over the delivery pipeline: the providers,
the SMS rate limiter, the dispatcher, the delivery log and the delivery
queue are built once per process and injected into each other here.
"""

from typing import TYPE_CHECKING, Dict, List, Optional

import structlog

from infrastructure.events import EventBus
from infrastructure.notifications.channels.email import EmailChannel
from infrastructure.notifications.channels.push import PushChannel
from infrastructure.notifications.channels.rate_limiter import SmsRateLimiter, SmsUsage
from infrastructure.notifications.channels.sms import SMSChannel
from infrastructure.notifications.channels.webhook import WebhookChannel
from infrastructure.notifications.delivery_log import (
    DeliveryLog,
    DeliveryLogEntry,
    InMemoryDeliveryLog,
)
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.models import (
    ChannelId,
    DispatchOutcome,
    DispatchStatus,
    Notification,
)
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    InMemoryPreferenceStore,
    PreferenceStore,
)
from infrastructure.notifications.queue import (
    DeliveryQueue,
    EnqueueOptions,
    EnqueueResult,
    QueueConfig,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from infrastructure.notifications.channels.base import NotificationChannel

logger = structlog.get_logger()


class NotificationService:
    """Class-based notification service.

    Owns the state objects of the delivery pipeline so that nothing is a
    module-level singleton; tests build a service with fakes injected.

    Usage:
        # Via the provider
        from infrastructure.services import get_notification_service

        service = get_notification_service()
        service.init()
        service.enqueue(notification, preferences)

        # Direct instantiation
        from infrastructure.services import get_settings
        from infrastructure.notifications import NotificationService

        service = NotificationService(get_settings())
        outcome = service.dispatch(notification, preferences)
    """

    def __init__(
        self,
        settings: "Settings",
        channels: Optional[List["NotificationChannel"]] = None,
        preference_store: Optional[PreferenceStore] = None,
        delivery_log: Optional[DeliveryLog] = None,
        event_bus: Optional[EventBus] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        queue: Optional[DeliveryQueue] = None,
    ):
        """Initialize notification service.

        Args:
            settings: Settings instance (required, passed from provider).
            channels: Optional providers. If not provided, the e-mail, SMS,
                webhook and push providers are built from settings.
            preference_store: Source of user preferences for send().
            delivery_log: Optional delivery log shared with the dispatcher.
            event_bus: Optional EventBus receiving queue events.
            dispatcher: Optional pre-configured NotificationDispatcher.
            queue: Optional pre-configured DeliveryQueue.
        """
        self._settings = settings
        self._preference_store = preference_store or InMemoryPreferenceStore()

        if dispatcher is None:
            if channels is None:
                channels = self._default_channels(settings)
            dispatcher = NotificationDispatcher(
                channels=channels,
                delivery_log=delivery_log
                or InMemoryDeliveryLog(settings.dispatcher.delivery_log_max_entries),
                provider_timeout_seconds=settings.dispatcher.provider_timeout_seconds,
                max_provider_workers=settings.dispatcher.max_provider_workers,
            )
        self._dispatcher = dispatcher

        if queue is None:
            queue = DeliveryQueue(
                dispatcher=dispatcher,
                config=QueueConfig.from_settings(settings.queue),
                event_bus=event_bus or EventBus(name="delivery_queue"),
            )
        self._queue = queue
        self._initialized = False

    @staticmethod
    def _default_channels(settings: "Settings") -> List["NotificationChannel"]:
        sms_settings = settings.sms
        rate_limiter = SmsRateLimiter(
            max_hourly_count=sms_settings.SMS_MAX_HOURLY_COUNT,
            max_daily_cost=sms_settings.SMS_MAX_DAILY_COST,
            cost_per_message=sms_settings.SMS_COST_PER_MESSAGE,
        )
        return [
            EmailChannel.from_settings(settings.mail),
            SMSChannel.from_settings(sms_settings, rate_limiter=rate_limiter),
            WebhookChannel.from_settings(settings.webhook),
            PushChannel.from_settings(settings.push),
        ]

    def init(self) -> None:
        """Start background delivery. Safe to call more than once."""
        if self._initialized:
            return

        logger.info(
            "notification_service_starting",
            providers=self._dispatcher.provider_status(),
        )
        webhook = self._dispatcher.get_channel(ChannelId.WEBHOOK)
        if isinstance(webhook, WebhookChannel):
            logger.info(
                "max_physical_webhook_attempts",
                webhook_retry_attempts=webhook.retry_attempts,
                queue_max_attempts=self._queue.config.max_attempts,
                max_physical_webhook_attempts=self.max_physical_webhook_attempts,
            )

        self._queue.start()
        self._initialized = True

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop the queue, wait for in-flight work and release executors."""
        self._queue.shutdown(timeout)
        self._dispatcher.shutdown()
        self._initialized = False
        logger.info("notification_service_shut_down", **self._queue_sizes())

    def _queue_sizes(self) -> Dict[str, int]:
        stats = self._queue.stats()
        return {
            "pending": stats.pending,
            "in_flight": stats.in_flight,
            "dead_letter_count": stats.dead_letter_count,
        }

    @property
    def max_physical_webhook_attempts(self) -> int:
        """Upper bound of POSTs one webhook target can receive per notification."""
        webhook = self._dispatcher.get_channel(ChannelId.WEBHOOK)
        inner = webhook.retry_attempts if isinstance(webhook, WebhookChannel) else 1
        return inner * self._queue.config.max_attempts

    def dispatch(
        self,
        notification: Notification,
        preferences: Optional[DeliveryPreferences],
    ) -> DispatchOutcome:
        """Deliver synchronously with explicit preferences."""
        return self._dispatcher.dispatch(notification, preferences)

    def send(self, notification: Notification) -> DispatchOutcome:
        """Deliver synchronously using the recipient's stored preferences.

        A notification without a recipient, or whose recipient has no stored
        preferences, matches no channel.
        """
        preferences = None
        if notification.recipient_user_id:
            preferences = self._preference_store.get(notification.recipient_user_id)
        if preferences is None:
            logger.info(
                "preferences_not_found",
                notification_id=notification.id,
                user_id=notification.recipient_user_id,
            )
            return DispatchOutcome(
                notification_id=notification.id,
                status=(
                    DispatchStatus.EXPIRED
                    if notification.is_expired()
                    else DispatchStatus.NO_APPLICABLE_CHANNEL
                ),
            )
        return self._dispatcher.dispatch(notification, preferences)

    def enqueue(
        self,
        notification: Notification,
        preferences: Optional[DeliveryPreferences] = None,
        options: Optional[EnqueueOptions] = None,
    ) -> EnqueueResult:
        """Queue for background delivery.

        Without explicit preferences the recipient's stored preferences are
        captured at enqueue time.
        """
        if preferences is None and notification.recipient_user_id:
            preferences = self._preference_store.get(notification.recipient_user_id)
        return self._queue.enqueue(notification, preferences, options)

    def sms_usage(self, user_id: str) -> Optional[SmsUsage]:
        """Current SMS window counters for a user, None without an SMS provider."""
        sms = self._dispatcher.get_channel(ChannelId.SMS)
        if isinstance(sms, SMSChannel):
            return sms.usage(user_id)
        return None

    def delivery_history(
        self,
        notification_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[DeliveryLogEntry]:
        return self._dispatcher.delivery_log.entries(
            notification_id=notification_id, user_id=user_id, limit=limit
        )

    def provider_status(self) -> Dict[str, Dict[str, bool]]:
        return self._dispatcher.provider_status()

    @property
    def delivery_log(self) -> DeliveryLog:
        return self._dispatcher.delivery_log

    @property
    def preference_store(self) -> PreferenceStore:
        return self._preference_store

    @property
    def queue(self) -> DeliveryQueue:
        return self._queue

    @property
    def dispatcher(self) -> NotificationDispatcher:
        """Access underlying NotificationDispatcher instance."""
        return self._dispatcher
