"""Notification channel abstract base class.

All providers (email, SMS, webhook fan-out, push) implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from infrastructure.notifications.models import (
    ChannelId,
    DeliveryResult,
    Notification,
)
from infrastructure.notifications.preferences import (
    ChannelPreference,
    DeliveryPreferences,
)
from infrastructure.operations import OperationResult


class NotificationChannel(ABC):
    """Abstract base class for delivery providers.

    Each provider formats a notification for one channel and makes a single
    delivery attempt through its transport:
    - EmailChannel: SMTP relay
    - SMSChannel: SMS gateway, gated by a per-user rate limiter
    - WebhookChannel: fan-out to chat webhooks and custom callbacks
    - PushChannel: web push relay

    Providers never raise for delivery failures. They return a failed
    DeliveryResult whose error_kind separates policy rejections from
    transport errors.

    Example Implementation:
        class PagerChannel(NotificationChannel):

            @property
            def channel_id(self) -> ChannelId:
                return ChannelId.PUSH

            @property
            def is_configured(self) -> bool:
                return bool(self._relay_url)

            def resolve_recipient(self, preferences) -> OperationResult:
                ...

            def send(self, notification, preferences) -> DeliveryResult:
                rejection = self.check_preference(notification, preferences)
                if rejection:
                    return rejection
                ...
    """

    @property
    @abstractmethod
    def channel_id(self) -> ChannelId:
        pass

    @property
    def channel_name(self) -> str:
        """Channel identifier used in logs."""
        return self.channel_id.value

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the transport has the configuration it needs.

        The dispatcher skips unconfigured providers.
        """
        pass

    @abstractmethod
    def resolve_recipient(self, preferences: DeliveryPreferences) -> OperationResult:
        """Resolve the channel-specific address from preferences.

        Returns:
            OperationResult with the address in `data`, or a PERMANENT_ERROR
            whose error_code explains why no address is usable.
        """
        pass

    @abstractmethod
    def send(
        self, notification: Notification, preferences: DeliveryPreferences
    ) -> DeliveryResult:
        """Make one delivery attempt.

        Args:
            notification: Notification to deliver
            preferences: Recipient preferences

        Returns:
            DeliveryResult for this channel
        """
        pass

    def channel_preference(
        self, preferences: DeliveryPreferences
    ) -> Optional[ChannelPreference]:
        return preferences.for_channel(self.channel_id)

    def check_preference(
        self, notification: Notification, preferences: DeliveryPreferences
    ) -> Optional[DeliveryResult]:
        """Reject sends the user's preferences do not allow.

        The dispatcher only calls providers the matcher selected, but
        providers are also callable directly, so they re-check.

        Returns:
            A policy-rejection DeliveryResult, or None when the send may proceed.
        """
        preference = self.channel_preference(preferences)
        if preference is None or not preference.enabled:
            return self.reject("CHANNEL_DISABLED", f"{self.channel_name} is disabled")
        if not preference.is_verified:
            return self.reject(
                "UNVERIFIED", f"{self.channel_name} address is not verified"
            )
        if notification.category not in preference.categories:
            return self.reject(
                "CATEGORY_NOT_ACCEPTED",
                f"{self.channel_name} does not accept {notification.category.value}",
            )
        if notification.severity not in preference.severities:
            return self.reject(
                "SEVERITY_NOT_ACCEPTED",
                f"{self.channel_name} does not accept {notification.severity.value}",
            )
        return None

    def reject(self, error_code: str, error: str) -> DeliveryResult:
        return DeliveryResult.policy_rejection(self.channel_id, error_code, error)

    def transport_failure(self, result: OperationResult) -> DeliveryResult:
        """Convert a failed transport OperationResult into a DeliveryResult."""
        return DeliveryResult.transport_error(
            self.channel_id,
            result.error_code or "TRANSPORT_ERROR",
            result.message,
        )

    def health_check(self) -> OperationResult:
        if not self.is_configured:
            return OperationResult.permanent_error(
                f"{self.channel_name} channel is not configured",
                error_code="NOT_CONFIGURED",
            )
        return OperationResult.success(message=f"{self.channel_name} channel configured")
