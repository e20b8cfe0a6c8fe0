"""Push channel implementation using a web push relay."""

import json
from threading import Lock
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

import requests
import structlog

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.models import (
    Category,
    ChannelId,
    DeliveryResult,
    Notification,
    Severity,
)
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    PushSubscription,
)
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)

if TYPE_CHECKING:
    from infrastructure.configuration import PushSettings

logger = structlog.get_logger()

ICON = "/icon-192x192.png"
BADGE = "/badge-72x72.png"

VIBRATION_PATTERNS = {
    Severity.CRITICAL: [200, 100, 200, 100, 200],
    Severity.HIGH: [200, 100, 200],
    Severity.MEDIUM: [200],
    Severity.LOW: [],
}

_URL_PATHS = {
    Category.ALERT: "/alerts",
    Category.REPORT: "/reports",
    Category.SYSTEM: "/settings",
}

# Relay answers for subscriptions the browser has revoked
_GONE_ERROR_CODES = frozenset({"HTTP_404", "HTTP_410"})


def _actions(notification: Notification) -> List[Dict[str, str]]:
    actions = []
    if notification.category == Category.ALERT:
        actions.append({"action": "view", "title": "View Alert", "icon": "/icons/view.png"})
        if notification.severity in (Severity.HIGH, Severity.CRITICAL):
            actions.append(
                {"action": "acknowledge", "title": "Acknowledge", "icon": "/icons/check.png"}
            )
    else:
        actions.append({"action": "view", "title": "View", "icon": "/icons/view.png"})
    actions.append({"action": "dismiss", "title": "Dismiss", "icon": "/icons/close.png"})
    return actions


def build_push_payload(notification: Notification, app_url: str) -> Dict[str, Any]:
    """Build the notification options handed to the service worker."""
    base_url = app_url.rstrip("/")
    return {
        "title": notification.title,
        "body": notification.body,
        "icon": ICON,
        "badge": BADGE,
        "tag": notification.id,
        "data": {
            "id": notification.id,
            "type": notification.category.value,
            "severity": notification.severity.value,
            "timestamp": notification.created_at.isoformat(),
            "url": base_url + _URL_PATHS.get(notification.category, ""),
        },
        "actions": _actions(notification),
        "requireInteraction": notification.severity in (Severity.HIGH, Severity.CRITICAL),
        "silent": False,
        "vibrate": VIBRATION_PATTERNS[notification.severity],
    }


class PushSubscriptionRegistry:
    """Per-user push subscriptions registered by the client."""

    def __init__(self):
        self._subscriptions: Dict[str, PushSubscription] = {}
        self._lock = Lock()

    def subscribe(self, user_id: str, subscription: PushSubscription) -> None:
        with self._lock:
            self._subscriptions[user_id] = subscription
        logger.info("push_subscription_added", user_id=user_id)

    def unsubscribe(self, user_id: str) -> bool:
        with self._lock:
            removed = self._subscriptions.pop(user_id, None) is not None
        if removed:
            logger.info("push_subscription_removed", user_id=user_id)
        return removed

    def get(self, user_id: str) -> Optional[PushSubscription]:
        with self._lock:
            return self._subscriptions.get(user_id)

    def is_subscribed(self, user_id: str) -> bool:
        return self.get(user_id) is not None


class PushGateway(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def send(
        self, subscription: PushSubscription, payload: Dict[str, Any]
    ) -> OperationResult: ...


class HttpPushGateway:
    """Push relay reached over HTTP.

    The relay signs the message with the service's VAPID keys and forwards
    it to the browser vendor's push service.
    """

    def __init__(
        self,
        relay_url: str,
        api_key: Optional[str],
        vapid_subject: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._relay_url = relay_url.rstrip("/")
        self._api_key = api_key
        self._vapid_subject = vapid_subject
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: "PushSettings") -> "HttpPushGateway":
        return cls(
            relay_url=settings.PUSH_RELAY_URL,
            api_key=settings.PUSH_API_KEY,
            vapid_subject=settings.PUSH_VAPID_SUBJECT,
            timeout=settings.PUSH_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._relay_url and self._api_key)

    def send(
        self, subscription: PushSubscription, payload: Dict[str, Any]
    ) -> OperationResult:
        body = {
            "subscription": {
                "endpoint": subscription.endpoint,
                "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
            },
            "payload": json.dumps(payload),
            "vapid_subject": self._vapid_subject,
        }
        try:
            response = self._session.post(
                f"{self._relay_url}/push",
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            return classify_request_exception(e, service="push relay")
        return classify_http_response(response, service="push relay")


class PushChannel(NotificationChannel):
    """Browser push notification channel.

    The subscription comes from the user's preferences, falling back to the
    registry. A revoked subscription (404/410 from the relay) is dropped
    from the registry.
    """

    def __init__(
        self,
        gateway: PushGateway,
        registry: Optional[PushSubscriptionRegistry] = None,
        app_url: str = "http://localhost:3000",
    ):
        self._gateway = gateway
        self._registry = registry or PushSubscriptionRegistry()
        self._app_url = app_url
        logger.info("initialized_push_channel", configured=self.is_configured)

    @classmethod
    def from_settings(cls, settings: "PushSettings") -> "PushChannel":
        return cls(
            gateway=HttpPushGateway.from_settings(settings),
            app_url=settings.PUSH_APP_URL,
        )

    @property
    def channel_id(self) -> ChannelId:
        return ChannelId.PUSH

    @property
    def is_configured(self) -> bool:
        return self._gateway.is_configured

    @property
    def registry(self) -> PushSubscriptionRegistry:
        return self._registry

    def subscribe(self, user_id: str, subscription: PushSubscription) -> None:
        self._registry.subscribe(user_id, subscription)

    def unsubscribe(self, user_id: str) -> bool:
        return self._registry.unsubscribe(user_id)

    def is_subscribed(self, user_id: str) -> bool:
        return self._registry.is_subscribed(user_id)

    def resolve_recipient(self, preferences: DeliveryPreferences) -> OperationResult:
        subscription = None
        if preferences.push is not None:
            subscription = preferences.push.subscription
        if subscription is None:
            subscription = self._registry.get(preferences.user_id)
        if subscription is None:
            return OperationResult.permanent_error(
                "User has not subscribed to push notifications",
                error_code="NOT_SUBSCRIBED",
            )
        return OperationResult.success(data={"subscription": subscription})

    def send(
        self, notification: Notification, preferences: DeliveryPreferences
    ) -> DeliveryResult:
        rejection = self.check_preference(notification, preferences)
        if rejection:
            return rejection

        resolved = self.resolve_recipient(preferences)
        if not resolved.is_success:
            return self.reject(resolved.error_code or "NOT_SUBSCRIBED", resolved.message)

        payload = build_push_payload(notification, self._app_url)
        result = self._gateway.send(resolved.data["subscription"], payload)

        if not result.is_success:
            if result.error_code in _GONE_ERROR_CODES:
                self._registry.unsubscribe(preferences.user_id)
            logger.warning(
                "push_send_failed",
                notification_id=notification.id,
                error_code=result.error_code,
                error=result.message,
            )
            return self.transport_failure(result)

        logger.info("push_sent", notification_id=notification.id)
        return DeliveryResult.sent(
            self.channel_id, provider_message_id=f"push_{notification.id}"
        )
