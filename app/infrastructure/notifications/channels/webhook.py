"""Webhook fan-out channel.

One logical channel addressing every enabled webhook target of a user
(Slack, Discord, Teams and custom callbacks). Each target gets a
kind-appropriate payload and a small number of immediate attempts inside a
single provider call; this is transport-level resilience and is separate
from the delivery queue's rescheduling.
"""

import time
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

import requests
import structlog

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.channels.webhook_formatters import format_for_target
from infrastructure.notifications.models import (
    Category,
    ChannelId,
    DeliveryResult,
    Notification,
    Severity,
)
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    WebhookTarget,
)
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)

if TYPE_CHECKING:
    from infrastructure.configuration import WebhookSettings

logger = structlog.get_logger()


@dataclass(frozen=True)
class TargetOutcome:
    """Result of delivering to one webhook target."""

    target: str
    kind: str
    success: bool
    attempts: int
    status_code: Optional[int] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


class WebhookChannel(NotificationChannel):
    """Webhook fan-out notification channel.

    Retry rules per target:
    - 2xx: success, no further attempts
    - 4xx: permanent rejection for this target on this call, not retried
    - 5xx and network errors: retried up to `retry_attempts` times with a
      delay of `retry_delay * attempt` seconds

    The channel succeeds if at least one target succeeded. Per-target
    outcomes are reported in DeliveryResult.details.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        user_agent: str = "Delivery-Notifications/1.0",
        username: str = "Notifications",
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be at least 1")
        self._timeout = timeout
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._user_agent = user_agent
        self._username = username
        self._session = session or requests.Session()
        self._sleep = sleep
        logger.info(
            "initialized_webhook_channel",
            timeout=timeout,
            retry_attempts=retry_attempts,
        )

    @classmethod
    def from_settings(cls, settings: "WebhookSettings") -> "WebhookChannel":
        return cls(
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
            retry_attempts=settings.WEBHOOK_RETRY_ATTEMPTS,
            retry_delay=settings.WEBHOOK_RETRY_DELAY_SECONDS,
            user_agent=settings.WEBHOOK_USER_AGENT,
            username=settings.WEBHOOK_USERNAME,
        )

    @property
    def channel_id(self) -> ChannelId:
        return ChannelId.WEBHOOK

    @property
    def is_configured(self) -> bool:
        # Targets come from preferences; nothing process-wide is required
        return True

    @property
    def retry_attempts(self) -> int:
        return self._retry_attempts

    def resolve_recipient(self, preferences: DeliveryPreferences) -> OperationResult:
        preference = preferences.webhook
        targets = preference.enabled_targets if preference else []
        if not targets:
            return OperationResult.permanent_error(
                "No webhook integrations enabled", error_code="NO_WEBHOOK_TARGETS"
            )
        return OperationResult.success(data={"targets": targets})

    def send(
        self, notification: Notification, preferences: DeliveryPreferences
    ) -> DeliveryResult:
        rejection = self.check_preference(notification, preferences)
        if rejection:
            return rejection

        resolved = self.resolve_recipient(preferences)
        if not resolved.is_success:
            return self.reject(resolved.error_code or "NO_WEBHOOK_TARGETS", resolved.message)

        targets: List[WebhookTarget] = resolved.data["targets"]
        outcomes = [self._deliver(notification, target) for target in targets]
        sent = sum(1 for o in outcomes if o.success)
        details: Dict[str, Any] = {
            "sent": sent,
            "total": len(outcomes),
            "targets": [asdict(o) for o in outcomes],
        }

        logger.info(
            "webhook_fanout_complete",
            notification_id=notification.id,
            sent=sent,
            total=len(outcomes),
        )

        if sent == 0:
            return DeliveryResult.transport_error(
                self.channel_id,
                "ALL_TARGETS_FAILED",
                f"All {len(outcomes)} webhook targets failed",
                details=details,
            )
        return DeliveryResult.sent(
            self.channel_id,
            provider_message_id=f"webhook_{notification.id}",
            details=details,
        )

    def _deliver(self, notification: Notification, target: WebhookTarget) -> TargetOutcome:
        payload = format_for_target(notification, target, self._username)
        result, attempts = self._post_with_retry(target, payload)
        status_code = (result.data or {}).get("status_code")

        if not result.is_success:
            logger.warning(
                "webhook_target_failed",
                notification_id=notification.id,
                target=target.name,
                kind=target.kind.value,
                status_code=status_code,
                attempts=attempts,
                error_code=result.error_code,
            )

        return TargetOutcome(
            target=target.name,
            kind=target.kind.value,
            success=result.is_success,
            attempts=attempts,
            status_code=status_code,
            error_code=None if result.is_success else result.error_code,
            error=None if result.is_success else result.message,
        )

    def _post_with_retry(
        self, target: WebhookTarget, payload: Dict[str, Any]
    ) -> Tuple[OperationResult, int]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._user_agent,
            **target.headers,
        }
        result = OperationResult.transient_error("No attempt made")
        for attempt in range(1, self._retry_attempts + 1):
            try:
                response = self._session.post(
                    target.url, json=payload, headers=headers, timeout=self._timeout
                )
            except requests.RequestException as e:
                result = classify_request_exception(e, service=f"webhook {target.name}")
            else:
                result = classify_http_response(response, service=f"webhook {target.name}")
                if response.status_code < 500:
                    return result, attempt

            if attempt < self._retry_attempts:
                self._sleep(self._retry_delay * attempt)
        return result, self._retry_attempts

    def test_target(self, target: WebhookTarget) -> OperationResult:
        """Send a test message to one target and time the round trip.

        Returns:
            OperationResult whose data carries `response_time_ms`
        """
        probe = Notification(
            id="test_webhook",
            category=Category.SYSTEM,
            severity=Severity.LOW,
            title="Webhook Test",
            body="This is a test notification to verify webhook connectivity.",
            recipient_user_id="test_user",
        )
        started = time.monotonic()
        result, _ = self._post_with_retry(
            target, format_for_target(probe, target, self._username)
        )
        elapsed_ms = round((time.monotonic() - started) * 1000, 1)
        data = {"response_time_ms": elapsed_ms, **(result.data or {})}

        if result.is_success:
            return OperationResult.success(data=data, message="Webhook test successful")
        return OperationResult.error(
            result.status, result.message, error_code=result.error_code, data=data
        )
