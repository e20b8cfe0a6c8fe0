"""SMS channel implementation using an HTTP SMS gateway."""

import re
from typing import TYPE_CHECKING, Optional, Protocol

import requests
import structlog

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.channels.rate_limiter import (
    SmsRateLimiter,
    SmsUsage,
)
from infrastructure.notifications.models import (
    Category,
    ChannelId,
    DeliveryResult,
    Notification,
    Severity,
)
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    validate_e164,
)
from infrastructure.operations import (
    OperationResult,
    classify_http_response,
    classify_request_exception,
)

if TYPE_CHECKING:
    from infrastructure.configuration import SmsSettings

logger = structlog.get_logger()

SMS_CHARACTER_BUDGET = 140
ELLIPSIS = "..."

SEVERITY_MARKERS = {
    Severity.CRITICAL: "🚨",
    Severity.HIGH: "⚠️",
    Severity.MEDIUM: "📢",
    Severity.LOW: "ℹ️",
}

CATEGORY_LABELS = {
    Category.ALERT: "ALERT",
    Category.REPORT: "REPORT",
    Category.SYSTEM: "SYSTEM",
    Category.MARKETING: "INFO",
}

_VERIFICATION_CODE_RE = re.compile(r"^\d{6}$")


def format_sms(notification: Notification, budget: int = SMS_CHARACTER_BUDGET) -> str:
    """Format a notification as one short text message.

    Layout is "<marker> <LABEL>: <title> - <body>". The body is truncated
    with an ellipsis when the whole message would exceed the budget; an
    overlong title is truncated the same way and the body dropped. A title
    that exactly fills the budget is kept whole.

    Args:
        notification: Notification to format
        budget: Maximum message length in characters

    Returns:
        Message text no longer than `budget`
    """
    marker = SEVERITY_MARKERS[notification.severity]
    label = CATEGORY_LABELS[notification.category]
    message = f"{marker} {label}: {notification.title}"

    if len(message) > budget:
        return message[: budget - len(ELLIPSIS)] + ELLIPSIS

    remaining = budget - len(message) - len(" - ")
    body = notification.body
    if len(body) <= remaining:
        return f"{message} - {body}"
    if remaining > len(ELLIPSIS):
        return f"{message} - {body[: remaining - len(ELLIPSIS)]}{ELLIPSIS}"

    # No room for body text, mark the overflow after the title where it fits
    for suffix in (f" - {ELLIPSIS}", f" {ELLIPSIS}", ELLIPSIS):
        if len(message) + len(suffix) <= budget:
            return message + suffix
    return message


class SmsGateway(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def send(self, to: str, body: str) -> OperationResult: ...

    def start_verification(self, phone_number: str) -> OperationResult: ...

    def check_verification(self, phone_number: str, code: str) -> OperationResult: ...


class HttpSmsGateway:
    """SMS gateway reached over a JSON HTTP API.

    POST {url}/messages with {"to", "from", "body"}; a 2xx response carrying
    an "id" (or "sid") is a successful submission.
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str],
        from_number: Optional[str],
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._from_number = from_number
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: "SmsSettings") -> "HttpSmsGateway":
        return cls(
            url=settings.SMS_GATEWAY_URL,
            api_key=settings.SMS_API_KEY,
            from_number=settings.SMS_FROM_NUMBER,
            timeout=settings.SMS_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._url and self._api_key and self._from_number)

    def _post(self, path: str, payload: dict) -> OperationResult:
        try:
            response = self._session.post(
                f"{self._url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            return classify_request_exception(e, service="SMS gateway")
        return classify_http_response(response, service="SMS gateway")

    def send(self, to: str, body: str) -> OperationResult:
        result = self._post(
            "/messages", {"to": to, "from": self._from_number, "body": body}
        )
        if not result.is_success:
            return result
        response_body = result.data.get("body") or {}
        message_id = None
        if isinstance(response_body, dict):
            message_id = response_body.get("id") or response_body.get("sid")
        return OperationResult.success(
            data={"message_id": message_id}, message="SMS submitted"
        )

    def start_verification(self, phone_number: str) -> OperationResult:
        return self._post("/verifications", {"to": phone_number, "channel": "sms"})

    def check_verification(self, phone_number: str, code: str) -> OperationResult:
        return self._post("/verifications/check", {"to": phone_number, "code": code})


class SMSChannel(NotificationChannel):
    """SMS notification channel.

    Gated by a per-user SmsRateLimiter. Ceiling hits are policy rejections
    (HOURLY_LIMIT_EXCEEDED, DAILY_COST_LIMIT_EXCEEDED), never transport errors.
    """

    def __init__(self, gateway: SmsGateway, rate_limiter: SmsRateLimiter):
        self._gateway = gateway
        self._rate_limiter = rate_limiter
        logger.info(
            "initialized_sms_channel",
            configured=self.is_configured,
            max_hourly_count=rate_limiter.max_hourly_count,
            max_daily_cost=str(rate_limiter.max_daily_cost),
        )

    @classmethod
    def from_settings(
        cls, settings: "SmsSettings", rate_limiter: Optional[SmsRateLimiter] = None
    ) -> "SMSChannel":
        limiter = rate_limiter or SmsRateLimiter(
            max_hourly_count=settings.SMS_MAX_HOURLY_COUNT,
            max_daily_cost=settings.SMS_MAX_DAILY_COST,
            cost_per_message=settings.SMS_COST_PER_MESSAGE,
        )
        return cls(gateway=HttpSmsGateway.from_settings(settings), rate_limiter=limiter)

    @property
    def channel_id(self) -> ChannelId:
        return ChannelId.SMS

    @property
    def is_configured(self) -> bool:
        return self._gateway.is_configured

    @property
    def rate_limiter(self) -> SmsRateLimiter:
        return self._rate_limiter

    def resolve_recipient(self, preferences: DeliveryPreferences) -> OperationResult:
        preference = preferences.sms
        if preference is None or not preference.phone_number:
            return OperationResult.permanent_error(
                "No phone number on file", error_code="MISSING_PHONE_NUMBER"
            )
        if not preference.verified:
            return OperationResult.permanent_error(
                "Phone number is not verified", error_code="UNVERIFIED"
            )
        return OperationResult.success(data={"phone_number": preference.phone_number})

    def send(
        self, notification: Notification, preferences: DeliveryPreferences
    ) -> DeliveryResult:
        rejection = self.check_preference(notification, preferences)
        if rejection:
            return rejection

        resolved = self.resolve_recipient(preferences)
        if not resolved.is_success:
            return self.reject(resolved.error_code or "MISSING_PHONE_NUMBER", resolved.message)

        user_id = notification.recipient_user_id or preferences.user_id
        decision = self._rate_limiter.acquire(user_id)
        if not decision.allowed:
            logger.warning(
                "sms_rate_limited",
                notification_id=notification.id,
                user_id=user_id,
                error_code=decision.error_code,
            )
            return self.reject(decision.error_code, decision.reason)

        phone_number = resolved.data["phone_number"]
        result = self._gateway.send(phone_number, format_sms(notification))

        if not result.is_success:
            self._rate_limiter.release(decision.reservation)
            logger.warning(
                "sms_send_failed",
                notification_id=notification.id,
                error_code=result.error_code,
                error=result.message,
            )
            return self.transport_failure(result)

        logger.info(
            "sms_sent",
            notification_id=notification.id,
            phone_number=phone_number,
            cost=str(decision.reservation.cost),
        )
        return DeliveryResult.sent(
            self.channel_id,
            provider_message_id=(result.data or {}).get("message_id"),
            details={"cost": str(decision.reservation.cost)},
        )

    def usage(self, user_id: str) -> SmsUsage:
        return self._rate_limiter.usage(user_id)

    def verify_phone_number(
        self, phone_number: str, code: Optional[str] = None
    ) -> OperationResult:
        """Start or complete phone number verification.

        Without a code a verification code is sent. With a code, the code
        must be six digits and is checked by the gateway.
        """
        try:
            validate_e164(phone_number)
        except ValueError as e:
            return OperationResult.permanent_error(str(e), error_code="INVALID_PHONE_NUMBER")

        if code is None:
            result = self._gateway.start_verification(phone_number)
            if result.is_success:
                return OperationResult.success(message="Verification code sent successfully")
            return result

        if not _VERIFICATION_CODE_RE.match(code):
            return OperationResult.permanent_error(
                "Invalid verification code", error_code="INVALID_CODE"
            )
        result = self._gateway.check_verification(phone_number, code)
        if result.is_success:
            return OperationResult.success(message="Phone number verified successfully")
        return result
