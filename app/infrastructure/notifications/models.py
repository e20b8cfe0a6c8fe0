"""Notification delivery core models.

Channel-agnostic records that flow through the delivery pipeline:
producers build a Notification, providers return one DeliveryResult per
channel attempt, and the dispatcher aggregates them into a DispatchOutcome.

Uses Pydantic BaseModel for:
- Runtime validation of producer input (non-empty text, closed attribute values)
- Immutability of routing keys (frozen models)
- Timezone-aware timestamps
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_ATTRIBUTE_DEPTH = 5


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Category(Enum):
    """Kind of business event; selects templates and preference filters."""

    ALERT = "alert"
    REPORT = "report"
    SYSTEM = "system"
    MARKETING = "marketing"


class Severity(Enum):
    """Urgency of a notification; drives preference filters and queue priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class ChannelId(Enum):
    """Delivery medium."""

    EMAIL = "email"
    SMS = "sms"
    WEBHOOK = "webhook"
    PUSH = "push"


# Providers are always invoked in this order
CHANNEL_ORDER = (ChannelId.EMAIL, ChannelId.SMS, ChannelId.WEBHOOK, ChannelId.PUSH)


class DeliveryErrorKind(Enum):
    """Why a delivery attempt failed.

    POLICY_REJECTION: limits or configuration (disabled channel, unverified
        number, rate or cost ceiling). Not a transport problem.
    TRANSPORT_ERROR: network failure, non-2xx response or timeout.
    """

    POLICY_REJECTION = "policy_rejection"
    TRANSPORT_ERROR = "transport_error"


def _validate_attribute_value(key: str, value: Any, depth: int) -> None:
    if value is None or isinstance(value, (str, bool, int, float)):
        return
    if isinstance(value, dict):
        if depth >= MAX_ATTRIBUTE_DEPTH:
            raise ValueError(f"Attribute '{key}' is nested too deeply")
        for nested_key, nested_value in value.items():
            if not isinstance(nested_key, str):
                raise ValueError(f"Attribute '{key}' has a non-string key")
            _validate_attribute_value(f"{key}.{nested_key}", nested_value, depth + 1)
        return
    raise ValueError(
        f"Attribute '{key}' has unsupported type {type(value).__name__}; "
        "expected str, int, float, bool or a nested mapping"
    )


class Notification(BaseModel):
    """A unit of work for the delivery pipeline.

    `category` and `severity` are the routing key for the whole pipeline,
    so the model is frozen once constructed.

    Attributes:
        id: Opaque unique identifier, generated when not supplied
        category: Category of the business event
        severity: Severity of the business event
        title: Short human-readable title
        body: Human-readable message body
        recipient_user_id: User to notify
        attributes: Structured context rendered by channels. Values are
            limited to str, int, float, bool, None and nested mappings of the same.
        created_at: Creation time (UTC)
        expires_at: After this instant the notification is never delivered

    Example:
        notification = Notification(
            category=Category.ALERT,
            severity=Severity.CRITICAL,
            title="Stock below threshold",
            body="SKU-123 has 2 units left",
            recipient_user_id="user-1",
            attributes={"sku": "SKU-123", "threshold": 5},
        )
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    category: Category
    severity: Severity
    title: str
    body: str
    recipient_user_id: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: Optional[datetime] = None

    @field_validator("title", "body")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Notification title and body cannot be empty")
        return v

    @field_validator("attributes")
    @classmethod
    def validate_attributes(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in v.items():
            _validate_attribute_value(key, value, depth=0)
        return v

    @field_validator("created_at", "expires_at")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else v

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once `expires_at` has passed."""
        if self.expires_at is None:
            return False
        return ensure_aware(now or utc_now()) >= self.expires_at


class DeliveryResult(BaseModel):
    """Outcome of one provider attempt for one notification.

    Attributes:
        channel: Channel that was attempted
        success: Whether the provider delivered the notification
        provider_message_id: Identifier assigned by the back-end
        error_kind: Failure taxonomy, set only on failure
        error_code: Machine error code (TIMEOUT, HTTP_503, HOURLY_LIMIT_EXCEEDED, ...)
        error: Human-readable failure message
        details: Provider-specific detail, e.g. per-target webhook outcomes
        timestamp: When the attempt finished
    """

    model_config = ConfigDict(frozen=True)

    channel: ChannelId
    success: bool
    provider_message_id: Optional[str] = None
    error_kind: Optional[DeliveryErrorKind] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def is_policy_rejection(self) -> bool:
        return self.error_kind == DeliveryErrorKind.POLICY_REJECTION

    @classmethod
    def sent(
        cls,
        channel: ChannelId,
        provider_message_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        return cls(
            channel=channel,
            success=True,
            provider_message_id=provider_message_id,
            details=details,
        )

    @classmethod
    def policy_rejection(
        cls,
        channel: ChannelId,
        error_code: str,
        error: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        return cls(
            channel=channel,
            success=False,
            error_kind=DeliveryErrorKind.POLICY_REJECTION,
            error_code=error_code,
            error=error,
            details=details,
        )

    @classmethod
    def transport_error(
        cls,
        channel: ChannelId,
        error_code: str,
        error: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        return cls(
            channel=channel,
            success=False,
            error_kind=DeliveryErrorKind.TRANSPORT_ERROR,
            error_code=error_code,
            error=error,
            details=details,
        )


class DispatchStatus(Enum):
    """Aggregate outcome of a dispatch.

    DELIVERED: at least one provider succeeded
    FAILED: every attempted provider failed
    NO_APPLICABLE_CHANNEL: preferences matched no channel; not an error
    EXPIRED: the notification had expired; nothing was attempted
    """

    DELIVERED = "delivered"
    FAILED = "failed"
    NO_APPLICABLE_CHANNEL = "no_applicable_channel"
    EXPIRED = "expired"


class DispatchOutcome(BaseModel):
    """Per-provider results of one dispatch plus the aggregate status."""

    model_config = ConfigDict(frozen=True)

    notification_id: str
    status: DispatchStatus
    results: List[DeliveryResult] = Field(default_factory=list)

    @property
    def is_delivered(self) -> bool:
        return self.status == DispatchStatus.DELIVERED

    @property
    def is_retryable(self) -> bool:
        """Only attempted-and-failed dispatches are worth retrying."""
        return self.status == DispatchStatus.FAILED

    @property
    def only_policy_rejections(self) -> bool:
        """True when every result is a policy rejection."""
        return bool(self.results) and all(r.is_policy_rejection for r in self.results)

    @property
    def error_summary(self) -> Optional[str]:
        errors = [
            f"{r.channel.value}: {r.error_code or 'ERROR'}"
            for r in self.results
            if not r.success
        ]
        return "; ".join(errors) if errors else None

    @classmethod
    def from_results(
        cls, notification_id: str, results: List[DeliveryResult]
    ) -> "DispatchOutcome":
        status = (
            DispatchStatus.DELIVERED
            if any(r.success for r in results)
            else DispatchStatus.FAILED
        )
        return cls(notification_id=notification_id, status=status, results=results)
