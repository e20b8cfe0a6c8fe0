"""Per-user delivery preferences and the preference matcher.

Preferences are read-only from the delivery pipeline's point of view: they
come from a PreferenceStore (or the caller) and are never mutated here.

A channel applies to a notification iff its record is present, enabled,
verified where verification exists, and accepts both the notification's
category and severity. Expired notifications match nothing.
"""

import re
from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Dict, List, Optional, Protocol, Set

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from infrastructure.notifications.models import (
    CHANNEL_ORDER,
    Category,
    ChannelId,
    Notification,
    Severity,
)

_E164_RE = re.compile(r"\+[0-9]{7,15}")


def _all_categories() -> Set[Category]:
    return set(Category)


def _all_severities() -> Set[Severity]:
    return set(Severity)


def validate_e164(phone_number: str) -> str:
    """Validate an E.164 phone number (+ followed by 7 to 15 digits)."""
    if not _E164_RE.fullmatch(phone_number):
        raise ValueError(f"Phone number must be in E.164 format: {phone_number}")
    return phone_number


class ChannelPreference(BaseModel):
    """Filters shared by every channel.

    Attributes:
        enabled: Whether the user wants this channel at all
        categories: Accepted notification categories (default: all)
        severities: Accepted notification severities (default: all)
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    categories: Set[Category] = Field(default_factory=_all_categories)
    severities: Set[Severity] = Field(default_factory=_all_severities)

    @property
    def is_verified(self) -> bool:
        """Channels without verification are always considered verified."""
        return True

    def accepts(self, notification: Notification) -> bool:
        return (
            self.enabled
            and self.is_verified
            and notification.category in self.categories
            and notification.severity in self.severities
        )


class EmailPreference(ChannelPreference):
    address: Optional[EmailStr] = None


class SmsPreference(ChannelPreference):
    """SMS preferences. Unverified numbers never receive messages."""

    phone_number: Optional[str] = None
    verified: bool = False

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_e164(v)

    @property
    def is_verified(self) -> bool:
        return self.verified


class PushSubscription(BaseModel):
    """Web push subscription as returned by the browser's PushManager."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    p256dh: str
    auth: str


class PushPreference(ChannelPreference):
    subscription: Optional[PushSubscription] = None


class WebhookKind(Enum):
    SLACK = "slack"
    DISCORD = "discord"
    TEAMS = "teams"
    CUSTOM = "custom"


class WebhookFormat(Enum):
    """Payload shape for custom targets."""

    JSON = "json"
    SLACK = "slack"
    DISCORD = "discord"


class WebhookTarget(BaseModel):
    """One webhook endpoint addressed by the fan-out channel.

    Attributes:
        name: Operator-facing label, unique per user
        kind: Chat platform the endpoint belongs to
        url: Endpoint URL (http or https)
        enabled: Disabled targets are skipped
        headers: Extra request headers (custom targets)
        channel: Slack channel override
        format: Payload shape for custom targets
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: WebhookKind
    url: str
    enabled: bool = True
    headers: Dict[str, str] = Field(default_factory=dict)
    channel: Optional[str] = None
    format: WebhookFormat = WebhookFormat.JSON

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Webhook URL must be http(s): {v}")
        return v


class WebhookPreference(ChannelPreference):
    targets: List[WebhookTarget] = Field(default_factory=list)

    @property
    def enabled_targets(self) -> List[WebhookTarget]:
        return [t for t in self.targets if t.enabled]


class DeliveryPreferences(BaseModel):
    """A user's preferences across all channels.

    A channel whose record is None is treated as disabled.

    Example:
        preferences = DeliveryPreferences(
            user_id="user-1",
            email=EmailPreference(address="user@example.com"),
            sms=SmsPreference(
                phone_number="+15555551234",
                verified=True,
                severities={Severity.CRITICAL},
            ),
        )
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: Optional[EmailPreference] = None
    sms: Optional[SmsPreference] = None
    webhook: Optional[WebhookPreference] = None
    push: Optional[PushPreference] = None

    def for_channel(self, channel: ChannelId) -> Optional[ChannelPreference]:
        return getattr(self, channel.value)


def applicable_channels(
    notification: Notification,
    preferences: Optional[DeliveryPreferences],
    now: Optional[datetime] = None,
) -> Set[ChannelId]:
    """Decide which channels apply to a notification.

    Pure and total: performs no I/O and never raises for well-formed input.

    Args:
        notification: Notification to route
        preferences: Recipient preferences, None meaning nothing is enabled
        now: Reference time for the expiry check (default: current UTC time)

    Returns:
        Set of applicable channels, empty for expired notifications.
    """
    if preferences is None or notification.is_expired(now):
        return set()

    channels = set()
    for channel in CHANNEL_ORDER:
        preference = preferences.for_channel(channel)
        if preference is not None and preference.accepts(notification):
            channels.add(channel)
    return channels


class PreferenceStore(Protocol):
    """Synchronous, side-effect-free preference lookup."""

    def get(self, user_id: str) -> Optional[DeliveryPreferences]: ...


class InMemoryPreferenceStore:
    """Dictionary-backed PreferenceStore for development and tests."""

    def __init__(self, preferences: Optional[List[DeliveryPreferences]] = None):
        self._lock = Lock()
        self._preferences: Dict[str, DeliveryPreferences] = {
            p.user_id: p for p in preferences or []
        }

    def get(self, user_id: str) -> Optional[DeliveryPreferences]:
        with self._lock:
            return self._preferences.get(user_id)

    def put(self, preferences: DeliveryPreferences) -> None:
        with self._lock:
            self._preferences[preferences.user_id] = preferences

    def remove(self, user_id: str) -> bool:
        with self._lock:
            return self._preferences.pop(user_id, None) is not None
