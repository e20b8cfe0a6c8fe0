"""Test fixtures for notification infrastructure tests."""

import time
from concurrent.futures import Future
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Union
from unittest.mock import MagicMock

import pytest

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.dispatcher import NotificationDispatcher
from infrastructure.notifications.models import (
    Category,
    ChannelId,
    DeliveryResult,
    Notification,
    Severity,
)
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    EmailPreference,
    PushPreference,
    PushSubscription,
    SmsPreference,
    WebhookKind,
    WebhookPreference,
    WebhookTarget,
)
from infrastructure.operations import OperationResult

Outcome = Union[str, DeliveryResult, Exception]


class FakeChannel(NotificationChannel):
    """Scriptable provider.

    `outcomes` is consumed one per send; the last outcome repeats.
    "ok" sends, "fail" is an HTTP_503 transport error, "reject" is an
    HOURLY_LIMIT_EXCEEDED policy rejection, an Exception is raised.
    """

    def __init__(
        self,
        channel_id: ChannelId,
        outcomes: Sequence[Outcome] = ("ok",),
        configured: bool = True,
        delay: float = 0.0,
    ):
        self._channel_id = channel_id
        self._outcomes = list(outcomes)
        self._configured = configured
        self._delay = delay
        self.calls: List[str] = []

    @property
    def channel_id(self) -> ChannelId:
        return self._channel_id

    @property
    def is_configured(self) -> bool:
        return self._configured

    def resolve_recipient(self, preferences: DeliveryPreferences) -> OperationResult:
        return OperationResult.success(data={"user_id": preferences.user_id})

    def send(self, notification: Notification, preferences: DeliveryPreferences):
        self.calls.append(notification.id)
        if self._delay:
            time.sleep(self._delay)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, DeliveryResult):
            return outcome
        if outcome == "ok":
            return DeliveryResult.sent(
                self.channel_id, provider_message_id=f"{self.channel_name}_{notification.id}"
            )
        if outcome == "reject":
            return self.reject("HOURLY_LIMIT_EXCEEDED", "Hourly SMS limit exceeded")
        if outcome == "fail":
            return DeliveryResult.transport_error(
                self.channel_id, "HTTP_503", "server error (503)"
            )
        return outcome


class InlineExecutor:
    """Executor running submitted work immediately on the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True) -> None:
        pass


@pytest.fixture
def notification_factory():
    """Factory for creating Notification instances.

    Example:
        notification = notification_factory(severity=Severity.CRITICAL)
        expiring = notification_factory(expires_at=clock.now + timedelta(seconds=5))
    """

    def _factory(
        category: Category = Category.ALERT,
        severity: Severity = Severity.HIGH,
        title: str = "Stock below threshold",
        body: str = "SKU-123 has 2 units left",
        recipient_user_id: Optional[str] = "user-1",
        attributes: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
        expires_at: Optional[datetime] = None,
        **kwargs,
    ) -> Notification:
        fields = dict(
            category=category,
            severity=severity,
            title=title,
            body=body,
            recipient_user_id=recipient_user_id,
            attributes=attributes or {},
            expires_at=expires_at,
            **kwargs,
        )
        if created_at is not None:
            fields["created_at"] = created_at
        return Notification(**fields)

    return _factory


@pytest.fixture
def webhook_target_factory():
    """Factory for creating WebhookTarget instances."""

    def _factory(
        name: str = "ops-slack",
        kind: WebhookKind = WebhookKind.SLACK,
        url: str = "https://hooks.example.com/services/T000/B000",
        enabled: bool = True,
        **kwargs,
    ) -> WebhookTarget:
        return WebhookTarget(name=name, kind=kind, url=url, enabled=enabled, **kwargs)

    return _factory


@pytest.fixture
def preferences_factory(webhook_target_factory):
    """Factory for creating DeliveryPreferences.

    Channels are switched on by flag with permissive filters; pass explicit
    preference objects to override.

    Example:
        preferences = preferences_factory(email=True, webhook=True)
        sms_only = preferences_factory(email=False, sms=True)
    """

    def _factory(
        user_id: str = "user-1",
        email: Union[bool, EmailPreference] = True,
        sms: Union[bool, SmsPreference] = False,
        webhook: Union[bool, WebhookPreference] = False,
        push: Union[bool, PushPreference] = False,
        categories: Optional[Set[Category]] = None,
        severities: Optional[Set[Severity]] = None,
    ) -> DeliveryPreferences:
        filters: Dict[str, Any] = {}
        if categories is not None:
            filters["categories"] = categories
        if severities is not None:
            filters["severities"] = severities

        if email is True:
            email = EmailPreference(address="user@example.com", **filters)
        if sms is True:
            sms = SmsPreference(phone_number="+15555551234", verified=True, **filters)
        if webhook is True:
            webhook = WebhookPreference(targets=[webhook_target_factory()], **filters)
        if push is True:
            push = PushPreference(
                subscription=PushSubscription(
                    endpoint="https://push.example.com/sub/abc",
                    p256dh="BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM",
                    auth="tBHItJI5svbpez7KI4CCXg",
                ),
                **filters,
            )

        return DeliveryPreferences(
            user_id=user_id,
            email=email or None,
            sms=sms or None,
            webhook=webhook or None,
            push=push or None,
        )

    return _factory


@pytest.fixture
def fake_channel_factory():
    """Factory for FakeChannel providers.

    Example:
        flaky_email = fake_channel_factory(ChannelId.EMAIL, ["fail", "fail", "ok"])
    """

    def _factory(
        channel_id: ChannelId = ChannelId.EMAIL,
        outcomes: Sequence[Outcome] = ("ok",),
        configured: bool = True,
        delay: float = 0.0,
    ) -> FakeChannel:
        return FakeChannel(channel_id, outcomes, configured=configured, delay=delay)

    return _factory


@pytest.fixture
def inline_executor():
    return InlineExecutor()


@pytest.fixture
def mock_response_factory():
    """Factory for requests.Response stand-ins."""

    def _factory(
        status_code: int = 200,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        text: str = "",
    ) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        response.text = text
        if json_body is None:
            response.json.side_effect = ValueError("No JSON")
        else:
            response.json.return_value = json_body
        return response

    return _factory


@pytest.fixture
def mock_session(mock_response_factory):
    """requests.Session stand-in whose post() returns 200 by default."""
    session = MagicMock()
    session.post.return_value = mock_response_factory(200, {"id": "msg-123"})
    return session


@pytest.fixture
def dispatcher_factory(fake_clock):
    """Factory for dispatchers sharing the test clock."""
    created: List[NotificationDispatcher] = []

    def _factory(
        channels=None, timeout: float = 5.0, max_workers: int = 4
    ) -> NotificationDispatcher:
        dispatcher = NotificationDispatcher(
            channels=channels or [],
            provider_timeout_seconds=timeout,
            max_provider_workers=max_workers,
            clock=fake_clock,
        )
        created.append(dispatcher)
        return dispatcher

    yield _factory

    for dispatcher in created:
        dispatcher.shutdown()

