"""Unit tests for PushChannel, HttpPushGateway and the push payload."""

import json

import pytest

from infrastructure.notifications.channels.push import (
    HttpPushGateway,
    PushChannel,
    PushSubscriptionRegistry,
    build_push_payload,
)
from infrastructure.notifications.models import Category, ChannelId, Severity
from infrastructure.notifications.preferences import PushPreference, PushSubscription
from infrastructure.operations import OperationResult


@pytest.fixture
def subscription():
    return PushSubscription(
        endpoint="https://push.example.com/sub/registry",
        p256dh="p256dh-key",
        auth="auth-secret",
    )


@pytest.mark.unit
class TestBuildPushPayload:
    """Tests for the service worker payload."""

    def test_critical_alert(self, notification_factory):
        notification = notification_factory(severity=Severity.CRITICAL)

        payload = build_push_payload(notification, "https://app.example.com/")

        assert payload["title"] == notification.title
        assert payload["tag"] == notification.id
        assert payload["data"]["url"] == "https://app.example.com/alerts"
        assert payload["requireInteraction"] is True
        assert payload["vibrate"] == [200, 100, 200, 100, 200]
        assert [a["action"] for a in payload["actions"]] == [
            "view",
            "acknowledge",
            "dismiss",
        ]

    def test_low_report(self, notification_factory):
        notification = notification_factory(category=Category.REPORT, severity=Severity.LOW)

        payload = build_push_payload(notification, "https://app.example.com")

        assert payload["data"]["url"] == "https://app.example.com/reports"
        assert payload["requireInteraction"] is False
        assert payload["vibrate"] == []
        assert [a["action"] for a in payload["actions"]] == ["view", "dismiss"]

    def test_marketing_links_to_app_root(self, notification_factory):
        notification = notification_factory(category=Category.MARKETING)

        payload = build_push_payload(notification, "https://app.example.com")

        assert payload["data"]["url"] == "https://app.example.com"


@pytest.mark.unit
class TestPushSubscriptionRegistry:
    def test_subscribe_and_unsubscribe(self, subscription):
        registry = PushSubscriptionRegistry()

        registry.subscribe("user-1", subscription)

        assert registry.is_subscribed("user-1")
        assert registry.get("user-1") == subscription
        assert registry.unsubscribe("user-1") is True
        assert registry.unsubscribe("user-1") is False
        assert registry.get("user-1") is None


@pytest.mark.unit
class TestPushChannel:
    """Tests for PushChannel.send."""

    @pytest.fixture
    def push_channel(self, push_gateway):
        return PushChannel(gateway=push_gateway, app_url="https://app.example.com")

    def test_channel_identity(self, push_channel):
        assert push_channel.channel_id == ChannelId.PUSH
        assert push_channel.is_configured is True

    def test_send_uses_preference_subscription(
        self, push_channel, push_gateway, notification_factory, preferences_factory
    ):
        notification = notification_factory()
        preferences = preferences_factory(push=True)

        result = push_channel.send(notification, preferences)

        assert result.success is True
        assert result.provider_message_id == f"push_{notification.id}"
        sent_subscription, payload = push_gateway.send.call_args.args
        assert sent_subscription == preferences.push.subscription
        assert payload["tag"] == notification.id

    def test_falls_back_to_registry(
        self,
        push_channel,
        push_gateway,
        subscription,
        notification_factory,
        preferences_factory,
    ):
        push_channel.subscribe("user-1", subscription)
        preferences = preferences_factory(push=PushPreference())

        result = push_channel.send(notification_factory(), preferences)

        assert result.success is True
        assert push_gateway.send.call_args.args[0] == subscription

    def test_not_subscribed_is_policy_rejection(
        self, push_channel, push_gateway, notification_factory, preferences_factory
    ):
        result = push_channel.send(
            notification_factory(), preferences_factory(push=PushPreference())
        )

        assert result.is_policy_rejection
        assert result.error_code == "NOT_SUBSCRIBED"
        push_gateway.send.assert_not_called()

    @pytest.mark.parametrize("error_code", ["HTTP_404", "HTTP_410"])
    def test_gone_subscription_is_removed(
        self,
        push_channel,
        push_gateway,
        subscription,
        notification_factory,
        preferences_factory,
        error_code,
    ):
        """A revoked subscription is dropped from the registry."""
        push_channel.subscribe("user-1", subscription)
        push_gateway.send.return_value = OperationResult.permanent_error(
            "push relay client error", error_code=error_code
        )

        result = push_channel.send(
            notification_factory(), preferences_factory(push=PushPreference())
        )

        assert result.success is False
        assert result.error_code == error_code
        assert push_channel.is_subscribed("user-1") is False

    def test_server_error_keeps_subscription(
        self,
        push_channel,
        push_gateway,
        subscription,
        notification_factory,
        preferences_factory,
    ):
        push_channel.subscribe("user-1", subscription)
        push_gateway.send.return_value = OperationResult.transient_error(
            "push relay server error (503)", error_code="HTTP_503"
        )

        result = push_channel.send(
            notification_factory(), preferences_factory(push=PushPreference())
        )

        assert result.error_code == "HTTP_503"
        assert push_channel.is_subscribed("user-1") is True


@pytest.mark.unit
class TestHttpPushGateway:
    def test_send_posts_to_relay(self, mock_session, subscription):
        gateway = HttpPushGateway(
            relay_url="https://relay.example.com/",
            api_key="relay-key",
            vapid_subject="mailto:ops@example.com",
            session=mock_session,
        )

        result = gateway.send(subscription, {"title": "hello"})

        assert result.is_success
        args, kwargs = mock_session.post.call_args
        assert args == ("https://relay.example.com/push",)
        assert kwargs["headers"] == {"Authorization": "Bearer relay-key"}
        body = kwargs["json"]
        assert body["subscription"]["endpoint"] == subscription.endpoint
        assert body["subscription"]["keys"] == {
            "p256dh": "p256dh-key",
            "auth": "auth-secret",
        }
        assert json.loads(body["payload"]) == {"title": "hello"}
        assert body["vapid_subject"] == "mailto:ops@example.com"

    def test_unconfigured_without_api_key(self):
        gateway = HttpPushGateway(
            relay_url="https://relay.example.com",
            api_key=None,
            vapid_subject="mailto:ops@example.com",
        )

        assert gateway.is_configured is False
