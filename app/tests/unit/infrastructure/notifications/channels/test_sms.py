"""Unit tests for SMSChannel, HttpSmsGateway and format_sms."""

from decimal import Decimal

import pytest
import requests

from infrastructure.configuration import SmsSettings
from infrastructure.notifications.channels.sms import (
    SMS_CHARACTER_BUDGET,
    HttpSmsGateway,
    SMSChannel,
    format_sms,
)
from infrastructure.notifications.models import (
    Category,
    ChannelId,
    DeliveryErrorKind,
    Severity,
)
from infrastructure.notifications.preferences import SmsPreference
from infrastructure.operations import OperationResult, OperationStatus


@pytest.mark.unit
class TestFormatSms:
    """Tests for the short text layout."""

    def test_short_message_is_unchanged(self, notification_factory):
        notification = notification_factory(
            severity=Severity.CRITICAL, title="Low stock", body="SKU-1 has 2 units"
        )

        assert format_sms(notification) == "🚨 ALERT: Low stock - SKU-1 has 2 units"

    def test_long_body_is_truncated_with_ellipsis(self, notification_factory):
        notification = notification_factory(
            severity=Severity.CRITICAL, title="Low stock", body="x" * 500
        )

        message = format_sms(notification)

        assert len(message) == SMS_CHARACTER_BUDGET
        assert message.startswith("🚨 ALERT: Low stock - xxx")
        assert message.endswith("...")

    def test_long_title_drops_body(self, notification_factory):
        notification = notification_factory(title="t" * 300, body="never shown")

        message = format_sms(notification)

        assert len(message) == SMS_CHARACTER_BUDGET
        assert message.endswith("...")
        assert "never shown" not in message

    def test_title_filling_budget_exactly_is_kept_whole(self, notification_factory):
        # "🚨 ALERT: " is 10 characters
        title = "x" * (SMS_CHARACTER_BUDGET - 10)
        notification = notification_factory(severity=Severity.CRITICAL, title=title)

        assert format_sms(notification) == f"🚨 ALERT: {title}"

    @pytest.mark.parametrize(
        "room,expected_suffix",
        [(3, " - ..."), (2, " ..."), (1, " ..."), (0, "...")],
    )
    def test_dropped_body_is_marked_when_room_allows(
        self, notification_factory, room, expected_suffix
    ):
        title = "x" * (SMS_CHARACTER_BUDGET - 10 - len(" - ") - room)
        notification = notification_factory(
            severity=Severity.CRITICAL, title=title, body="body that cannot fit"
        )

        message = format_sms(notification)

        assert message == f"🚨 ALERT: {title}{expected_suffix}"
        assert len(message) <= SMS_CHARACTER_BUDGET

    @pytest.mark.parametrize(
        "category,label",
        [
            (Category.ALERT, "ALERT"),
            (Category.REPORT, "REPORT"),
            (Category.SYSTEM, "SYSTEM"),
            (Category.MARKETING, "INFO"),
        ],
    )
    def test_category_labels(self, notification_factory, category, label):
        notification = notification_factory(category=category, severity=Severity.LOW)

        assert format_sms(notification).startswith(f"ℹ️ {label}: ")


@pytest.mark.unit
class TestSMSChannelSend:
    """Tests for SMSChannel.send."""

    @pytest.fixture
    def sms_channel(self, sms_gateway, rate_limiter_factory):
        return SMSChannel(gateway=sms_gateway, rate_limiter=rate_limiter_factory())

    def test_channel_name(self, sms_channel):
        """Channel name returns 'sms'."""
        assert sms_channel.channel_name == "sms"
        assert sms_channel.channel_id == ChannelId.SMS

    def test_send_success(
        self, sms_channel, sms_gateway, notification_factory, preferences_factory
    ):
        """Successfully sends an SMS and reports its cost."""
        notification = notification_factory()

        result = sms_channel.send(notification, preferences_factory(sms=True))

        assert result.success is True
        assert result.channel == ChannelId.SMS
        assert result.provider_message_id == "SM123"
        assert result.details == {"cost": "0.0075"}
        sms_gateway.send.assert_called_once_with("+15555551234", format_sms(notification))
        assert sms_channel.usage("user-1").hourly_sent == 1

    def test_unverified_number_is_rejected(
        self, sms_channel, sms_gateway, notification_factory, preferences_factory
    ):
        preferences = preferences_factory(
            sms=SmsPreference(phone_number="+15555551234", verified=False)
        )

        result = sms_channel.send(notification_factory(), preferences)

        assert result.success is False
        assert result.error_kind == DeliveryErrorKind.POLICY_REJECTION
        assert result.error_code == "UNVERIFIED"
        sms_gateway.send.assert_not_called()

    def test_disabled_channel_is_rejected(
        self, sms_channel, notification_factory, preferences_factory
    ):
        result = sms_channel.send(notification_factory(), preferences_factory(sms=False))

        assert result.error_code == "CHANNEL_DISABLED"

    def test_severity_filter_is_enforced(
        self, sms_channel, notification_factory, preferences_factory
    ):
        preferences = preferences_factory(
            sms=SmsPreference(
                phone_number="+15555551234",
                verified=True,
                severities={Severity.CRITICAL},
            )
        )

        result = sms_channel.send(notification_factory(severity=Severity.HIGH), preferences)

        assert result.error_code == "SEVERITY_NOT_ACCEPTED"

    def test_missing_phone_number(
        self, sms_channel, notification_factory, preferences_factory
    ):
        preferences = preferences_factory(sms=SmsPreference(verified=True))

        result = sms_channel.send(notification_factory(), preferences)

        assert result.is_policy_rejection
        assert result.error_code == "MISSING_PHONE_NUMBER"

    def test_hourly_limit_is_policy_rejection(
        self,
        sms_gateway,
        rate_limiter_factory,
        notification_factory,
        preferences_factory,
    ):
        channel = SMSChannel(
            gateway=sms_gateway, rate_limiter=rate_limiter_factory(max_hourly_count=1)
        )
        preferences = preferences_factory(sms=True)

        first = channel.send(notification_factory(), preferences)
        second = channel.send(notification_factory(), preferences)

        assert first.success is True
        assert second.is_policy_rejection
        assert second.error_code == "HOURLY_LIMIT_EXCEEDED"
        assert second.error.startswith("Hourly SMS limit exceeded. Resets in")
        assert sms_gateway.send.call_count == 1

    def test_daily_cost_limit_is_policy_rejection(
        self,
        sms_gateway,
        rate_limiter_factory,
        notification_factory,
        preferences_factory,
    ):
        channel = SMSChannel(
            gateway=sms_gateway,
            rate_limiter=rate_limiter_factory(
                max_daily_cost=Decimal("0.01"), cost_per_message=Decimal("0.0075")
            ),
        )
        preferences = preferences_factory(sms=True)

        channel.send(notification_factory(), preferences)
        result = channel.send(notification_factory(), preferences)

        assert result.error_code == "DAILY_COST_LIMIT_EXCEEDED"

    def test_gateway_failure_releases_reservation(
        self, sms_channel, sms_gateway, notification_factory, preferences_factory
    ):
        """A failed submission does not count against the user's limits."""
        sms_gateway.send.return_value = OperationResult.transient_error(
            "SMS gateway server error (503)", error_code="HTTP_503"
        )

        result = sms_channel.send(notification_factory(), preferences_factory(sms=True))

        assert result.success is False
        assert result.error_kind == DeliveryErrorKind.TRANSPORT_ERROR
        assert result.error_code == "HTTP_503"
        usage = sms_channel.usage("user-1")
        assert usage.hourly_sent == 0
        assert usage.daily_cost == Decimal("0")

    def test_resolve_recipient(self, sms_channel, preferences_factory):
        result = sms_channel.resolve_recipient(preferences_factory(sms=True))

        assert result.is_success
        assert result.data == {"phone_number": "+15555551234"}


@pytest.mark.unit
class TestVerifyPhoneNumber:
    """Tests for phone number verification."""

    @pytest.fixture
    def sms_channel(self, sms_gateway, rate_limiter_factory):
        return SMSChannel(gateway=sms_gateway, rate_limiter=rate_limiter_factory())

    def test_invalid_number(self, sms_channel, sms_gateway):
        result = sms_channel.verify_phone_number("5555551234")

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "INVALID_PHONE_NUMBER"
        sms_gateway.start_verification.assert_not_called()

    def test_sends_code(self, sms_channel, sms_gateway):
        result = sms_channel.verify_phone_number("+15555551234")

        assert result.is_success
        assert result.message == "Verification code sent successfully"
        sms_gateway.start_verification.assert_called_once_with("+15555551234")

    @pytest.mark.parametrize("code", ["12345", "1234567", "12ab56", ""])
    def test_rejects_malformed_code(self, sms_channel, sms_gateway, code):
        result = sms_channel.verify_phone_number("+15555551234", code)

        assert result.error_code == "INVALID_CODE"
        sms_gateway.check_verification.assert_not_called()

    def test_checks_code(self, sms_channel, sms_gateway):
        result = sms_channel.verify_phone_number("+15555551234", "123456")

        assert result.message == "Phone number verified successfully"
        sms_gateway.check_verification.assert_called_once_with("+15555551234", "123456")

    def test_gateway_rejection_is_returned(self, sms_channel, sms_gateway):
        sms_gateway.check_verification.return_value = OperationResult.permanent_error(
            "SMS gateway client error (400)", error_code="HTTP_400"
        )

        result = sms_channel.verify_phone_number("+15555551234", "123456")

        assert result.error_code == "HTTP_400"


@pytest.mark.unit
class TestHttpSmsGateway:
    """Tests for the HTTP SMS gateway client."""

    @pytest.fixture
    def gateway(self, mock_session):
        return HttpSmsGateway(
            url="https://sms.example.com/v1/",
            api_key="key-123",
            from_number="+15550000000",
            session=mock_session,
        )

    def test_send_posts_message(self, gateway, mock_session):
        result = gateway.send("+15555551234", "hello")

        assert result.is_success
        assert result.data == {"message_id": "msg-123"}
        mock_session.post.assert_called_once_with(
            "https://sms.example.com/v1/messages",
            json={"to": "+15555551234", "from": "+15550000000", "body": "hello"},
            headers={"Authorization": "Bearer key-123"},
            timeout=10.0,
        )

    def test_send_server_error_is_transient(
        self, gateway, mock_session, mock_response_factory
    ):
        mock_session.post.return_value = mock_response_factory(503)

        result = gateway.send("+15555551234", "hello")

        assert result.is_transient
        assert result.error_code == "HTTP_503"

    def test_send_connection_error(self, gateway, mock_session):
        mock_session.post.side_effect = requests.ConnectionError("refused")

        result = gateway.send("+15555551234", "hello")

        assert result.is_transient
        assert result.error_code == "CONNECTION_ERROR"

    def test_is_configured_requires_key_and_sender(self, mock_session):
        gateway = HttpSmsGateway(
            url="https://sms.example.com", api_key=None, from_number="+15550000000"
        )

        assert gateway.is_configured is False

    def test_from_settings(self):
        settings = SmsSettings(
            SMS_GATEWAY_URL="https://sms.example.com",
            SMS_API_KEY="key",
            SMS_FROM_NUMBER="+15550000000",
        )

        channel = SMSChannel.from_settings(settings)

        assert channel.is_configured is True
        assert channel.rate_limiter.max_hourly_count == 10
        assert channel.rate_limiter.cost_per_message == Decimal("0.0075")
