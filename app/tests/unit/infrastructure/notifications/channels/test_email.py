"""Unit tests for EmailChannel and SmtpMailTransport."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from infrastructure.configuration import MailSettings
from infrastructure.notifications.channels.email import EmailChannel, SmtpMailTransport
from infrastructure.notifications.models import Category, ChannelId, DeliveryErrorKind
from infrastructure.notifications.preferences import EmailPreference
from infrastructure.operations import OperationResult, OperationStatus


@pytest.mark.unit
class TestEmailChannel:
    """Tests for EmailChannel implementation."""

    @pytest.fixture
    def email_channel(self, mail_transport):
        return EmailChannel(
            transport=mail_transport,
            from_address="alerts@example.com",
            from_name="Inventory Alerts",
            dashboard_url="https://app.example.com",
        )

    def test_channel_name(self, email_channel):
        """Channel name returns 'email'."""
        assert email_channel.channel_name == "email"
        assert email_channel.channel_id == ChannelId.EMAIL

    def test_is_configured_requires_sender(self, mail_transport):
        channel = EmailChannel(transport=mail_transport, from_address="")

        assert channel.is_configured is False

    def test_build_message_headers(self, email_channel, notification_factory):
        notification = notification_factory(title="Low stock")

        message = email_channel.build_message(notification, "user@example.com")

        assert message["Subject"] == "⚠️ [HIGH] Low stock"
        assert message["From"] == "Inventory Alerts <alerts@example.com>"
        assert message["To"] == "user@example.com"
        assert message["Message-ID"].endswith("@example.com>")
        parts = message.get_payload()
        assert [p.get_content_type() for p in parts] == ["text/plain", "text/html"]

    def test_send_success(
        self, email_channel, mail_transport, notification_factory, preferences_factory
    ):
        """Successfully sends email through the transport."""
        result = email_channel.send(notification_factory(), preferences_factory())

        assert result.success is True
        assert result.provider_message_id == "<abc@example.com>"
        message, recipient = mail_transport.send.call_args.args
        assert recipient == "user@example.com"
        assert message["To"] == "user@example.com"

    def test_missing_address_is_policy_rejection(
        self, email_channel, mail_transport, notification_factory, preferences_factory
    ):
        result = email_channel.send(
            notification_factory(), preferences_factory(email=EmailPreference())
        )

        assert result.is_policy_rejection
        assert result.error_code == "MISSING_ADDRESS"
        mail_transport.send.assert_not_called()

    def test_category_filter(
        self, email_channel, notification_factory, preferences_factory
    ):
        preferences = preferences_factory(categories={Category.REPORT})

        result = email_channel.send(notification_factory(), preferences)

        assert result.error_code == "CATEGORY_NOT_ACCEPTED"

    def test_transport_failure(
        self, email_channel, mail_transport, notification_factory, preferences_factory
    ):
        mail_transport.send.return_value = OperationResult.transient_error(
            "Relay connection failed", error_code="CONNECTION_ERROR"
        )

        result = email_channel.send(notification_factory(), preferences_factory())

        assert result.success is False
        assert result.error_kind == DeliveryErrorKind.TRANSPORT_ERROR
        assert result.error_code == "CONNECTION_ERROR"
        assert result.error == "Relay connection failed"

    def test_health_check_unconfigured(self, mail_transport):
        mail_transport.is_configured = False
        channel = EmailChannel(transport=mail_transport, from_address="a@example.com")

        result = channel.health_check()

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "NOT_CONFIGURED"


@pytest.mark.unit
class TestSmtpMailTransport:
    """Tests for the smtplib-backed transport."""

    @pytest.fixture
    def message(self, notification_factory, mail_transport):
        channel = EmailChannel(transport=mail_transport, from_address="alerts@example.com")
        return channel.build_message(notification_factory(), "user@example.com")

    @pytest.fixture
    def smtp(self):
        with patch("infrastructure.notifications.channels.email.smtplib.SMTP") as smtp_cls:
            connection = MagicMock()
            smtp_cls.return_value.__enter__.return_value = connection
            yield smtp_cls, connection

    def test_send_with_tls_and_login(self, smtp, message):
        smtp_cls, connection = smtp
        transport = SmtpMailTransport(
            host="smtp.example.com", port=587, username="user", password="pass"
        )

        result = transport.send(message, "user@example.com")

        assert result.is_success
        assert result.data == {"message_id": message["Message-ID"]}
        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
        connection.starttls.assert_called_once()
        connection.login.assert_called_once_with("user", "pass")
        connection.send_message.assert_called_once_with(
            message, to_addrs=["user@example.com"]
        )

    def test_send_without_credentials_skips_login(self, smtp, message):
        _, connection = smtp
        transport = SmtpMailTransport(host="localhost", port=25, use_tls=False)

        transport.send(message, "user@example.com")

        connection.starttls.assert_not_called()
        connection.login.assert_not_called()

    @pytest.mark.parametrize(
        "exc,status,error_code",
        [
            (
                smtplib.SMTPRecipientsRefused({"user@example.com": (550, b"no")}),
                OperationStatus.PERMANENT_ERROR,
                "RECIPIENT_REFUSED",
            ),
            (
                smtplib.SMTPAuthenticationError(535, b"bad"),
                OperationStatus.PERMANENT_ERROR,
                "SMTP_AUTH_FAILED",
            ),
            (
                smtplib.SMTPServerDisconnected("gone"),
                OperationStatus.TRANSIENT_ERROR,
                "SMTP_ERROR",
            ),
            (
                ConnectionRefusedError("refused"),
                OperationStatus.TRANSIENT_ERROR,
                "CONNECTION_ERROR",
            ),
        ],
    )
    def test_send_errors(self, smtp, message, exc, status, error_code):
        _, connection = smtp
        connection.send_message.side_effect = exc
        transport = SmtpMailTransport(host="smtp.example.com")

        result = transport.send(message, "user@example.com")

        assert result.status == status
        assert result.error_code == error_code

    def test_from_settings(self):
        settings = MailSettings(
            SMTP_HOST="smtp.example.com", MAIL_FROM_ADDRESS="alerts@example.com"
        )

        channel = EmailChannel.from_settings(settings)

        assert channel.is_configured is True

    def test_unconfigured_without_host(self):
        assert SmtpMailTransport(host="").is_configured is False
