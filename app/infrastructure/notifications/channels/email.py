"""Email channel implementation using an SMTP relay."""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import TYPE_CHECKING, Optional, Protocol

import structlog

from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.channels.email_templates import render_email
from infrastructure.notifications.models import (
    ChannelId,
    DeliveryResult,
    Notification,
)
from infrastructure.notifications.preferences import (
    DeliveryPreferences,
    EmailPreference,
)
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from infrastructure.configuration import MailSettings

logger = structlog.get_logger()


class MailTransport(Protocol):
    """Submits a fully built message to a mail relay."""

    @property
    def is_configured(self) -> bool: ...

    def send(self, message: MIMEMultipart, recipient: str) -> OperationResult: ...


class SmtpMailTransport:
    """MailTransport backed by smtplib.

    Opens one connection per message. Relays queue durably on their side,
    so there is no retry here.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        use_tls: bool = True,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self._host = host
        self._port = port
        self._use_tls = use_tls
        self._username = username
        self._password = password
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: "MailSettings") -> "SmtpMailTransport":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            use_tls=settings.SMTP_USE_TLS,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._host)

    def send(self, message: MIMEMultipart, recipient: str) -> OperationResult:
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                if self._use_tls:
                    smtp.starttls()
                if self._username and self._password:
                    smtp.login(self._username, self._password)
                smtp.send_message(message, to_addrs=[recipient])
        except smtplib.SMTPRecipientsRefused as e:
            return OperationResult.permanent_error(
                f"Relay refused recipient: {e}", error_code="RECIPIENT_REFUSED"
            )
        except smtplib.SMTPAuthenticationError as e:
            return OperationResult.permanent_error(
                f"Relay authentication failed: {e}", error_code="SMTP_AUTH_FAILED"
            )
        except smtplib.SMTPException as e:
            return OperationResult.transient_error(
                f"SMTP error: {e}", error_code="SMTP_ERROR"
            )
        except OSError as e:
            return OperationResult.transient_error(
                f"Relay connection failed: {e}", error_code="CONNECTION_ERROR"
            )
        return OperationResult.success(
            data={"message_id": message["Message-ID"]}, message="Message accepted"
        )


class EmailChannel(NotificationChannel):
    """Email notification channel.

    Renders a category template and submits it once through the transport.
    """

    def __init__(
        self,
        transport: MailTransport,
        from_address: str,
        from_name: str = "Notifications",
        dashboard_url: str = "http://localhost:3000",
    ):
        self._transport = transport
        self._from_address = from_address
        self._from_name = from_name
        self._dashboard_url = dashboard_url
        logger.info("initialized_email_channel", configured=self.is_configured)

    @classmethod
    def from_settings(cls, settings: "MailSettings") -> "EmailChannel":
        return cls(
            transport=SmtpMailTransport.from_settings(settings),
            from_address=settings.MAIL_FROM_ADDRESS,
            from_name=settings.MAIL_FROM_NAME,
            dashboard_url=settings.MAIL_DASHBOARD_URL,
        )

    @property
    def channel_id(self) -> ChannelId:
        return ChannelId.EMAIL

    @property
    def is_configured(self) -> bool:
        return self._transport.is_configured and bool(self._from_address)

    def resolve_recipient(self, preferences: DeliveryPreferences) -> OperationResult:
        preference: Optional[EmailPreference] = preferences.email
        if preference is None or not preference.address:
            return OperationResult.permanent_error(
                "No e-mail address on file", error_code="MISSING_ADDRESS"
            )
        return OperationResult.success(data={"address": str(preference.address)})

    def build_message(self, notification: Notification, recipient: str) -> MIMEMultipart:
        rendered = render_email(notification, self._dashboard_url)
        message = MIMEMultipart("alternative")
        message["Subject"] = rendered.subject
        message["From"] = formataddr((self._from_name, self._from_address))
        message["To"] = recipient
        message["Message-ID"] = make_msgid(domain=self._from_address.split("@")[-1])
        message.attach(MIMEText(rendered.text, "plain", "utf-8"))
        message.attach(MIMEText(rendered.html, "html", "utf-8"))
        return message

    def send(
        self, notification: Notification, preferences: DeliveryPreferences
    ) -> DeliveryResult:
        rejection = self.check_preference(notification, preferences)
        if rejection:
            return rejection

        resolved = self.resolve_recipient(preferences)
        if not resolved.is_success:
            return self.reject(resolved.error_code or "MISSING_ADDRESS", resolved.message)

        recipient = resolved.data["address"]
        message = self.build_message(notification, recipient)
        result = self._transport.send(message, recipient)

        if not result.is_success:
            logger.warning(
                "email_send_failed",
                notification_id=notification.id,
                error_code=result.error_code,
                error=result.message,
            )
            return self.transport_failure(result)

        logger.info(
            "email_sent",
            notification_id=notification.id,
            recipient=recipient,
            subject=message["Subject"],
        )
        return DeliveryResult.sent(
            self.channel_id,
            provider_message_id=(result.data or {}).get("message_id"),
        )
