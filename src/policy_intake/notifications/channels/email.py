"""
Email notification channel.

Sends the upload email over SMTP with the stored artifact attached.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid

from pydantic import BaseModel

from policy_intake.config import Settings
from policy_intake.notifications.channels.base import BaseChannel
from policy_intake.notifications.models import (
    DeliveryResult,
    NotificationChannelType,
    UploadNotification,
)
from policy_intake.notifications.templates import (
    UPLOAD_EMAIL,
    UPLOAD_EMAIL_TEXT,
    upload_email_variables,
)

logger = logging.getLogger(__name__)


class EmailChannelConfig(BaseModel):
    """Configuration for email channel."""

    enabled: bool = True
    timeout_seconds: float = 30

    # SMTP settings
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_encryption: str = "tls"  # "tls", "ssl" or "none"
    smtp_username: str | None = None
    smtp_password: str | None = None

    # Email settings
    from_address: str | None = None
    from_name: str = "LEXSHIP"

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailChannelConfig":
        """Build the channel configuration from service settings."""
        mail = settings.mail
        return cls(
            timeout_seconds=settings.notify_timeout_seconds,
            smtp_host=mail.host,
            smtp_port=mail.port,
            smtp_encryption=mail.encryption,
            smtp_username=mail.username,
            smtp_password=mail.password,
            from_address=mail.from_address or mail.username,
            from_name=mail.from_name,
        )


class EmailChannel(BaseChannel):
    """
    Notification delivery via email.

    Features:
    - SMTP delivery with STARTTLS or implicit SSL
    - Authentication
    - HTML body with a plain-text alternative
    - The uploaded file as a single attachment

    A connection is opened per message so concurrent uploads never share
    an SMTP session.
    """

    channel_type = NotificationChannelType.EMAIL.value

    def __init__(self, config: EmailChannelConfig):
        """
        Initialize email channel.

        Args:
            config: Email channel configuration
        """
        self.email_config: EmailChannelConfig = config

    def validate_config(self) -> bool:
        """Validate email configuration."""
        config = self.email_config
        if not config.enabled:
            return False
        if not config.smtp_host or not config.smtp_username or not config.smtp_password:
            return False
        if not config.from_address or "@" not in config.from_address:
            return False
        return True

    def _connect(self) -> smtplib.SMTP:
        """Open an authenticated SMTP connection."""
        config = self.email_config
        if config.smtp_encryption == "ssl":
            connection: smtplib.SMTP = smtplib.SMTP_SSL(
                config.smtp_host, config.smtp_port, timeout=config.timeout_seconds
            )
        else:
            connection = smtplib.SMTP(
                config.smtp_host, config.smtp_port, timeout=config.timeout_seconds
            )
            if config.smtp_encryption == "tls":
                connection.starttls()

        if config.smtp_username and config.smtp_password:
            connection.login(config.smtp_username, config.smtp_password)
        return connection

    def _prepare_message(self, notification: UploadNotification) -> EmailMessage:
        """
        Prepare email message from notification.

        If the artifact is missing on disk the message is built without
        an attachment.
        """
        config = self.email_config
        msg = EmailMessage()

        msg["To"] = ", ".join(notification.recipients)
        msg["From"] = formataddr((config.from_name, config.from_address))
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        msg["X-Notification-ID"] = notification.notification_id
        msg["X-Policy-ID"] = notification.policy_id

        attachment: bytes | None = None
        try:
            attachment = notification.file_path.read_bytes()
        except FileNotFoundError:
            logger.warning(
                f"File not found at {notification.file_path}, sending email without attachment",
                extra={"event": "attachment_missing", "policy_id": notification.policy_id},
            )

        variables = upload_email_variables(notification, attached=attachment is not None)
        subject, html_body = UPLOAD_EMAIL.render(variables)
        _, text_body = UPLOAD_EMAIL_TEXT.render(variables)

        msg["Subject"] = subject
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")

        if attachment is not None:
            mime_type = notification.mime_type or "application/octet-stream"
            maintype, _, subtype = mime_type.partition("/")
            msg.add_attachment(
                attachment,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=notification.file_name,
            )

        return msg

    def deliver(self, notification: UploadNotification) -> DeliveryResult:
        """
        Deliver notification via email.

        Args:
            notification: Notification to deliver

        Returns:
            DeliveryResult with delivery status
        """
        if not self.validate_config():
            error = "Mail transport not configured (MAIL_HOST, MAIL_USERNAME, MAIL_PASSWORD)"
            self._log_delivery(notification, False, error, level=logging.WARNING)
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                notification_id=notification.notification_id,
                error_message=error,
            )

        recipients = [addr for addr in notification.recipients if "@" in addr]
        if not recipients:
            error = "No valid recipients"
            self._log_delivery(notification, False, error)
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                notification_id=notification.notification_id,
                error_message=error,
            )

        try:
            message = self._prepare_message(notification)
            with self._connect() as connection:
                connection.send_message(message, to_addrs=recipients)

            self._log_delivery(notification, True)
            return DeliveryResult(
                success=True,
                channel=self.channel_type,
                notification_id=notification.notification_id,
                response_body=message["Message-ID"],
            )

        except smtplib.SMTPAuthenticationError as e:
            error = f"SMTP authentication failed: {e}"
        except smtplib.SMTPRecipientsRefused as e:
            error = f"Recipients refused: {e}"
        except smtplib.SMTPException as e:
            error = f"SMTP error: {e}"
        except (OSError, TimeoutError) as e:
            error = f"Connection error: {e}"

        self._log_delivery(notification, False, error)
        return DeliveryResult(
            success=False,
            channel=self.channel_type,
            notification_id=notification.notification_id,
            error_message=error,
        )
