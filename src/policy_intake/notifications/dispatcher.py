"""
Notification dispatcher for Policy Intake.

Fans a completed upload out to the email and external API channels in
parallel and joins both results before the upload response is sent.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from policy_intake.artifacts.models import Artifact
from policy_intake.config import Settings
from policy_intake.notifications.channels import (
    BaseChannel,
    EmailChannel,
    EmailChannelConfig,
    ExternalApiChannel,
    ExternalApiChannelConfig,
)
from policy_intake.notifications.models import (
    DeliveryResult,
    NotificationOutcome,
    UploadNotification,
)
from policy_intake.recipients.resolver import RecipientResolver

logger = logging.getLogger(__name__)


@dataclass
class DispatcherStats:
    """Counters for notification delivery since process start."""

    emails_sent: int = 0
    emails_failed: int = 0
    external_notified: int = 0
    external_failed: int = 0
    last_delivery_time: str = ""

    def to_dict(self) -> dict[str, int | str]:
        """Convert stats to a dictionary for the status endpoint."""
        return {
            "emails_sent": self.emails_sent,
            "emails_failed": self.emails_failed,
            "external_notified": self.external_notified,
            "external_failed": self.external_failed,
            "last_delivery_time": self.last_delivery_time,
        }


class NotificationDispatcher:
    """
    Upload notification engine.

    Every upload gets its own pair of worker threads, one per branch:
    - email: resolve recipients, then send the artifact by SMTP
    - external API: announce the retrieval URL to the policy system

    A failure in one branch, including an unexpected exception, becomes a
    ``False`` flag and never cancels the other branch or the upload.
    There is no retry and no queue: concurrent uploads never wait on each
    other's branches.
    """

    def __init__(
        self,
        settings: Settings,
        resolver: RecipientResolver,
        email_channel: BaseChannel | None = None,
        external_channel: BaseChannel | None = None,
    ):
        """
        Initialize the notification dispatcher.

        Args:
            settings: Service settings (public base URL, channel config)
            resolver: Recipient resolver for the email branch
            email_channel: Email channel (default: SMTP from settings)
            external_channel: External API channel (default: from settings)
        """
        self._settings = settings
        self._resolver = resolver
        self._email = email_channel or EmailChannel(EmailChannelConfig.from_settings(settings))
        self._external = external_channel or ExternalApiChannel(
            ExternalApiChannelConfig.from_settings(settings)
        )
        self._lock = threading.Lock()
        self._stats = DispatcherStats()

    @property
    def resolver(self) -> RecipientResolver:
        """Recipient resolver used by the email branch."""
        return self._resolver

    @property
    def stats(self) -> DispatcherStats:
        """Get a snapshot of delivery statistics."""
        with self._lock:
            return DispatcherStats(**self._stats.to_dict())

    def channel_status(self) -> dict[str, bool]:
        """Report which channels have a usable configuration."""
        return {
            "email": self._email.validate_config(),
            "external_api": self._external.validate_config(),
            "recipient_directory": self._resolver.is_configured,
        }

    def notify_upload_complete(self, artifact: Artifact, policy_id: str) -> NotificationOutcome:
        """
        Inform both downstream systems of a completed upload.

        Args:
            artifact: The stored artifact
            policy_id: Sanitized policy ID the artifact was stored under

        Returns:
            NotificationOutcome with one flag per branch
        """
        notification = UploadNotification(
            policy_id=policy_id,
            file_name=artifact.storage_key,
            file_path=artifact.path,
            mime_type=artifact.mime_type,
            download_url=self._settings.download_url(policy_id),
        )

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="notif_worker") as executor:
            email_future = executor.submit(self._send_email, notification)
            external_future = executor.submit(self._external.deliver, notification)

            email_result, recipients = self._join_email(email_future, notification)
            external_result = self._join(
                external_future, self._external.channel_type, notification
            )

        self._record(email_result, external_result)

        return NotificationOutcome(
            email_sent=email_result.success,
            external_api_notified=external_result.success,
            email_recipients=recipients if email_result.success else [],
            download_url=notification.download_url,
        )

    def shutdown(self) -> None:
        """Close channel resources."""
        for channel in (self._email, self._external):
            try:
                channel.close()
            except Exception as e:
                logger.warning(f"Error closing channel during shutdown: {e}")

    def _send_email(self, notification: UploadNotification) -> tuple[DeliveryResult, list[str]]:
        """Email branch: resolve recipients, then deliver."""
        recipients = self._resolver.resolve()
        addressed = notification.model_copy(update={"recipients": recipients})
        return self._email.deliver(addressed), recipients

    def _join_email(
        self, future: Future, notification: UploadNotification
    ) -> tuple[DeliveryResult, list[str]]:
        try:
            return future.result()
        except Exception as e:
            logger.exception(f"Email notification crashed for policy {notification.policy_id}")
            failed = DeliveryResult(
                success=False,
                channel=self._email.channel_type,
                notification_id=notification.notification_id,
                error_message=f"Unexpected error: {e}",
            )
            return failed, self._resolver.peek_cached()

    def _join(
        self, future: Future, channel: str, notification: UploadNotification
    ) -> DeliveryResult:
        try:
            return future.result()
        except Exception as e:
            logger.exception(f"{channel} notification crashed for policy {notification.policy_id}")
            return DeliveryResult(
                success=False,
                channel=channel,
                notification_id=notification.notification_id,
                error_message=f"Unexpected error: {e}",
            )

    def _record(self, email: DeliveryResult, external: DeliveryResult) -> None:
        with self._lock:
            if email.success:
                self._stats.emails_sent += 1
            else:
                self._stats.emails_failed += 1
            if external.success:
                self._stats.external_notified += 1
            else:
                self._stats.external_failed += 1
            self._stats.last_delivery_time = max(email.delivered_at, external.delivered_at)
