"""
Base channel class for notification delivery.

All notification channels must inherit from BaseChannel and implement
the deliver() method.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from policy_intake.notifications.models import DeliveryResult, UploadNotification

logger = logging.getLogger(__name__)


class BaseChannel(ABC):
    """
    Abstract base class for notification channels.

    All channels must implement:
    - deliver(): Send the notification
    - validate_config(): Check configuration validity

    Channels never raise from deliver(); every failure is reported in
    the returned DeliveryResult.
    """

    channel_type: str = "base"

    @abstractmethod
    def validate_config(self) -> bool:
        """
        Validate channel configuration.

        Returns:
            True if configuration is valid
        """
        pass

    @abstractmethod
    def deliver(self, notification: "UploadNotification") -> "DeliveryResult":
        """
        Deliver a notification through this channel.

        Args:
            notification: Notification to deliver

        Returns:
            DeliveryResult with delivery status
        """
        pass

    def close(self) -> None:
        """Release channel resources."""
        pass

    def _log_delivery(
        self,
        notification: "UploadNotification",
        success: bool,
        error: str | None = None,
        *,
        level: int | None = None,
    ) -> None:
        """
        Log a delivery attempt.

        Args:
            notification: Notification that was delivered
            success: Whether delivery succeeded
            error: Error message if failed
            level: Override log level for failures
        """
        extra = {
            "event": "notification_delivered" if success else "notification_failed",
            "channel": self.channel_type,
            "notification_id": notification.notification_id,
            "policy_id": notification.policy_id,
        }
        if success:
            logger.info(f"[{self.channel_type}] delivered for policy {notification.policy_id}", extra=extra)
        else:
            logger.log(
                level if level is not None else logging.ERROR,
                f"[{self.channel_type}] failed for policy {notification.policy_id}: {error}",
                extra=extra,
            )
