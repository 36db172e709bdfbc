"""
Policy Intake Notification System.

Delivers upload notifications to email recipients and the external
policy API, independently and in parallel.

Example:
    dispatcher = NotificationDispatcher(settings, RecipientResolver(settings))
    outcome = dispatcher.notify_upload_complete(artifact, "POL123")
    outcome.email_sent, outcome.external_api_notified
"""

from policy_intake.notifications.channels import (
    BaseChannel,
    EmailChannel,
    EmailChannelConfig,
    ExternalApiChannel,
    ExternalApiChannelConfig,
)
from policy_intake.notifications.dispatcher import DispatcherStats, NotificationDispatcher
from policy_intake.notifications.models import (
    DeliveryResult,
    NotificationChannelType,
    NotificationOutcome,
    NotificationTemplate,
    UploadNotification,
)

__all__ = [
    # Channels
    "BaseChannel",
    "EmailChannel",
    "EmailChannelConfig",
    "ExternalApiChannel",
    "ExternalApiChannelConfig",
    # Dispatcher
    "DispatcherStats",
    "NotificationDispatcher",
    # Models
    "DeliveryResult",
    "NotificationChannelType",
    "NotificationOutcome",
    "NotificationTemplate",
    "UploadNotification",
]
