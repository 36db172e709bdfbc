"""
Notification channel implementations for Policy Intake.

Provides delivery to the two downstream systems informed of an upload:
email recipients and the external policy API.
"""

from policy_intake.notifications.channels.base import BaseChannel
from policy_intake.notifications.channels.email import EmailChannel, EmailChannelConfig
from policy_intake.notifications.channels.external_api import (
    ExternalApiChannel,
    ExternalApiChannelConfig,
)

__all__ = [
    "BaseChannel",
    "EmailChannel",
    "EmailChannelConfig",
    "ExternalApiChannel",
    "ExternalApiChannelConfig",
]
