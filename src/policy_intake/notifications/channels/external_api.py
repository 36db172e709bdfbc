"""
External API notification channel.

Tells the downstream policy system where the latest file for a policy ID
can be retrieved, via an HTTP call with a small JSON body.
"""

import logging
import threading

import requests
from pydantic import BaseModel

from policy_intake.config import Settings
from policy_intake.notifications.channels.base import BaseChannel
from policy_intake.notifications.models import (
    DeliveryResult,
    NotificationChannelType,
    UploadNotification,
)


class ExternalApiChannelConfig(BaseModel):
    """Configuration for the external API channel."""

    url: str | None = None
    method: str = "PUT"
    auth_token: str | None = None
    headers: dict[str, str] = {}
    verify_ssl: bool = True
    enabled: bool = True
    timeout_seconds: float = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExternalApiChannelConfig":
        """Build the channel configuration from service settings."""
        return cls(
            url=settings.external_api_url,
            auth_token=settings.external_api_token,
            timeout_seconds=settings.notify_timeout_seconds,
        )


class ExternalApiChannel(BaseChannel):
    """
    Notification delivery via an HTTP call to the policy system.

    Payload: ``{"policy_id": ..., "url": ...}``

    Single attempt, no retries. A 404 means the downstream system does not
    know the policy yet; it is reported as a failure but logged at INFO.
    """

    channel_type = NotificationChannelType.EXTERNAL_API.value

    def __init__(self, config: ExternalApiChannelConfig):
        """
        Initialize external API channel.

        Args:
            config: Channel configuration
        """
        self.api_config: ExternalApiChannelConfig = config
        self._session_lock = threading.Lock()
        self._session: requests.Session | None = None

    def validate_config(self) -> bool:
        """Validate channel configuration."""
        if not self.api_config.enabled or not self.api_config.url:
            return False
        if not self.api_config.url.startswith(("http://", "https://")):
            return False
        if self.api_config.method not in ("POST", "PUT", "PATCH"):
            return False
        return True

    def _get_session(self) -> requests.Session:
        """Get or create the shared requests session."""
        if self._session is None:
            with self._session_lock:
                if self._session is None:
                    self._session = requests.Session()
        return self._session

    def _prepare_headers(self) -> dict[str, str]:
        """Prepare headers for the request."""
        headers = self.api_config.headers.copy()
        headers.setdefault("Content-Type", "application/json")
        if self.api_config.auth_token:
            headers["Authorization"] = f"Bearer {self.api_config.auth_token}"
        return headers

    @staticmethod
    def prepare_payload(notification: UploadNotification) -> dict[str, str]:
        """Request body announcing the retrieval URL."""
        return {"policy_id": notification.policy_id, "url": notification.download_url}

    def deliver(self, notification: UploadNotification) -> DeliveryResult:
        """
        Deliver notification to the external API.

        Args:
            notification: Notification to deliver

        Returns:
            DeliveryResult with delivery status
        """
        if not self.validate_config():
            error = "External API not configured (PDF_UPLOAD_LEX_API)"
            self._log_delivery(notification, False, error, level=logging.WARNING)
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                notification_id=notification.notification_id,
                error_message=error,
            )

        timeout = self.api_config.timeout_seconds
        try:
            response = self._get_session().request(
                method=self.api_config.method,
                url=self.api_config.url,
                json=self.prepare_payload(notification),
                headers=self._prepare_headers(),
                verify=self.api_config.verify_ssl,
                timeout=timeout,
            )
        except requests.exceptions.Timeout:
            error = f"Request timeout after {timeout}s"
        except requests.exceptions.SSLError as e:
            error = f"SSL error: {e}"
        except requests.exceptions.ConnectionError as e:
            error = f"Connection error: {e}"
        except requests.exceptions.RequestException as e:
            error = f"Request error: {e}"
        else:
            body = response.text[:1000] if response.text else None
            if 200 <= response.status_code < 300:
                self._log_delivery(notification, True)
                return DeliveryResult(
                    success=True,
                    channel=self.channel_type,
                    notification_id=notification.notification_id,
                    status_code=response.status_code,
                    response_body=body,
                )

            error = f"HTTP {response.status_code}: {response.text[:200]}"
            expected = response.status_code == 404
            self._log_delivery(
                notification,
                False,
                error,
                level=logging.INFO if expected else logging.ERROR,
            )
            return DeliveryResult(
                success=False,
                channel=self.channel_type,
                notification_id=notification.notification_id,
                error_message=error,
                status_code=response.status_code,
                response_body=body,
                expected=expected,
            )

        self._log_delivery(notification, False, error)
        return DeliveryResult(
            success=False,
            channel=self.channel_type,
            notification_id=notification.notification_id,
            error_message=error,
        )

    def close(self) -> None:
        """Close the requests session."""
        if self._session:
            self._session.close()
            self._session = None
