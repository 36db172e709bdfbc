"""
Notification recipient resolution.

The addresses that receive upload emails come from an external admin
directory. Lookups are cached in a single process-wide slot for a
bounded time and fall back to stale data, then to a fixed address, when
the directory cannot be reached.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from policy_intake.config import Settings

logger = logging.getLogger(__name__)


class RecipientLookupError(Exception):
    """Raised internally when the directory response cannot be used."""

    pass


@dataclass(frozen=True)
class CacheEntry:
    """Cached address list and the wall-clock time it was fetched."""

    addresses: tuple[str, ...]
    fetched_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        """Return True while the entry is younger than the TTL."""
        return now - self.fetched_at < ttl_seconds


def split_addresses(raw: Any) -> list[str]:
    """
    Normalize an address field into a list.

    Accepts a comma-separated string or a list of strings; entries are
    trimmed and empty ones dropped.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = []
        for item in raw:
            if isinstance(item, str):
                parts.extend(item.split(","))
    else:
        return []
    return [part.strip() for part in parts if part.strip()]


def extract_addresses(payload: Any) -> list[str]:
    """
    Pull the admin address list out of a directory response.

    Supports both response shapes the directory has used:
    ``{"success": true, "data": [{"admin_emails": ...}]}`` and the older
    ``{"success": true, "data": [{"admin_email": "..."}]}``.

    Raises:
        RecipientLookupError: If the payload has neither shape
    """
    if not isinstance(payload, dict) or not payload.get("success"):
        raise RecipientLookupError("Directory response not successful")

    data = payload.get("data")
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        raise RecipientLookupError("Directory response has no data entries")

    record = data[0]
    addresses = split_addresses(record.get("admin_emails")) or split_addresses(
        record.get("admin_email")
    )
    if not addresses:
        raise RecipientLookupError("Directory response has no admin email")
    return addresses


class RecipientResolver:
    """
    Cached, fallback-aware resolver for notification recipients.

    Resolution order:
    1. Fresh cache entry
    2. Remote directory lookup (bearer-authenticated GET)
    3. Stale cache entry
    4. Configured fallback address

    The cache is shared mutable state. Reads and writes are guarded by a
    lock but the remote call is not, so concurrent refreshes may race and
    the last writer wins.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.Client | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize the resolver.

        Args:
            settings: Service settings (directory URL, token, TTL, fallback)
            client: HTTP client (default: new httpx.Client)
            clock: Wall-clock source in seconds (default: time.time)
        """
        self._url = settings.recipient_api_url
        self._token = settings.recipient_api_token
        self._ttl = settings.recipient_cache_ttl_seconds
        self._timeout = settings.notify_timeout_seconds
        self._fallback = split_addresses(settings.recipient_fallback)
        self._client = client or httpx.Client(timeout=self._timeout)
        self._owns_client = client is None
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._entry: CacheEntry | None = None

    @property
    def is_configured(self) -> bool:
        """Return True when the directory URL and token are both set."""
        return bool(self._url and self._token)

    def resolve(self) -> list[str]:
        """
        Resolve the current recipient list.

        Never raises: every failure ends in stale data or the fallback.

        Returns:
            Ordered list of email addresses
        """
        now = self._clock()
        with self._lock:
            entry = self._entry
        if entry is not None and entry.is_fresh(now, self._ttl):
            logger.debug(f"Using cached admin emails: {', '.join(entry.addresses)}")
            return list(entry.addresses)

        if not self.is_configured:
            logger.warning(
                "EMAIL_LEX_API or BEARER_TOKEN not configured, using fallback recipients"
            )
            return self._stale_or_fallback(entry)

        try:
            addresses = self._fetch()
        except (httpx.HTTPError, RecipientLookupError, ValueError) as e:
            logger.error(
                f"Admin email lookup failed: {e}",
                extra={"event": "recipient_lookup_failed", "url": self._url},
            )
            return self._stale_or_fallback(entry)

        with self._lock:
            self._entry = CacheEntry(addresses=tuple(addresses), fetched_at=self._clock())
        logger.info(f"Admin emails fetched successfully: {', '.join(addresses)}")
        return addresses

    def peek_cached(self) -> list[str]:
        """
        Return the cached addresses without any remote call.

        Returns:
            Cached list (possibly stale) or an empty list
        """
        with self._lock:
            entry = self._entry
        return list(entry.addresses) if entry is not None else []

    def close(self) -> None:
        """Close the HTTP client if this resolver created it."""
        if self._owns_client:
            self._client.close()

    def _fetch(self) -> list[str]:
        """Perform the directory lookup."""
        logger.debug(f"Fetching admin email from directory: {self._url}")
        response = self._client.get(
            self._url,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
        )
        response.raise_for_status()
        return extract_addresses(response.json())

    def _stale_or_fallback(self, entry: CacheEntry | None) -> list[str]:
        """Prefer stale cached data over the fixed fallback."""
        if entry is not None:
            logger.info(f"Using stale cached admin emails: {', '.join(entry.addresses)}")
            return list(entry.addresses)
        logger.info(f"Using fallback recipients: {', '.join(self._fallback)}")
        return list(self._fallback)
