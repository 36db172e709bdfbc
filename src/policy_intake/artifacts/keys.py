"""
Storage key scheme.

An artifact's file name is its only index:

    {policy_id}_{created_at_millis}{extension}

Everything that builds, parses or orders those names lives here so that
"latest for a policy ID" depends on a single set of pure functions.
"""

import re
import threading
import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, Iterable

# Characters allowed in a policy ID; everything else is stripped
_POLICY_ID_STRIP = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_policy_id(raw: str | None) -> str:
    """
    Strip every character outside ``[A-Za-z0-9_-]``.

    The result is safe to use as a path component. Sanitizing twice
    gives the same result as sanitizing once.

    Args:
        raw: Caller-supplied policy ID

    Returns:
        Sanitized policy ID (may be empty)
    """
    if not raw:
        return ""
    return _POLICY_ID_STRIP.sub("", raw)


def file_extension(source_name: str | None) -> str:
    """Lower-cased extension of an uploaded file name, including the dot."""
    if not source_name:
        return ""
    return PurePath(source_name).suffix.lower()


@dataclass(frozen=True, order=True)
class StorageKey:
    """
    Parsed form of a storage key.

    Ordering is by (created_at_millis, name), which is the total order
    used to pick the current artifact of a policy ID.
    """

    created_at_millis: int
    name: str
    policy_id: str
    extension: str


def build_storage_key(policy_id: str, created_at_millis: int, extension: str) -> str:
    """
    Build the storage key for an upload.

    Args:
        policy_id: Sanitized policy ID
        created_at_millis: Upload instant in epoch milliseconds
        extension: Lower-cased extension including the dot (or empty)

    Returns:
        Storage key string
    """
    return f"{policy_id}_{created_at_millis}{extension}"


def parse_storage_key(name: str) -> StorageKey | None:
    """
    Parse a storage key back into its parts.

    The policy ID is everything before the last underscore of the stem,
    so policy IDs that themselves contain underscores parse correctly.

    Returns:
        StorageKey, or None if the name does not follow the scheme
    """
    path = PurePath(name)
    if path.name != name:
        return None

    stem, extension = path.stem, path.suffix
    policy_id, sep, timestamp = stem.rpartition("_")
    if not sep or not policy_id or not timestamp.isdigit():
        return None
    if sanitize_policy_id(policy_id) != policy_id:
        return None

    return StorageKey(
        created_at_millis=int(timestamp),
        name=name,
        policy_id=policy_id,
        extension=extension.lower(),
    )


def select_latest(names: Iterable[str], policy_id: str) -> StorageKey | None:
    """
    Pick the current artifact of a policy ID from a set of names.

    Args:
        names: Candidate file names
        policy_id: Sanitized policy ID to match exactly

    Returns:
        The key with the greatest timestamp (ties by name), or None
    """
    matches = [
        key
        for key in (parse_storage_key(name) for name in names)
        if key is not None and key.policy_id == policy_id
    ]
    if not matches:
        return None
    return max(matches)


class MillisClock:
    """
    Process-wide millisecond clock that never goes backwards.

    Each call returns a value strictly greater than the previous one, so
    two uploads in the same process never share a timestamp even when
    they land in the same wall-clock millisecond.
    """

    def __init__(self, source: Callable[[], float] | None = None):
        """
        Initialize the clock.

        Args:
            source: Wall-clock source in seconds (default: time.time)
        """
        self._source = source or time.time
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        """Return the next upload timestamp in epoch milliseconds."""
        with self._lock:
            current = int(self._source() * 1000)
            if current <= self._last:
                current = self._last + 1
            self._last = current
            return current
