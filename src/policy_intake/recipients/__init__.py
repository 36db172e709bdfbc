"""
Notification recipient resolution with caching and fallback.
"""

from policy_intake.recipients.resolver import (
    CacheEntry,
    RecipientLookupError,
    RecipientResolver,
    extract_addresses,
    split_addresses,
)

__all__ = [
    "CacheEntry",
    "RecipientLookupError",
    "RecipientResolver",
    "extract_addresses",
    "split_addresses",
]
