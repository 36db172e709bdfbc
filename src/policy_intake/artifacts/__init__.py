"""
Policy Intake Artifacts Module.

Provides the storage key scheme, the upload content gate and the
flat-file artifact store.
"""

from .keys import (
    MillisClock,
    StorageKey,
    build_storage_key,
    file_extension,
    parse_storage_key,
    sanitize_policy_id,
    select_latest,
)
from .models import Artifact, format_megabytes
from .storage import ArtifactStore
from .validation import (
    ALLOWED_EXTENSIONS,
    ALLOWED_MIME_TYPES,
    MIME_TYPES_BY_EXTENSION,
    check_file_type,
    check_upload_size,
    measure_upload,
)

__all__ = [
    # Keys
    "MillisClock",
    "StorageKey",
    "build_storage_key",
    "file_extension",
    "parse_storage_key",
    "sanitize_policy_id",
    "select_latest",
    # Models
    "Artifact",
    "format_megabytes",
    # Storage
    "ArtifactStore",
    # Validation
    "ALLOWED_EXTENSIONS",
    "ALLOWED_MIME_TYPES",
    "MIME_TYPES_BY_EXTENSION",
    "check_file_type",
    "check_upload_size",
    "measure_upload",
]
