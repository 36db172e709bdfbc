"""
Upload content gate.

Checks an incoming file's claimed extension, declared MIME type and size
before anything is written to the artifact store.
"""

import logging
import os
from typing import BinaryIO

from policy_intake.artifacts.keys import file_extension
from policy_intake.artifacts.models import BYTES_PER_MB
from policy_intake.core.exceptions import UploadRejectedError, UploadTooLargeError

logger = logging.getLogger(__name__)

MIME_TYPES_BY_EXTENSION: dict[str, str] = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
}

ALLOWED_EXTENSIONS: tuple[str, ...] = tuple(MIME_TYPES_BY_EXTENSION)
ALLOWED_MIME_TYPES: frozenset[str] = frozenset(MIME_TYPES_BY_EXTENSION.values())

UNSUPPORTED_TYPE_MESSAGE = (
    "Only PDF and document files are allowed! Supported formats: "
    + ", ".join(ALLOWED_EXTENSIONS)
)


def normalize_mime_type(content_type: str | None) -> str:
    """Drop parameters and case from a Content-Type value."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def check_file_type(filename: str | None, content_type: str | None) -> str:
    """
    Validate the claimed extension and MIME type of an upload.

    Both must be allowed and must agree with each other, so a ``.exe``
    declared as ``application/pdf`` is rejected.

    Args:
        filename: Original file name from the client
        content_type: Declared MIME type from the client

    Returns:
        The lower-cased extension

    Raises:
        UploadRejectedError: If the type is not accepted
    """
    extension = file_extension(filename)
    mime_type = normalize_mime_type(content_type)

    expected_mime = MIME_TYPES_BY_EXTENSION.get(extension)
    if expected_mime is None or mime_type not in ALLOWED_MIME_TYPES or mime_type != expected_mime:
        logger.info(
            f"File rejected: {filename} ({content_type})",
            extra={"event": "upload_rejected", "extension": extension, "mime_type": mime_type},
        )
        raise UploadRejectedError(
            UNSUPPORTED_TYPE_MESSAGE,
            hint="Upload a .pdf, .doc, .docx or .txt file with a matching content type",
            details={"filename": filename, "content_type": content_type},
        )

    return extension


def measure_upload(fileobj: BinaryIO) -> int:
    """
    Return the size of a seekable upload without reading it into memory.

    The stream position is rewound to the start.
    """
    fileobj.seek(0, os.SEEK_END)
    size = fileobj.tell()
    fileobj.seek(0)
    return size


def check_upload_size(size_bytes: int, limit_bytes: int) -> None:
    """
    Enforce the per-upload size ceiling.

    Raises:
        UploadTooLargeError: If the file is larger than the limit
    """
    if size_bytes > limit_bytes:
        raise UploadTooLargeError(
            f"File too large. Maximum size is {limit_bytes / BYTES_PER_MB:g}MB.",
            size_bytes=size_bytes,
            limit_bytes=limit_bytes,
            hint=f"Upload a file of at most {limit_bytes} bytes",
        )
