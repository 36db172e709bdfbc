"""
Artifact storage backend.

Stores uploads as flat files under a single content root. The file name
is the storage key, so there is no separate index: listing, lookup and
"latest for a policy ID" all work from directory entries.
"""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator

from policy_intake.artifacts.keys import (
    MillisClock,
    build_storage_key,
    file_extension,
    parse_storage_key,
    sanitize_policy_id,
    select_latest,
)
from policy_intake.artifacts.models import Artifact
from policy_intake.artifacts.validation import ALLOWED_EXTENSIONS, MIME_TYPES_BY_EXTENSION
from policy_intake.core.exceptions import (
    ArtifactNotFoundError,
    StorageUnavailableError,
    UploadRejectedError,
)

logger = logging.getLogger(__name__)


class ArtifactStore:
    """
    Flat-file artifact store.

    Layout:
    - {root}/{policy_id}_{created_at_millis}{extension}

    Artifacts are written once with exclusive create and never updated
    in place. Concurrent uploads need no lock: every key is unique within
    the process because the clock never repeats a timestamp.
    """

    DEFAULT_CHUNK_SIZE = 64 * 1024
    MAX_KEY_ATTEMPTS = 5

    def __init__(
        self,
        root: Path,
        clock: MillisClock | None = None,
        allowed_extensions: tuple[str, ...] = ALLOWED_EXTENSIONS,
    ):
        """
        Initialize artifact storage.

        Args:
            root: Content root directory (created on first write)
            clock: Upload timestamp source (default: process wall clock)
            allowed_extensions: Extensions included in listings
        """
        self._root = Path(root)
        self._clock = clock or MillisClock()
        self._allowed_extensions = tuple(e.lower() for e in allowed_extensions)

    @property
    def root(self) -> Path:
        """Content root directory."""
        return self._root

    def exists(self) -> bool:
        """Return True if the content root exists."""
        return self._root.is_dir()

    def ensure_root(self) -> None:
        """
        Create the content root recursively if needed.

        Raises:
            StorageUnavailableError: If the directory cannot be created
        """
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot create upload directory: {e}", path=str(self._root)
            ) from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(
        self,
        policy_id: str,
        source_name: str,
        content: bytes | BinaryIO,
        mime_type: str | None = None,
    ) -> Artifact:
        """
        Persist an upload under a freshly derived storage key.

        Args:
            policy_id: Caller-supplied policy ID (sanitized here)
            source_name: Original file name, used for the extension
            content: File bytes or a readable binary stream
            mime_type: MIME type declared by the uploader

        Returns:
            The stored Artifact

        Raises:
            UploadRejectedError: If the policy ID is empty after sanitizing
            StorageUnavailableError: If the file cannot be written
        """
        clean_id = sanitize_policy_id(policy_id)
        if not clean_id:
            raise UploadRejectedError(
                "Invalid policy_id parameter",
                hint="policy_id must contain letters, digits, '_' or '-'",
            )

        extension = file_extension(source_name)
        self.ensure_root()

        for _ in range(self.MAX_KEY_ATTEMPTS):
            created_at = self._clock.now()
            storage_key = build_storage_key(clean_id, created_at, extension)
            path = self._root / storage_key
            try:
                handle = open(path, "xb")
            except FileExistsError:
                # Another process wrote the same millisecond; take the next tick
                continue
            except OSError as e:
                raise StorageUnavailableError(
                    f"Cannot write artifact: {e}", path=str(path)
                ) from e
            break
        else:
            raise StorageUnavailableError(
                "Could not allocate a unique storage key", path=str(self._root)
            )

        try:
            with handle:
                if isinstance(content, (bytes, bytearray)):
                    handle.write(content)
                else:
                    shutil.copyfileobj(content, handle, self.DEFAULT_CHUNK_SIZE)
            size_bytes = path.stat().st_size
        except OSError as e:
            path.unlink(missing_ok=True)
            raise StorageUnavailableError(f"Cannot write artifact: {e}", path=str(path)) from e

        logger.info(
            f"File saved: {storage_key}",
            extra={
                "event": "artifact_stored",
                "storage_key": storage_key,
                "policy_id": clean_id,
                "size_bytes": size_bytes,
            },
        )

        return Artifact(
            storage_key=storage_key,
            policy_id=clean_id,
            created_at_millis=created_at,
            extension=extension,
            size_bytes=size_bytes,
            mime_type=mime_type or MIME_TYPES_BY_EXTENSION.get(extension),
            path=path,
        )

    def delete(self, storage_key: str) -> None:
        """
        Remove one artifact. Other artifacts of the same policy ID are kept.

        Raises:
            ArtifactNotFoundError: If no such artifact exists
            StorageUnavailableError: If the file cannot be removed
        """
        path = self._path_for(storage_key)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise ArtifactNotFoundError("File not found", storage_key=storage_key) from e
        except IsADirectoryError as e:
            raise ArtifactNotFoundError("File not found", storage_key=storage_key) from e
        except OSError as e:
            raise StorageUnavailableError(f"Cannot delete artifact: {e}", path=str(path)) from e

        logger.info(f"File deleted: {storage_key}", extra={"event": "artifact_deleted"})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def resolve_latest(self, policy_id: str) -> Artifact:
        """
        Return the current artifact of a policy ID.

        The current artifact is the one with the greatest recorded
        timestamp, regardless of the order in which writes completed.

        Raises:
            ArtifactNotFoundError: If the policy ID has no artifacts
        """
        clean_id = sanitize_policy_id(policy_id)
        latest = select_latest(self._scan_names(), clean_id) if clean_id else None
        if latest is None:
            raise ArtifactNotFoundError("No file found for this policy ID", policy_id=clean_id)
        return self.stat(latest.name)

    def list(self) -> list[Artifact]:
        """
        List all artifacts with allowed extensions, newest first.

        Returns:
            Artifacts sorted by creation time, descending
        """
        artifacts = []
        for name in self._scan_names():
            if file_extension(name) not in self._allowed_extensions:
                continue
            try:
                artifacts.append(self.stat(name))
            except ArtifactNotFoundError:
                # Deleted between scan and stat
                continue

        artifacts.sort(key=lambda a: (a.created_at_millis, a.storage_key), reverse=True)
        return artifacts

    def stat(self, storage_key: str) -> Artifact:
        """
        Return metadata for one artifact.

        Files that do not follow the key scheme are still reported, with
        the creation time taken from the filesystem.

        Raises:
            ArtifactNotFoundError: If no such artifact exists
        """
        path = self._path_for(storage_key)
        try:
            stats = path.stat()
        except FileNotFoundError as e:
            raise ArtifactNotFoundError("File not found", storage_key=storage_key) from e
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read artifact: {e}", path=str(path)) from e
        if not path.is_file():
            raise ArtifactNotFoundError("File not found", storage_key=storage_key)

        parsed = parse_storage_key(storage_key)
        if parsed is not None:
            policy_id = parsed.policy_id
            created_at = parsed.created_at_millis
        else:
            policy_id = path.stem.split("_", 1)[0]
            created_at = int(stats.st_mtime * 1000)

        extension = file_extension(storage_key)
        return Artifact(
            storage_key=storage_key,
            policy_id=policy_id,
            created_at_millis=created_at,
            extension=extension,
            size_bytes=stats.st_size,
            mime_type=MIME_TYPES_BY_EXTENSION.get(extension),
            path=path,
            modified_at=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
        )

    def open_read_stream(
        self, storage_key: str, chunk_size: int | None = None
    ) -> Iterator[bytes]:
        """
        Open an artifact for streaming.

        The file is opened eagerly so a missing artifact is reported
        before any bytes are sent; the handle is closed when the
        iterator is exhausted, fails, or is closed early.

        Raises:
            ArtifactNotFoundError: If no such artifact exists
            StorageUnavailableError: If the file cannot be opened
        """
        path = self._path_for(storage_key)
        try:
            handle = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ArtifactNotFoundError("File not found", storage_key=storage_key) from e
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read artifact: {e}", path=str(path)) from e

        return self._iter_chunks(handle, chunk_size or self.DEFAULT_CHUNK_SIZE)

    @staticmethod
    def _iter_chunks(handle: BinaryIO, chunk_size: int) -> Iterator[bytes]:
        """Yield file chunks, closing the handle on every exit path."""
        try:
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                yield chunk
        finally:
            handle.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _scan_names(self) -> list[str]:
        """File names directly under the root; empty if the root is missing."""
        try:
            with os.scandir(self._root) as entries:
                return [entry.name for entry in entries if entry.is_file()]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot read upload directory: {e}", path=str(self._root)
            ) from e

    def _path_for(self, storage_key: str) -> Path:
        """
        Map a caller-supplied key to a path inside the root.

        Anything that is not a plain file name is treated as unknown.
        """
        if (
            not storage_key
            or Path(storage_key).name != storage_key
            or storage_key.startswith(".")
            or "\\" in storage_key
            or "\x00" in storage_key
        ):
            raise ArtifactNotFoundError("File not found", storage_key=storage_key)
        return self._root / storage_key
