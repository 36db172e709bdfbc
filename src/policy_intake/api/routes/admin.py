"""
Management endpoints.

List, inspect, download and delete stored artifacts, and report the
service configuration. All routes require the admin API key.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from policy_intake.api.dependencies import get_dispatcher, get_settings, get_store
from policy_intake.api.middleware.auth import require_admin_key
from policy_intake.api.schemas.exceptions import BadRequestError
from policy_intake.api.schemas.responses import (
    DeleteResult,
    Envelope,
    FileInfo,
    FileList,
    UploadStatus,
    iso_timestamp,
)
from policy_intake.artifacts.keys import sanitize_policy_id
from policy_intake.artifacts.models import BYTES_PER_MB, format_megabytes
from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.artifacts.validation import ALLOWED_EXTENSIONS
from policy_intake.config import Settings
from policy_intake.notifications.dispatcher import NotificationDispatcher
from policy_intake.version import __version__

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_key)])


@router.get(
    "/list-pdfs",
    response_model=Envelope[FileList],
    response_model_exclude_none=True,
)
async def list_pdfs(
    settings: Settings = Depends(get_settings),
    store: ArtifactStore = Depends(get_store),
) -> Envelope[FileList]:
    """List all stored artifacts, newest first."""
    if not store.exists():
        return Envelope[FileList](message="No uploads directory found", data=FileList())

    artifacts = await run_in_threadpool(store.list)
    files = [FileInfo.from_artifact(a, settings.download_url(a.policy_id)) for a in artifacts]
    total_bytes = sum(a.size_bytes for a in artifacts)

    return Envelope[FileList](
        message="Files retrieved successfully",
        data=FileList(files=files, count=len(files), total_size_mb=format_megabytes(total_bytes)),
    )


@router.get("/pdf-info/{filename}", response_model=Envelope[FileInfo])
async def pdf_info(
    filename: str,
    settings: Settings = Depends(get_settings),
    store: ArtifactStore = Depends(get_store),
) -> Envelope[FileInfo]:
    """
    Return metadata for one stored file.

    Raises:
        NotFoundError: If no such file exists
    """
    artifact = await run_in_threadpool(store.stat, filename)
    return Envelope[FileInfo](
        message="File information retrieved successfully",
        data=FileInfo.from_artifact(
            artifact, settings.download_url(artifact.policy_id), include_exists=True
        ),
    )


@router.get("/download-pdf/{policy_id}")
async def download_pdf(
    policy_id: str,
    store: ArtifactStore = Depends(get_store),
) -> StreamingResponse:
    """
    Stream the latest artifact of a policy ID as an attachment.

    Raises:
        BadRequestError: If the policy ID is empty after sanitizing
        NotFoundError: If the policy ID has no artifacts
    """
    clean_id = sanitize_policy_id(policy_id)
    if not clean_id:
        raise BadRequestError(
            "Policy ID is required",
            hint="Provide 'policy_id' as a URL parameter",
        )

    artifact = await run_in_threadpool(store.resolve_latest, clean_id)
    stream = await run_in_threadpool(store.open_read_stream, artifact.storage_key)

    logger.info(
        f"Download requested for policy {clean_id}: {artifact.storage_key} "
        f"({artifact.size_bytes / 1024:.2f} KB)",
        extra={"event": "artifact_downloaded", "policy_id": clean_id},
    )

    return StreamingResponse(
        stream,
        media_type=artifact.mime_type or "application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.storage_key}"',
            "Content-Length": str(artifact.size_bytes),
            "Cache-Control": "no-cache",
        },
    )


@router.delete("/delete-pdf/{filename}", response_model=Envelope[DeleteResult])
async def delete_pdf(
    filename: str,
    store: ArtifactStore = Depends(get_store),
) -> Envelope[DeleteResult]:
    """
    Delete one stored file. Irreversible.

    Raises:
        NotFoundError: If no such file exists
    """
    await run_in_threadpool(store.delete, filename)
    return Envelope[DeleteResult](
        message="File deleted successfully", data=DeleteResult(filename=filename)
    )


@router.get("/upload-status", response_model=Envelope[UploadStatus])
async def upload_status(
    settings: Settings = Depends(get_settings),
    store: ArtifactStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Envelope[UploadStatus]:
    """Report service health and which integrations are configured."""
    return Envelope[UploadStatus](
        message="PDF Upload service is running",
        data=UploadStatus(
            timestamp=iso_timestamp(),
            upload_directory=str(store.root.resolve()),
            directory_exists=store.exists(),
            max_file_size=f"{settings.max_upload_bytes / BYTES_PER_MB:g}MB",
            allowed_types=list(ALLOWED_EXTENSIONS),
            api_version=__version__,
            channels=dispatcher.channel_status(),
            missing_settings=settings.missing_settings(),
            notifications=dispatcher.stats.to_dict(),
        ),
    )
