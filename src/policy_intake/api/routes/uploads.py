"""
Upload endpoint.

Accepts one policy document, stores it under a derived storage key and
notifies the downstream systems before responding.
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from policy_intake.api.dependencies import get_dispatcher, get_settings, get_store
from policy_intake.api.middleware.auth import require_upload_key
from policy_intake.api.schemas.exceptions import BadRequestError
from policy_intake.api.schemas.responses import Envelope, UploadResult, iso_timestamp
from policy_intake.artifacts.keys import sanitize_policy_id
from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.artifacts.validation import check_file_type, check_upload_size, measure_upload
from policy_intake.config import Settings
from policy_intake.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/upload-policy-pdf",
    response_model=Envelope[UploadResult],
    dependencies=[Depends(require_upload_key)],
)
async def upload_policy_pdf(
    policy_id: str | None = Form(None),
    file: UploadFile | None = File(None),
    settings: Settings = Depends(get_settings),
    store: ArtifactStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Envelope[UploadResult]:
    """
    Upload a policy document.

    The file must be a .pdf, .doc, .docx or .txt with a matching content
    type and at most the configured size. After it is stored, the email
    and external API notifications are attempted; their failures only
    show up as ``email_sent`` / ``external_api_notified`` flags.

    Raises:
        BadRequestError: Missing or invalid policy_id, missing file, or
            unsupported type
        PayloadTooLargeError: File exceeds the size ceiling
    """
    if not policy_id or not policy_id.strip():
        raise BadRequestError(
            "Missing policy_id parameter",
            hint="Include 'policy_id' in your form data",
        )

    if file is None or not file.filename:
        raise BadRequestError(
            "No file uploaded",
            hint="Include a file with key 'file' in your form data",
        )

    clean_id = sanitize_policy_id(policy_id)
    if not clean_id:
        raise BadRequestError(
            "Invalid policy_id parameter",
            hint="policy_id must contain letters, digits, '_' or '-'",
        )

    check_file_type(file.filename, file.content_type)
    size_bytes = measure_upload(file.file)
    check_upload_size(size_bytes, settings.max_upload_bytes)

    logger.info(
        f"Processing upload for policy {clean_id}: {file.filename} ({size_bytes} bytes)",
        extra={"event": "upload_received", "policy_id": clean_id, "size_bytes": size_bytes},
    )

    artifact = await run_in_threadpool(
        store.put, clean_id, file.filename, file.file, file.content_type
    )
    outcome = await run_in_threadpool(dispatcher.notify_upload_complete, artifact, clean_id)

    logger.info(
        f"Upload complete: {artifact.storage_key} "
        f"(email_sent={outcome.email_sent}, external_api_notified={outcome.external_api_notified})",
        extra={
            "event": "upload_completed",
            "policy_id": clean_id,
            "storage_key": artifact.storage_key,
            "email_sent": outcome.email_sent,
            "external_api_notified": outcome.external_api_notified,
        },
    )

    return Envelope[UploadResult](
        message="File uploaded successfully",
        data=UploadResult(
            file_name=artifact.storage_key,
            policy_id=clean_id,
            file_size=artifact.size_bytes,
            file_size_mb=artifact.size_mb,
            upload_time=iso_timestamp(artifact.created_at),
            email_sent=outcome.email_sent,
            email_recipients=outcome.email_recipients,
            external_api_notified=outcome.external_api_notified,
            download_url=outcome.download_url,
        ),
    )
