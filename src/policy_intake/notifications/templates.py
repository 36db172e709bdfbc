"""
Notification templates for Policy Intake.
"""

import html
from datetime import datetime, timezone
from typing import Any

from policy_intake.notifications.models import NotificationTemplate, UploadNotification

UPLOAD_EMAIL = NotificationTemplate(
    name="upload_email",
    title_template="New Policy PDF Uploaded - {{policy_id}}",
    body_template="""<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #2c3e50; border-bottom: 2px solid #3498db; padding-bottom: 10px;">
        Policy PDF Upload Notification
    </h2>
    <div style="background-color: #f8f9fa; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <p><strong>Policy ID:</strong> <code>{{policy_id}}</code></p>
        <p><strong>File Name:</strong> <code>{{file_name}}</code></p>
        <p><strong>Upload Time:</strong> {{upload_time}}</p>
    </div>
    <div style="background-color: #d4edda; padding: 15px; border-radius: 8px; border-left: 4px solid #28a745;">
        <p style="margin: 0; color: #155724;">{{attachment_note}}</p>
    </div>
    <hr style="margin: 30px 0; border: none; border-top: 1px solid #dee2e6;">
    <p style="color: #6c757d; font-size: 12px; text-align: center;">
        This is an automated notification from the LexCoverzy PDF Upload System
    </p>
</div>""",
    required_vars=["policy_id", "file_name", "upload_time", "attachment_note"],
)

UPLOAD_EMAIL_TEXT = NotificationTemplate(
    name="upload_email_text",
    title_template="New Policy PDF Uploaded - {{policy_id}}",
    body_template="""Policy PDF Upload Notification

Policy ID: {{policy_id}}
File Name: {{file_name}}
Upload Time: {{upload_time}}

{{attachment_note}}""",
    required_vars=["policy_id", "file_name", "upload_time", "attachment_note"],
)

ATTACHED_NOTE = "The file has been uploaded to the server and is attached to this email."
MISSING_ATTACHMENT_NOTE = (
    "The file has been uploaded to the server but could not be attached to this email."
)


def upload_email_variables(
    notification: UploadNotification, attached: bool
) -> dict[str, Any]:
    """Template variables for an upload email, HTML-escaped."""
    upload_time = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    return {
        "policy_id": html.escape(notification.policy_id),
        "file_name": html.escape(notification.file_name),
        "upload_time": upload_time,
        "attachment_note": ATTACHED_NOTE if attached else MISSING_ATTACHMENT_NOTE,
    }
