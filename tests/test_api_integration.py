"""Integration tests for the Policy Intake API."""

from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import ADMIN_KEY, UPLOAD_KEY, make_channel
from policy_intake.api.app import create_app
from policy_intake.api.auth import create_access_token
from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.artifacts.validation import UNSUPPORTED_TYPE_MESSAGE
from policy_intake.config import Settings
from policy_intake.notifications.dispatcher import NotificationDispatcher
from policy_intake.recipients.resolver import RecipientResolver

PDF = b"%PDF-1.4 policy document"


def _directory(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": [{"admin_emails": ["ops@example.com"]}]})


@pytest.fixture
def external_channel():
    return make_channel("external_api", success=False, status_code=404, expected=True)


@pytest.fixture
def email_channel():
    return make_channel("email")


@pytest.fixture
def app(settings: Settings, store: ArtifactStore, email_channel, external_channel):
    resolver = RecipientResolver(
        settings, client=httpx.Client(transport=httpx.MockTransport(_directory))
    )
    dispatcher = NotificationDispatcher(
        settings,
        resolver,
        email_channel=email_channel,
        external_channel=external_channel,
    )
    return create_app(settings, store=store, resolver=resolver, dispatcher=dispatcher)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


def upload(
    client: TestClient,
    policy_id: str | None = "POL1",
    file=("policy.pdf", PDF, "application/pdf"),
    key: str = UPLOAD_KEY,
):
    data = {"policy_id": policy_id} if policy_id is not None else {}
    files = {"file": file} if file is not None else None
    return client.post(
        "/api/upload-policy-pdf", data=data, files=files, headers={"x-api-key": key}
    )


def admin_headers() -> dict[str, str]:
    return {"x-api-key": ADMIN_KEY}


# =============================================================================
# Root and health
# =============================================================================


class TestRootEndpoints:
    """Tests for unauthenticated endpoints."""

    def test_root(self, client):
        """Root reports the service banner."""
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Policy Intake backend is running!"
        assert body["version"] == "1.0.0"
        assert body["timestamp"].endswith("Z")

    def test_auth_health(self, client):
        """The session routes report liveness without credentials."""
        response = client.get("/api/auth/health")
        assert response.status_code == 200
        assert response.json()["message"] == "Authentication service is running"

    def test_lifespan_creates_upload_directory(self, client, store):
        """The upload directory exists once the app has started."""
        assert store.exists()

    def test_cors_preflight(self, client):
        """Browsers may send the API key header cross-origin."""
        response = client.options(
            "/api/upload-policy-pdf",
            headers={
                "Origin": "https://upload.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "x-api-key",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


# =============================================================================
# Upload
# =============================================================================


class TestUpload:
    """Tests for the upload endpoint."""

    def test_upload_sanitizes_and_notifies(self, client, email_channel, external_channel):
        """A valid upload is stored under the sanitized ID and announced."""
        response = upload(client, policy_id="AB 12!")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "File uploaded successfully"

        data = body["data"]
        assert data["policy_id"] == "AB12"
        assert data["file_name"].startswith("AB12_")
        assert data["file_name"].endswith(".pdf")
        assert data["file_size"] == len(PDF)
        assert data["file_size_mb"] == "0.00"
        assert data["download_url"] == "https://files.example.com/api/download-pdf/AB12"
        assert data["email_sent"] is True
        assert data["email_recipients"] == ["ops@example.com"]
        # The external system answered 404, which does not fail the upload
        assert data["external_api_notified"] is False

        email_channel.deliver.assert_called_once()
        external_channel.deliver.assert_called_once()

    def test_upload_is_downloadable(self, client):
        """The stored bytes are served for the policy ID."""
        upload(client, policy_id="POL9")
        response = client.get("/api/download-pdf/POL9", headers=admin_headers())

        assert response.status_code == 200
        assert response.content == PDF
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-length"] == str(len(PDF))
        assert response.headers["cache-control"] == "no-cache"
        assert 'attachment; filename="POL9_' in response.headers["content-disposition"]

    def test_later_upload_wins(self, client):
        """Downloads return the most recent upload for a policy ID."""
        upload(client, file=("v1.pdf", b"first", "application/pdf"))
        upload(client, file=("v2.pdf", b"second", "application/pdf"))

        response = client.get("/api/download-pdf/POL1", headers=admin_headers())
        assert response.content == b"second"

    def test_missing_policy_id(self, client):
        """policy_id is required."""
        response = upload(client, policy_id=None)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Missing policy_id parameter"

    def test_missing_file(self, client):
        """A file is required."""
        response = upload(client, file=None)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No file uploaded"

    def test_policy_id_empty_after_sanitizing(self, client, store):
        """IDs without any allowed character are rejected."""
        response = upload(client, policy_id="!!!")
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid policy_id parameter"
        assert store.list() == []

    def test_executable_rejected(self, client, store, email_channel):
        """An .exe declared as a PDF is rejected before storage."""
        response = upload(client, file=("malware.exe", b"MZ", "application/pdf"))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "bad_request"
        assert error["message"] == UNSUPPORTED_TYPE_MESSAGE
        assert store.list() == []
        email_channel.deliver.assert_not_called()

    def test_too_large(self, settings, store):
        """Files above the ceiling are rejected with 413."""
        settings.max_upload_bytes = 1024
        app = create_app(
            settings,
            store=store,
            dispatcher=NotificationDispatcher(
                settings,
                RecipientResolver(settings, client=httpx.Client(transport=httpx.MockTransport(_directory))),
                email_channel=make_channel("email"),
                external_channel=make_channel("external_api"),
            ),
        )
        with TestClient(app) as client:
            response = upload(client, file=("big.pdf", b"x" * 2048, "application/pdf"))

        assert response.status_code == 413
        assert response.json()["error"]["type"] == "payload_too_large"
        assert store.list() == []

    def test_wrong_upload_key(self, client, store):
        """A wrong key is rejected and nothing is stored."""
        response = upload(client, key="nope")
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Unauthorized. Invalid or missing upload API key."
        assert store.list() == []

    def test_admin_key_does_not_upload(self, client):
        """The admin key is not accepted for uploads."""
        assert upload(client, key=ADMIN_KEY).status_code == 401


# =============================================================================
# Management
# =============================================================================


class TestManagement:
    """Tests for the admin-key protected endpoints."""

    def test_list(self, client):
        """Listings include every artifact, newest first."""
        upload(client, policy_id="A")
        upload(client, policy_id="B", file=("notes.txt", b"hello", "text/plain"))

        response = client.get("/api/list-pdfs", headers=admin_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Files retrieved successfully"
        data = body["data"]
        assert data["count"] == 2
        assert [f["policy_id"] for f in data["files"]] == ["B", "A"]
        assert data["files"][0]["file_type"] == ".txt"
        assert data["files"][0]["download_url"] == "https://files.example.com/api/download-pdf/B"
        assert data["total_size_mb"] == "0.00"
        assert "file_exists" not in data["files"][0]

    def test_list_without_directory(self, app, store):
        """A missing upload directory lists nothing."""
        # Without the context manager the lifespan never creates the directory
        response = TestClient(app).get("/api/list-pdfs", headers=admin_headers())

        assert not store.exists()
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "No uploads directory found"
        assert body["data"]["files"] == []
        assert body["data"]["count"] == 0

    def test_pdf_info(self, client):
        """Info reports one file's metadata."""
        name = upload(client).json()["data"]["file_name"]
        response = client.get(f"/api/pdf-info/{name}", headers=admin_headers())

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["filename"] == name
        assert data["policy_id"] == "POL1"
        assert data["file_size"] == len(PDF)
        assert data["file_exists"] is True

    def test_pdf_info_missing(self, client):
        """Unknown files are 404."""
        response = client.get("/api/pdf-info/POL1_1.pdf", headers=admin_headers())
        assert response.status_code == 404
        assert response.json()["error"]["type"] == "not_found"

    def test_download_unknown_policy(self, client):
        """Policy IDs without uploads are 404."""
        response = client.get("/api/download-pdf/NOPE", headers=admin_headers())
        assert response.status_code == 404

    def test_download_requires_policy_id(self, client):
        """IDs empty after sanitizing are 400."""
        response = client.get("/api/download-pdf/!!!", headers=admin_headers())
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Policy ID is required"

    def test_delete(self, client, store):
        """Deleting removes exactly the named file."""
        name = upload(client).json()["data"]["file_name"]

        response = client.delete(f"/api/delete-pdf/{name}", headers=admin_headers())

        assert response.status_code == 200
        assert response.json()["message"] == "File deleted successfully"
        assert response.json()["data"]["filename"] == name
        assert store.list() == []

    def test_delete_missing(self, client):
        """Deleting an unknown file is 404."""
        response = client.delete("/api/delete-pdf/POL1_1.pdf", headers=admin_headers())
        assert response.status_code == 404

    def test_status(self, client):
        """Status reports limits, channels and missing settings."""
        response = client.get("/api/upload-status", headers=admin_headers())

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "PDF Upload service is running"
        data = body["data"]
        assert data["service_status"] == "active"
        assert data["directory_exists"] is True
        assert data["max_file_size"] == "10MB"
        assert data["allowed_types"] == [".pdf", ".doc", ".docx", ".txt"]
        assert data["api_version"] == "1.0.0"
        assert data["channels"] == {"email": True, "external_api": True, "recipient_directory": True}
        assert data["missing_settings"] == []

    @pytest.mark.parametrize(
        "method,path",
        [
            ("get", "/api/list-pdfs"),
            ("get", "/api/pdf-info/x.pdf"),
            ("get", "/api/download-pdf/POL1"),
            ("delete", "/api/delete-pdf/x.pdf"),
            ("get", "/api/upload-status"),
        ],
    )
    def test_upload_key_is_not_admin(self, client, method, path):
        """Every management route rejects the upload key."""
        response = client.request(method, path, headers={"x-api-key": UPLOAD_KEY})
        assert response.status_code == 401

    def test_admin_key_not_configured(self, settings, store):
        """An unset admin key fails closed with a configuration error."""
        settings.admin_api_key = None
        app = create_app(
            settings,
            store=store,
            dispatcher=NotificationDispatcher(
                settings,
                RecipientResolver(settings),
                email_channel=make_channel("email"),
                external_channel=make_channel("external_api"),
            ),
        )
        with TestClient(app) as client:
            response = client.get("/api/list-pdfs", headers={"x-api-key": "anything"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["type"] == "configuration_error"
        assert error["message"] == "Server configuration error. Admin API key not configured."


# =============================================================================
# Session routes
# =============================================================================


class TestSession:
    """Tests for login and token inspection."""

    def login(self, client, username="admin", password="correct-horse"):
        return client.post("/api/auth/login", json={"username": username, "password": password})

    def test_login_and_verify(self, client):
        """A login token is accepted by verify-token and me."""
        response = self.login(client)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"] == {"username": "admin", "role": "admin"}
        assert data["expiresIn"] == "1h"

        headers = {"Authorization": f"Bearer {data['token']}"}
        verified = client.get("/api/auth/verify-token", headers=headers)
        assert verified.status_code == 200
        assert verified.json()["data"]["tokenValid"] is True
        assert verified.json()["data"]["expiresAt"].endswith("Z")

        me = client.get("/api/auth/me", headers=headers)
        assert me.json()["data"]["user"]["username"] == "admin"

    def test_login_wrong_password(self, client):
        """Wrong credentials are 401."""
        response = self.login(client, password="wrong")
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    def test_login_missing_fields(self, client):
        """Both username and password are required."""
        response = client.post("/api/auth/login", json={"username": "admin"})
        assert response.status_code == 400

    def test_login_not_configured(self, settings, store):
        """Login without configured admin credentials is a server error."""
        settings.admin_password = None
        app = create_app(
            settings,
            store=store,
            dispatcher=NotificationDispatcher(
                settings,
                RecipientResolver(settings),
                email_channel=make_channel("email"),
                external_channel=make_channel("external_api"),
            ),
        )
        with TestClient(app) as client:
            response = self.login(client)

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["type"] == "configuration_error"
        assert error["detail"] == "ADMIN_USERNAME/ADMIN_PASSWORD"

    def test_login_malformed_body(self, client):
        """A body that is not JSON is a bad request."""
        response = client.post(
            "/api/auth/login", content=b"not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "bad_request"

    def test_no_token(self, client):
        """Protected session routes need a token."""
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Access denied. No token provided."

    def test_expired_token(self, client, settings):
        """Expired tokens are reported as such."""
        token = create_access_token("admin", expiration_seconds=-10, secret=settings.jwt_secret)
        response = client.get("/api/auth/verify-token", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Token has expired"

    def test_foreign_token(self, client):
        """Tokens signed with another secret are invalid."""
        token = create_access_token("admin", secret="someone-else")
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"
