"""Tests for the parallel upload notification dispatcher."""

import threading
from unittest.mock import MagicMock

import pytest

from conftest import make_channel
from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.notifications.dispatcher import DispatcherStats, NotificationDispatcher
from policy_intake.recipients.resolver import RecipientResolver


@pytest.fixture
def resolver() -> MagicMock:
    resolver = MagicMock(spec=RecipientResolver)
    resolver.resolve.return_value = ["ops@example.com"]
    resolver.peek_cached.return_value = []
    resolver.is_configured = True
    return resolver


@pytest.fixture
def artifact(store: ArtifactStore):
    return store.put("POL1", "policy.pdf", b"%PDF-1.4", "application/pdf")


def _dispatcher(settings, resolver, email=None, external=None) -> NotificationDispatcher:
    return NotificationDispatcher(
        settings,
        resolver,
        email_channel=email or make_channel("email"),
        external_channel=external or make_channel("external_api"),
    )


class TestNotifyUploadComplete:
    """Tests for fan-out and join."""

    def test_both_channels_succeed(self, settings, resolver, artifact):
        """Both flags are set and recipients are reported."""
        dispatcher = _dispatcher(settings, resolver)
        try:
            outcome = dispatcher.notify_upload_complete(artifact, "POL1")
        finally:
            dispatcher.shutdown()

        assert outcome.email_sent
        assert outcome.external_api_notified
        assert outcome.email_recipients == ["ops@example.com"]
        assert outcome.download_url == "https://files.example.com/api/download-pdf/POL1"

    def test_notification_contents(self, settings, resolver, artifact):
        """Channels receive the stored artifact and resolved recipients."""
        email = make_channel("email")
        external = make_channel("external_api")
        dispatcher = _dispatcher(settings, resolver, email, external)
        try:
            dispatcher.notify_upload_complete(artifact, "POL1")
        finally:
            dispatcher.shutdown()

        sent = email.deliver.call_args.args[0]
        assert sent.recipients == ["ops@example.com"]
        assert sent.file_name == artifact.storage_key
        assert sent.file_path == artifact.path
        assert sent.mime_type == "application/pdf"

        announced = external.deliver.call_args.args[0]
        assert announced.download_url == "https://files.example.com/api/download-pdf/POL1"
        assert announced.notification_id == sent.notification_id

    def test_email_failure_does_not_affect_external(self, settings, resolver, artifact):
        """A failed email leaves the external flag untouched."""
        dispatcher = _dispatcher(settings, resolver, email=make_channel("email", success=False))
        try:
            outcome = dispatcher.notify_upload_complete(artifact, "POL1")
        finally:
            dispatcher.shutdown()

        assert not outcome.email_sent
        assert outcome.external_api_notified
        assert outcome.email_recipients == []

    def test_external_not_found(self, settings, resolver, artifact):
        """An expected 404 only clears the external flag."""
        external = make_channel("external_api", success=False, status_code=404, expected=True)
        dispatcher = _dispatcher(settings, resolver, external=external)
        try:
            outcome = dispatcher.notify_upload_complete(artifact, "POL1")
        finally:
            dispatcher.shutdown()

        assert outcome.email_sent
        assert not outcome.external_api_notified

    def test_channel_exception_becomes_false(self, settings, resolver, artifact):
        """Unexpected exceptions in a branch are contained."""
        external = make_channel("external_api")
        external.deliver.side_effect = RuntimeError("boom")
        dispatcher = _dispatcher(settings, resolver, external=external)
        try:
            outcome = dispatcher.notify_upload_complete(artifact, "POL1")
        finally:
            dispatcher.shutdown()

        assert outcome.email_sent
        assert not outcome.external_api_notified

    def test_resolver_exception_becomes_false(self, settings, resolver, artifact):
        """A crash while resolving recipients fails only the email branch."""
        resolver.resolve.side_effect = RuntimeError("directory exploded")
        email = make_channel("email")
        dispatcher = _dispatcher(settings, resolver, email=email)
        try:
            outcome = dispatcher.notify_upload_complete(artifact, "POL1")
        finally:
            dispatcher.shutdown()

        assert not outcome.email_sent
        assert outcome.external_api_notified
        email.deliver.assert_not_called()

    def test_branches_run_in_parallel(self, settings, resolver, artifact):
        """Each branch can only finish while the other is running."""
        barrier = threading.Barrier(2, timeout=5)

        def wait_then(channel_type):
            def deliver(notification):
                barrier.wait()
                return make_channel(channel_type).deliver(notification)

            return deliver

        email = make_channel("email")
        external = make_channel("external_api")
        email.deliver.side_effect = wait_then("email")
        external.deliver.side_effect = wait_then("external_api")
        dispatcher = _dispatcher(settings, resolver, email, external)
        try:
            outcome = dispatcher.notify_upload_complete(artifact, "POL1")
        finally:
            dispatcher.shutdown()

        assert outcome.email_sent
        assert outcome.external_api_notified

    def test_overlapping_uploads_do_not_queue(self, settings, resolver, artifact):
        """Branches of concurrent uploads all run at the same time."""
        uploads = 6
        barrier = threading.Barrier(uploads * 2, timeout=5)

        def wait_then(channel_type):
            def deliver(notification):
                barrier.wait()
                return make_channel(channel_type).deliver(notification)

            return deliver

        email = make_channel("email")
        external = make_channel("external_api")
        email.deliver.side_effect = wait_then("email")
        external.deliver.side_effect = wait_then("external_api")
        dispatcher = _dispatcher(settings, resolver, email, external)
        outcomes = []

        def upload():
            outcomes.append(dispatcher.notify_upload_complete(artifact, "POL1"))

        threads = [threading.Thread(target=upload) for _ in range(uploads)]
        try:
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=10)
        finally:
            dispatcher.shutdown()

        assert len(outcomes) == uploads
        assert all(o.email_sent and o.external_api_notified for o in outcomes)
        assert dispatcher.stats.emails_sent == uploads


class TestDispatcherState:
    """Tests for stats, status and shutdown."""

    def test_stats_count_outcomes(self, settings, resolver, artifact):
        """Counters track each branch separately."""
        external = make_channel("external_api", success=False)
        dispatcher = _dispatcher(settings, resolver, external=external)
        try:
            dispatcher.notify_upload_complete(artifact, "POL1")
            dispatcher.notify_upload_complete(artifact, "POL1")
            stats = dispatcher.stats
        finally:
            dispatcher.shutdown()

        assert stats.emails_sent == 2
        assert stats.emails_failed == 0
        assert stats.external_notified == 0
        assert stats.external_failed == 2
        assert stats.last_delivery_time

    def test_stats_snapshot_is_a_copy(self, settings, resolver):
        """Mutating a snapshot does not change the dispatcher."""
        dispatcher = _dispatcher(settings, resolver)
        try:
            snapshot = dispatcher.stats
            snapshot.emails_sent = 99
            assert dispatcher.stats.emails_sent == 0
        finally:
            dispatcher.shutdown()

    def test_stats_to_dict(self):
        """Stats serialize every counter."""
        assert set(DispatcherStats().to_dict()) == {
            "emails_sent",
            "emails_failed",
            "external_notified",
            "external_failed",
            "last_delivery_time",
        }

    def test_channel_status(self, settings, resolver):
        """Status reflects each channel's configuration check."""
        external = make_channel("external_api")
        external.validate_config.return_value = False
        dispatcher = _dispatcher(settings, resolver, external=external)
        try:
            status = dispatcher.channel_status()
        finally:
            dispatcher.shutdown()

        assert status == {"email": True, "external_api": False, "recipient_directory": True}

    def test_shutdown_closes_channels(self, settings, resolver):
        """Shutdown closes both channels."""
        email = make_channel("email")
        external = make_channel("external_api")
        dispatcher = _dispatcher(settings, resolver, email, external)

        dispatcher.shutdown()

        email.close.assert_called_once()
        external.close.assert_called_once()
