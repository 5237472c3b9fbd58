"""
Unit tests for session wiring.
"""

from unittest.mock import MagicMock

from photoframe.services.auth import TokenState
from photoframe.session import create_session


class TestCreateSession:
    """Test cases for create_session."""

    def test_services_share_one_credential(self, caches, fake_client, temp_dir):
        session = create_session("user-1", caches=caches, client=fake_client, root_folder=str(temp_dir))

        assert session.auth.state is TokenState.NO_CREDENTIAL
        for service in (session.search, session.albums, session.detector, session.executor):
            assert service.auth is session.auth
        assert session.auth.refresh_token_store is caches.refresh_tokens

    def test_uploads_feed_duplicate_detection(self, caches, fake_client, auth, temp_dir):
        session = create_session("user-1", caches=caches, auth=auth, client=fake_client, root_folder=str(temp_dir))

        assert session.executor.on_uploaded == session.detector.remember
        assert session.dead_letter.store is caches.upload_dead_letter

    def test_sessions_do_not_share_credentials(self, caches, fake_client, temp_dir):
        first = create_session("user-1", caches=caches, client=fake_client, root_folder=str(temp_dir))
        second = create_session("user-2", caches=caches, client=fake_client, root_folder=str(temp_dir))

        first.auth.set_tokens("token-1", "refresh-1", profile_id="user-1")

        assert first.auth is not second.auth
        assert second.auth.state is TokenState.NO_CREDENTIAL

    def test_pacing_function_is_shared(self, caches, fake_client, temp_dir):
        sleep = MagicMock()

        session = create_session("user-1", caches=caches, client=fake_client, root_folder=str(temp_dir), sleep=sleep)

        assert session.importer._sleep is sleep
        assert session.drainer._sleep is sleep
