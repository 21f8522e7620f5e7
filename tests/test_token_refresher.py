"""Tests for token refresh and refresh token rotation."""

import pytest
import requests

from auth.credential_store import Credentials
from auth.process_lock import ProcessLock
from auth.token_refresher import TokenRefresher
from utils.config import Config
from tests.conftest import SAMPLE_CLIENT_ID, SAMPLE_REFRESH_TOKEN


@pytest.fixture
def refresher(store, lock, mock_http_session):
    return TokenRefresher(credential_store=store, lock=lock, session=mock_http_session)


class TestRefresh:
    def test_exchanges_refresh_token(self, refresher, store, sample_credentials,
                                     mock_http_session, mock_response):
        store.save(sample_credentials)
        mock_http_session.post.return_value = mock_response(
            {"access_token": "new-access", "refresh_token": "new-refresh"}
        )

        creds = refresher.refresh()

        assert creds == Credentials("new-refresh", "new-access", SAMPLE_CLIENT_ID)
        mock_http_session.post.assert_called_once()
        args, kwargs = mock_http_session.post.call_args
        assert args[0] == Config.TOKEN_REFRESH_URL
        assert kwargs["json"] == {
            "client_id": SAMPLE_CLIENT_ID,
            "grant_type": "refresh_token",
            "refresh_token": SAMPLE_REFRESH_TOKEN,
        }

    def test_persists_new_credentials(self, refresher, store, sample_credentials,
                                      mock_http_session, mock_response):
        store.save(sample_credentials)
        mock_http_session.post.return_value = mock_response(
            {"access_token": "new-access", "refresh_token": "new-refresh"}
        )

        refresher.refresh()

        assert store.get() == Credentials("new-refresh", "new-access", SAMPLE_CLIENT_ID)

    def test_rotated_token_is_used_for_next_refresh(self, refresher, store, sample_credentials,
                                                    mock_http_session, mock_response):
        store.save(sample_credentials)
        mock_http_session.post.side_effect = [
            mock_response({"access_token": "access-2", "refresh_token": "refresh-2"}),
            mock_response({"access_token": "access-3", "refresh_token": "refresh-3"}),
        ]

        refresher.refresh()
        refresher.refresh()

        submitted = [c.kwargs["json"]["refresh_token"] for c in mock_http_session.post.call_args_list]
        assert submitted == [SAMPLE_REFRESH_TOKEN, "refresh-2"]
        assert store.get().refresh_token == "refresh-3"

    def test_rereads_credentials_inside_lock(self, store, sample_credentials,
                                             mock_http_session, mock_response):
        store.save(sample_credentials)
        mock_http_session.post.return_value = mock_response(
            {"access_token": "new-access", "refresh_token": "new-refresh"}
        )

        class RotatingLock(ProcessLock):
            """Simulates another process rotating the token while we wait."""

            def acquire(self, timeout=None):
                store.save(Credentials("winner-refresh", "winner-access", SAMPLE_CLIENT_ID))
                return super().acquire(timeout)

        lock = RotatingLock(path=store.file_path.parent / "refresh.lock")
        refresher = TokenRefresher(credential_store=store, lock=lock, session=mock_http_session)

        refresher.refresh()

        submitted = mock_http_session.post.call_args.kwargs["json"]["refresh_token"]
        assert submitted == "winner-refresh"

    def test_runs_under_lock(self, refresher, store, lock, sample_credentials,
                             mock_http_session, mock_response):
        store.save(sample_credentials)
        lock_seen = []

        def post(*args, **kwargs):
            lock_seen.append(lock.path.exists())
            return mock_response({"access_token": "a", "refresh_token": "r"})

        mock_http_session.post.side_effect = post

        refresher.refresh()

        assert lock_seen == [True]
        assert not lock.path.exists()


class TestRefreshFailures:
    def test_no_credentials_skips_network(self, refresher, mock_http_session):
        assert refresher.refresh() is None
        mock_http_session.post.assert_not_called()

    def test_access_token_only_skips_network(self, refresher, store, mock_http_session):
        store.save(Credentials("", "access-only", SAMPLE_CLIENT_ID))

        assert refresher.refresh() is None
        mock_http_session.post.assert_not_called()

    def test_error_status_returns_none(self, refresher, store, sample_credentials,
                                       mock_http_session, mock_response):
        store.save(sample_credentials)
        mock_http_session.post.return_value = mock_response({"error": "invalid_grant"}, 400, "Bad Request")

        assert refresher.refresh() is None
        assert store.get() == sample_credentials

    def test_incomplete_response_returns_none(self, refresher, store, sample_credentials,
                                              mock_http_session, mock_response):
        store.save(sample_credentials)
        mock_http_session.post.return_value = mock_response({"access_token": "only-access"})

        assert refresher.refresh() is None
        assert store.get() == sample_credentials

    def test_network_error_returns_none(self, refresher, store, sample_credentials, mock_http_session):
        store.save(sample_credentials)
        mock_http_session.post.side_effect = requests.ConnectionError("offline")

        assert refresher.refresh() is None

    def test_lock_timeout_returns_none(self, store, tmp_path, sample_credentials, mock_http_session):
        store.save(sample_credentials)
        lock = ProcessLock(path=tmp_path / "busy.lock", poll_interval=0.01, default_timeout=0.1)
        refresher = TokenRefresher(credential_store=store, lock=lock, session=mock_http_session)
        held = lock.acquire()
        try:
            assert refresher.refresh() is None
        finally:
            lock.release(held)

        mock_http_session.post.assert_not_called()
        assert store.get() == sample_credentials
