"""Shared test fixtures for the Granola CLI test suite."""

import json

import pytest
from unittest.mock import MagicMock

from auth.credential_store import CredentialStore, Credentials
from auth.process_lock import ProcessLock

SAMPLE_REFRESH_TOKEN = "rt_sample_refresh_token_0001"
SAMPLE_ACCESS_TOKEN = "at_sample_access_token_0001"
SAMPLE_CLIENT_ID = "client_test123"


class FakeKeyring:
    """In-memory stand-in for the keyring module."""

    def __init__(self):
        self.passwords = {}
        self.fail_get = False
        self.fail_set = False
        self.fail_delete = False

    def get_password(self, service, account):
        if self.fail_get:
            raise RuntimeError("keyring unavailable")
        return self.passwords.get((service, account))

    def set_password(self, service, account, value):
        if self.fail_set:
            raise RuntimeError("keyring unavailable")
        self.passwords[(service, account)] = value

    def delete_password(self, service, account):
        if self.fail_delete:
            raise RuntimeError("keyring unavailable")
        if (service, account) not in self.passwords:
            raise KeyError(account)
        del self.passwords[(service, account)]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def fake_keyring(monkeypatch):
    """Keep every test away from the real OS keyring."""
    fake = FakeKeyring()
    monkeypatch.setattr("auth.credential_store.keyring", fake)
    return fake


@pytest.fixture
def environ():
    return {}


@pytest.fixture
def store(tmp_path, environ):
    """CredentialStore backed by a temp file and an isolated environment."""
    return CredentialStore(file_path=tmp_path / "granola-cli" / "credentials.json", environ=environ)


@pytest.fixture
def sample_credentials():
    return Credentials(
        refresh_token=SAMPLE_REFRESH_TOKEN,
        access_token=SAMPLE_ACCESS_TOKEN,
        client_id=SAMPLE_CLIENT_ID,
    )


@pytest.fixture
def lock(tmp_path):
    return ProcessLock(path=tmp_path / "locks" / "test.lock", poll_interval=0.01, default_timeout=2.0)


@pytest.fixture
def mock_response():
    """Factory fixture to create mock requests responses."""
    def _create_response(data=None, status_code: int = 200, reason: str = "OK"):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.reason = reason
        if isinstance(data, Exception):
            response.json.side_effect = data
        else:
            response.json.return_value = data if data is not None else {}
        response.text = json.dumps(data) if not isinstance(data, Exception) else ""
        return response
    return _create_response


@pytest.fixture
def mock_http_session(mock_response):
    """Create a mock requests.Session returning an empty 200 by default."""
    session = MagicMock()
    session.post = MagicMock(return_value=mock_response({}))
    return session
