"""Credential storage: environment, local file and OS keyring"""
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

import keyring

from utils.config import Config
from utils.logs import mask_token

logger = logging.getLogger(__name__)

CREDENTIALS_FILE_NAME = "credentials.json"


@dataclass(frozen=True)
class Credentials:
    """A single Granola credential record.

    The refresh token is single-use: after a successful exchange the whole
    record is replaced by the one returned from the refresh endpoint.
    """

    refresh_token: str
    access_token: str = ""
    client_id: str = Config.DEFAULT_CLIENT_ID

    def to_dict(self) -> Dict[str, str]:
        """Serialize using the on-disk (camelCase) field names."""
        return {
            'refreshToken': self.refresh_token,
            'accessToken': self.access_token,
            'clientId': self.client_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> Optional["Credentials"]:
        """Build a record from stored data; None when it carries no token."""
        refresh_token = data.get('refreshToken') or ''
        access_token = data.get('accessToken') or ''
        if not refresh_token and not access_token:
            return None
        return cls(
            refresh_token=refresh_token,
            access_token=access_token,
            client_id=data.get('clientId') or Config.DEFAULT_CLIENT_ID,
        )

    def __repr__(self) -> str:
        return (
            f"Credentials(refresh_token={mask_token(self.refresh_token)!r}, "
            f"access_token={mask_token(self.access_token)!r}, client_id={self.client_id!r})"
        )


CredentialSource = Callable[[], Optional[Credentials]]


def first_available(*sources: CredentialSource) -> Optional[Credentials]:
    """Return the first record produced by ``sources``, trying them in order."""
    for source in sources:
        creds = source()
        if creds is not None:
            return creds
    return None


def default_credentials_path() -> Path:
    """Platform-specific location of the file-based credential store"""
    home = Path.home()
    if sys.platform == 'darwin':
        return home / "Library" / "Application Support" / "granola-cli" / CREDENTIALS_FILE_NAME
    if sys.platform == 'win32':
        appdata = os.environ.get('APPDATA')
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / "granola-cli" / CREDENTIALS_FILE_NAME
    return home / ".config" / "granola-cli" / CREDENTIALS_FILE_NAME


class CredentialStore:
    """
    Resolves and persists the Granola credential record.

    Lookup order (first match wins):
        1. Environment variables (headless/container use)
        2. JSON file with owner-only permissions
        3. OS keyring

    The file is the durable sink: ``save`` always writes it and treats the
    keyring as a best-effort mirror, since the keyring is often unavailable
    on headless Linux.
    """

    def __init__(
        self,
        file_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        service_name: str = Config.KEYRING_SERVICE,
        account_name: str = Config.KEYRING_ACCOUNT,
    ):
        self.file_path = Path(file_path) if file_path else default_credentials_path()
        self._environ = environ
        self.service_name = service_name
        self.account_name = account_name

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def get(self) -> Optional[Credentials]:
        """
        Resolve credentials from the configured sources

        Returns:
            Credentials, or None if no source has any
        """
        creds = first_available(self._from_env, self._from_file, self._from_keyring)
        if creds is None:
            logger.debug("No credentials found in environment, file store or keyring")
        return creds

    def save(self, creds: Credentials) -> None:
        """
        Persist credentials to the file store and, if possible, the keyring

        Args:
            creds: Record to store

        Raises:
            OSError: If the file store cannot be written
        """
        self._write_file(creds)

        try:
            keyring.set_password(self.service_name, self.account_name, json.dumps(creds.to_dict()))
            logger.debug("Credentials saved to keyring")
        except Exception as e:
            logger.debug(f"Keyring save failed (headless?), file store used: {e}")

    def delete(self) -> None:
        """Remove credentials from the file store and the keyring. Never raises."""
        try:
            self.file_path.unlink()
            logger.debug(f"Credentials deleted from file store: {self.file_path}")
        except OSError:
            logger.debug("No file store credentials to delete")

        try:
            keyring.delete_password(self.service_name, self.account_name)
            logger.debug("Credentials deleted from keyring")
        except Exception as e:
            logger.debug(f"Keyring delete failed: {e}")

    def _from_env(self) -> Optional[Credentials]:
        refresh_token = self.environ.get(Config.ENV_REFRESH_TOKEN)
        if not refresh_token:
            return None

        logger.debug("Credentials loaded from environment variables")
        return Credentials(
            refresh_token=refresh_token,
            access_token=self.environ.get(Config.ENV_ACCESS_TOKEN) or '',
            client_id=self.environ.get(Config.ENV_CLIENT_ID) or Config.DEFAULT_CLIENT_ID,
        )

    def _from_file(self) -> Optional[Credentials]:
        try:
            data = json.loads(self.file_path.read_text(encoding='utf-8'))
        except (OSError, ValueError):
            logger.debug(f"No credentials in file store: {self.file_path}")
            return None

        if not isinstance(data, dict):
            logger.debug("Ignoring malformed file store record")
            return None

        creds = Credentials.from_dict(data)
        if creds:
            logger.debug(f"Credentials loaded from file store: {self.file_path}")
        return creds

    def _from_keyring(self) -> Optional[Credentials]:
        try:
            stored = keyring.get_password(self.service_name, self.account_name)
        except Exception as e:
            logger.debug(f"Failed to read credentials from keyring: {e}")
            return None

        if not stored:
            return None

        try:
            data = json.loads(stored)
        except ValueError:
            logger.debug("Ignoring malformed keyring record")
            return None

        if not isinstance(data, dict):
            return None

        creds = Credentials.from_dict(data)
        if creds:
            logger.debug(f"Credentials loaded from keyring, has access token: {bool(creds.access_token)}")
        return creds

    def _write_file(self, creds: Credentials) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.file_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(creds.to_dict(), f)
        # O_CREAT mode only applies to new files
        os.chmod(self.file_path, 0o600)
        logger.debug(f"Credentials saved to file store: {self.file_path}")
