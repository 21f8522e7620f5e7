"""Authentication package: credential resolution and token refresh"""
from .credential_store import CredentialStore, Credentials, default_credentials_path
from .desktop_import import (
    default_desktop_credentials_path,
    load_desktop_credentials,
    parse_desktop_credentials,
)
from .process_lock import LockHandle, LockNotAcquiredError, ProcessLock
from .token_refresher import TokenRefresher

__all__ = [
    'CredentialStore',
    'Credentials',
    'default_credentials_path',
    'default_desktop_credentials_path',
    'load_desktop_credentials',
    'parse_desktop_credentials',
    'LockHandle',
    'LockNotAcquiredError',
    'ProcessLock',
    'TokenRefresher',
]
