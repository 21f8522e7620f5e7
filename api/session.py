"""API session: lazily built client plus transparent token refresh"""
import logging
from typing import Callable, Optional, TypeVar

from auth.credential_store import CredentialStore, Credentials
from auth.token_refresher import TokenRefresher
from utils.logs import mask_token
from .client import GranolaAPIClient
from .transport import HttpTransport

logger = logging.getLogger(__name__)

T = TypeVar('T')


class NotAuthenticatedError(Exception):
    """Raised when no credentials are available. Run `granola auth login`."""
    pass


def is_unauthorized(error: BaseException) -> bool:
    return getattr(error, 'status', None) == 401


def default_client_factory(creds: Credentials) -> GranolaAPIClient:
    return GranolaAPIClient(HttpTransport(creds.access_token))


class ApiSession:
    """
    Holds the API client for one CLI invocation

    Commands receive the session instead of reaching for a global, so
    each test (or embedding) can build an independent one.

    Usage:
        session = ApiSession()
        workspaces = session.with_token_refresh(
            lambda: session.get_client().get_workspaces()
        )
    """

    def __init__(
        self,
        credential_store: Optional[CredentialStore] = None,
        refresher: Optional[TokenRefresher] = None,
        client_factory: Callable[[Credentials], GranolaAPIClient] = default_client_factory,
    ):
        self.credential_store = credential_store or CredentialStore()
        self.refresher = refresher or TokenRefresher(credential_store=self.credential_store)
        self.client_factory = client_factory
        self._client: Optional[GranolaAPIClient] = None
        # Rotated record from the last refresh, preferred over a store lookup
        self._credentials: Optional[Credentials] = None

    def get_client(self) -> GranolaAPIClient:
        """
        Return the cached client, building it from stored credentials on first use

        Raises:
            NotAuthenticatedError: If no credentials are available
        """
        if self._client is not None:
            return self._client

        creds = self._credentials or self.credential_store.get()
        if creds is None:
            logger.debug("No credentials found")
            raise NotAuthenticatedError("Not authenticated.")

        if not creds.access_token:
            logger.debug("No access token stored, refreshing before first request")
            creds = self.refresher.refresh()
            if creds is None:
                raise NotAuthenticatedError("Not authenticated.")
            self._credentials = creds

        logger.debug(f"Creating API client, token: {mask_token(creds.access_token)}")
        self._client = self.client_factory(creds)
        return self._client

    def reset_client(self) -> None:
        """Drop the cached client so the next call rebuilds it from fresh credentials"""
        logger.debug("Client reset")
        self._client = None

    def with_token_refresh(self, operation: Callable[[], T]) -> T:
        """
        Run ``operation``, refreshing the token and retrying once on a 401

        Only one retry is attempted: each refresh spends the current
        (single-use) refresh token.

        Args:
            operation: Zero-argument callable performing API calls through this session

        Returns:
            The operation's result
        """
        try:
            return operation()
        except Exception as error:
            if not is_unauthorized(error):
                raise

            logger.debug("401 detected, attempting token refresh")
            refreshed = self.refresher.refresh()
            if refreshed is None:
                logger.debug("Token refresh failed, re-raising original error")
                raise
            self._credentials = refreshed

        self.reset_client()
        logger.debug("Retrying operation with refreshed token")
        return operation()
