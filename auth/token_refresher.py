"""Token refresh with single-use refresh token rotation"""
import logging
from typing import Optional

import requests

from utils.config import Config
from utils.logs import mask_token
from .credential_store import CredentialStore, Credentials
from .process_lock import ProcessLock

logger = logging.getLogger(__name__)


class TokenRefresher:
    """
    Exchanges the stored refresh token for a new access/refresh token pair

    CRITICAL: WorkOS refresh tokens are single-use. The new refresh token
    must be saved before anything else happens, and the exchange runs
    under a cross-process lock so two CLI invocations never submit the
    same token.
    """

    def __init__(
        self,
        credential_store: Optional[CredentialStore] = None,
        lock: Optional[ProcessLock] = None,
        session: Optional[requests.Session] = None,
        token_url: str = Config.TOKEN_REFRESH_URL,
        timeout: float = Config.API_REQUEST_TIMEOUT,
    ):
        self.credential_store = credential_store or CredentialStore()
        self.lock = lock or ProcessLock()
        self.session = session or requests.Session()
        self.token_url = token_url
        self.timeout = timeout

    def refresh(self) -> Optional[Credentials]:
        """
        Refresh the access token

        Returns:
            The new credentials, or None if refresh was not possible
        """
        logger.debug("Attempting token refresh")
        try:
            return self.lock.with_lock(self._refresh_locked)
        except Exception as e:
            logger.debug(f"Token refresh error: {e}", exc_info=True)
            return None

    def _refresh_locked(self) -> Optional[Credentials]:
        # Re-read inside the lock: another process may have rotated the token
        # while we waited, and its old refresh token is already spent.
        creds = self.credential_store.get()
        if not creds or not creds.refresh_token or not creds.client_id:
            logger.debug("Cannot refresh: missing refresh token or client id")
            return None

        logger.debug(f"Refreshing with token {mask_token(creds.refresh_token)}")
        response = self.session.post(
            self.token_url,
            json={
                'client_id': creds.client_id,
                'grant_type': 'refresh_token',
                'refresh_token': creds.refresh_token,
            },
            timeout=self.timeout,
        )

        if not response.ok:
            logger.debug(f"Token refresh failed: {response.status_code} {response.reason}")
            return None

        data = response.json()
        if not data.get('access_token') or not data.get('refresh_token'):
            logger.warning("Token refresh response is missing access_token or refresh_token")
            return None

        new_creds = Credentials(
            refresh_token=data['refresh_token'],
            access_token=data['access_token'],
            client_id=creds.client_id,
        )

        # Save immediately before using
        self.credential_store.save(new_creds)
        logger.info("Token refresh successful, new credentials saved")
        return new_creds
