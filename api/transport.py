"""POST-only HTTP transport with bounded exponential backoff"""
import logging
import platform
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Optional

import requests

from utils.config import Config

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised for a non-2xx response that was not (or no longer) retried."""

    def __init__(self, message: str, status: int, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for a transport"""

    max_retries: int = Config.API_MAX_RETRIES
    base_delay: float = Config.API_RETRY_BASE_DELAY
    backoff: float = Config.API_RETRY_BACKOFF
    retryable_statuses: FrozenSet[int] = Config.API_RETRYABLE_STATUSES

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (zero-based) failed attempt"""
        return self.base_delay * self.backoff ** attempt

    def is_retryable(self, status: int) -> bool:
        return status in self.retryable_statuses


def build_user_agent() -> str:
    platform_name = 'macOS' if sys.platform == 'darwin' else sys.platform
    return (
        f"Granola/{Config.APP_VERSION} granola-cli/{Config.CLI_VERSION} "
        f"({platform_name} {platform.release()})"
    )


def client_headers() -> Dict[str, str]:
    """Headers identifying this client to the Granola API"""
    return {
        'X-App-Version': Config.APP_VERSION,
        'X-Client-Version': Config.APP_VERSION,
        'X-Client-Type': Config.CLIENT_TYPE,
        'X-Client-Platform': sys.platform,
        'X-Client-Architecture': platform.machine(),
        'X-Client-Id': f"granola-cli-{Config.CLI_VERSION}",
        'User-Agent': build_user_agent(),
    }


class HttpTransport:
    """
    Sends authenticated POST requests to the Granola API.

    Transient statuses (rate limiting, gateway errors) and connection-level
    failures are retried with exponential backoff. Every other non-2xx
    status raises ApiError on the first attempt so callers can react to it,
    e.g. refreshing the token on a 401.
    """

    def __init__(
        self,
        token: str,
        base_url: str = Config.API_BASE_URL,
        retry_policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
        timeout: float = Config.API_REQUEST_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._token = token
        self.base_url = base_url.rstrip('/')
        self.retry_policy = retry_policy or RetryPolicy()
        self.session = session or requests.Session()
        self.timeout = timeout
        self._sleep = sleep

    def set_token(self, token: str) -> None:
        """Use a new bearer token for subsequent requests"""
        self._token = token

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self._token}',
            'Content-Type': 'application/json',
            **client_headers(),
        }

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = self.retry_policy.delay(attempt)
        logger.debug(
            f"{reason}, retrying in {delay:.2f}s "
            f"(attempt {attempt + 1}/{self.retry_policy.max_attempts})"
        )
        self._sleep(delay)

    def post(self, path: str, body: Optional[dict] = None) -> Any:
        """
        POST a JSON body and return the decoded JSON response

        Args:
            path: Endpoint path, e.g. "/v1/get-workspaces"
            body: JSON body (defaults to an empty object)

        Returns:
            Decoded response JSON

        Raises:
            ApiError: On a terminal non-2xx response
            requests.RequestException: If the request itself kept failing
        """
        url = f"{self.base_url}{path}"
        payload = body if body is not None else {}
        max_attempts = self.retry_policy.max_attempts

        for attempt in range(max_attempts):
            is_last = attempt == max_attempts - 1
            try:
                response = self.session.post(
                    url, headers=self._headers(), json=payload, timeout=self.timeout
                )

                if not response.ok:
                    try:
                        response_body = response.json()
                    except ValueError:
                        response_body = {}

                    if self.retry_policy.is_retryable(response.status_code) and not is_last:
                        self._backoff(attempt, f"POST {path} returned {response.status_code}")
                        continue

                    raise ApiError(
                        f"HTTP {response.status_code}: {response.reason}",
                        response.status_code,
                        response_body,
                    )

                return response.json()

            except requests.RequestException as e:
                if is_last:
                    logger.debug(f"POST {path} failed after {max_attempts} attempts: {e}")
                    raise
                self._backoff(attempt, f"POST {path} failed: {e}")
