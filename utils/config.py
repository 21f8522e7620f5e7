"""Configuration management"""

class Config:
    """Application configuration"""

    CLI_VERSION = "0.1.0"

    # Granola API
    API_BASE_URL = "https://api.granola.ai"
    APP_VERSION = "7.0.0"
    CLIENT_TYPE = "cli"

    # WorkOS refresh-token exchange
    TOKEN_REFRESH_URL = "https://api.workos.com/user_management/authenticate"
    DEFAULT_CLIENT_ID = "client_GranolaMac"

    # OS keyring entry
    KEYRING_SERVICE = "com.granola.cli"
    KEYRING_ACCOUNT = "credentials"

    # Environment overrides
    ENV_REFRESH_TOKEN = "GRANOLA_REFRESH_TOKEN"
    ENV_ACCESS_TOKEN = "GRANOLA_ACCESS_TOKEN"
    ENV_CLIENT_ID = "GRANOLA_CLIENT_ID"
    ENV_DEBUG = "GRANOLA_DEBUG"

    # Retry policy
    API_MAX_RETRIES = 3
    API_RETRY_BASE_DELAY = 0.25  # seconds
    API_RETRY_BACKOFF = 2
    API_RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
    API_REQUEST_TIMEOUT = 30  # seconds

    # Token refresh lock
    LOCK_FILE_NAME = "granola-token-refresh.lock"
    LOCK_TIMEOUT = 30.0  # seconds
    LOCK_POLL_INTERVAL = 0.1
    LOCK_STALE_AFTER = 60.0
