"""Import credentials from the Granola desktop app's supabase.json"""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from utils.config import Config
from .credential_store import Credentials

logger = logging.getLogger(__name__)


def default_desktop_credentials_path() -> Path:
    """Platform-specific path of the desktop app's supabase.json"""
    home = Path.home()
    if sys.platform == 'darwin':
        path = home / "Library" / "Application Support" / "Granola" / "supabase.json"
    elif sys.platform == 'win32':
        appdata = os.environ.get('APPDATA')
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        path = base / "Granola" / "supabase.json"
    else:
        path = home / ".config" / "granola" / "supabase.json"
    logger.debug(f"Platform: {sys.platform}, supabase path: {path}")
    return path


def _nested_tokens(parsed: dict, key: str) -> Optional[dict]:
    """Decode a token blob the desktop app stores as a JSON string."""
    blob = parsed.get(key)
    if not isinstance(blob, str) or not blob:
        return None
    tokens = json.loads(blob)
    return tokens if isinstance(tokens, dict) else None


def parse_desktop_credentials(text: str) -> Optional[Credentials]:
    """
    Extract a credential record from supabase.json content

    Tries, in order: WorkOS tokens (current auth system), Cognito tokens,
    then the legacy layout with tokens at the root.

    Args:
        text: Raw file content

    Returns:
        Credentials, or None if no supported layout matched
    """
    try:
        parsed = json.loads(text)
        if not isinstance(parsed, dict):
            return None

        workos = _nested_tokens(parsed, 'workos_tokens')
        if workos and workos.get('access_token'):
            logger.debug("Found WorkOS tokens")
            return Credentials(
                refresh_token=workos.get('refresh_token') or '',
                access_token=workos['access_token'],
                client_id=workos.get('client_id') or Config.DEFAULT_CLIENT_ID,
            )

        cognito = _nested_tokens(parsed, 'cognito_tokens')
        if cognito is not None:
            if not cognito.get('refresh_token'):
                return None
            logger.debug("Found Cognito tokens")
            return Credentials(
                refresh_token=cognito['refresh_token'],
                access_token=cognito.get('access_token') or '',
                client_id=cognito.get('client_id') or Config.DEFAULT_CLIENT_ID,
            )

        if not parsed.get('refresh_token'):
            return None

        logger.debug("Found legacy token format")
        return Credentials(
            refresh_token=parsed['refresh_token'],
            access_token=parsed.get('access_token') or '',
            client_id=parsed.get('client_id') or Config.DEFAULT_CLIENT_ID,
        )
    except ValueError as e:
        logger.debug(f"Failed to parse supabase.json: {e}")
        return None


def load_desktop_credentials(path: Optional[Path] = None) -> Optional[Credentials]:
    """Read and parse the desktop app's credential file; None on any read failure."""
    path = Path(path) if path else default_desktop_credentials_path()
    logger.debug(f"Loading credentials from file: {path}")
    try:
        content = path.read_text(encoding='utf-8')
    except OSError as e:
        logger.debug(f"Failed to load credentials from file: {e}")
        return None
    return parse_desktop_credentials(content)
