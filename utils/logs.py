"""Logging helpers"""
import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr; DEBUG when requested, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def mask_token(token: str) -> str:
    """
    Format a secret for log output

    Keeps the first and last four characters so a token stays
    identifiable without being usable.

    Args:
        token: Token to mask

    Returns:
        Masked token, or "[REDACTED]" for short/empty values
    """
    if not token or len(token) < 12:
        return "[REDACTED]"
    return f"{token[:4]}...{token[-4:]}"
