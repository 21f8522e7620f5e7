#!/usr/bin/env python3
"""
Granola CLI - Main Entry Point
Authentication commands and API access for Granola meeting notes
"""
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import requests

from auth import (
    CredentialStore,
    LockNotAcquiredError,
    default_desktop_credentials_path,
    load_desktop_credentials,
)
from api import ApiError, ApiSession, NotAuthenticatedError
from utils import Config, configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_AUTH_REQUIRED = 2


def handle_error(error: Exception) -> int:
    """Report an error to the user and return the process exit code"""
    if isinstance(error, NotAuthenticatedError) or (
        isinstance(error, ApiError) and error.status == 401
    ):
        print("Error: Authentication required.", file=sys.stderr)
        print("Run `granola auth login` to authenticate.", file=sys.stderr)
        return EXIT_AUTH_REQUIRED

    if isinstance(error, ApiError):
        print(f"Error: {error.message}", file=sys.stderr)
        return EXIT_ERROR

    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        print("Error: Network error. Check your connection.", file=sys.stderr)
        return EXIT_ERROR

    if isinstance(error, LockNotAcquiredError):
        print("Error: Another granola process is refreshing credentials. Try again.", file=sys.stderr)
        return EXIT_ERROR

    print(f"Error: {str(error) or 'An unexpected error occurred.'}", file=sys.stderr)
    return EXIT_ERROR


def cmd_login(args, store: CredentialStore) -> int:
    path = Path(args.path) if args.path else default_desktop_credentials_path()
    creds = load_desktop_credentials(path)
    if not creds:
        logger.debug(f"Login failed: could not load credentials from {path}")
        print("Error: Could not load credentials.", file=sys.stderr)
        print(f"Expected file at: {path}", file=sys.stderr)
        print("\nMake sure the Granola desktop app is installed and you are logged in.",
              file=sys.stderr)
        return EXIT_ERROR

    store.save(creds)
    print("Credentials imported successfully")
    return EXIT_OK


def cmd_logout(args, store: CredentialStore) -> int:
    store.delete()
    print("Logged out successfully")
    return EXIT_OK


def cmd_status(args, store: CredentialStore) -> int:
    authenticated = store.get() is not None
    logger.debug(f"Authenticated: {authenticated}")

    if args.output == 'json':
        print(json.dumps({'authenticated': authenticated}))
    elif authenticated:
        print("Authenticated")
    else:
        print("Not authenticated")
        print("Run: granola auth login")
    return EXIT_OK


def cmd_workspaces(args, store: CredentialStore) -> int:
    session = ApiSession(credential_store=store)
    result = session.with_token_refresh(lambda: session.get_client().get_workspaces())
    print(json.dumps(result, indent=2))
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='granola', description='Granola CLI')
    parser.add_argument('--debug', action='store_true', help='Enable debug-level logging')
    parser.add_argument('--version', action='version', version=f"%(prog)s {Config.CLI_VERSION}")
    commands = parser.add_subparsers(dest='command', required=True)

    auth_parser = commands.add_parser('auth', help='Manage authentication')
    auth_commands = auth_parser.add_subparsers(dest='auth_command', required=True)

    login = auth_commands.add_parser('login', help='Import credentials from Granola desktop app')
    login.add_argument('--path', help='Path to supabase.json (defaults to the desktop app location)')
    login.set_defaults(handler=cmd_login)

    logout = auth_commands.add_parser('logout', help='Logout from Granola')
    logout.set_defaults(handler=cmd_logout)

    status = auth_commands.add_parser('status', help='Check authentication status')
    status.add_argument('-o', '--output', choices=['json'], help='Output format')
    status.set_defaults(handler=cmd_status)

    workspaces = commands.add_parser('workspaces', help='List workspaces as JSON')
    workspaces.set_defaults(handler=cmd_workspaces)

    return parser


def main(argv: Optional[List[str]] = None, store: Optional[CredentialStore] = None) -> int:
    """Parse arguments, dispatch the command and return an exit code"""
    args = build_parser().parse_args(argv)
    configure_logging(debug=args.debug or bool(os.environ.get(Config.ENV_DEBUG)))
    logger.debug(f"Command: {args.command}")

    try:
        return args.handler(args, store or CredentialStore())
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        return handle_error(e)


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
