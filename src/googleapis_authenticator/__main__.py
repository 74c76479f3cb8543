"""CLI entry point for googleapis_authenticator.

Usage:
    python -m googleapis_authenticator token [--scope SCOPE ...] [--subject EMAIL]
    python -m googleapis_authenticator header [--scope SCOPE ...] [--subject EMAIL]

Scopes and subject default to GOOGLEAPIS_AUTH_SCOPES and GOOGLEAPIS_AUTH_SUBJECT.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import httpx
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from pydantic import ValidationError

from googleapis_authenticator.authenticator import Authenticator
from googleapis_authenticator.config import Settings
from googleapis_authenticator.exceptions import AuthenticatorError
from googleapis_authenticator.logging import configure_logging


def load_settings(args: argparse.Namespace) -> Settings:
    """Load settings, letting command line flags override the environment."""
    overrides: dict[str, str] = {}
    if args.scope:
        overrides["scopes"] = ",".join(args.scope)
    if args.subject:
        overrides["subject"] = args.subject
    return Settings(**overrides)  # type: ignore[arg-type]


async def cmd_token(authenticator: Authenticator) -> int:
    """Print an access token."""
    print(await authenticator.get_access_token())
    return 0


async def cmd_header(authenticator: Authenticator) -> int:
    """Print the Authorization header."""
    headers = await authenticator.get_authorization_headers()
    print(f"Authorization: {headers['authorization']}")
    return 0


COMMANDS = {
    "token": cmd_token,
    "header": cmd_header,
}


async def run(args: argparse.Namespace, settings: Settings) -> int:
    async with Authenticator.from_settings(settings) as authenticator:
        try:
            return await COMMANDS[args.command](authenticator)
        except (AuthenticatorError, GoogleAuthError, GoogleAPIError, httpx.HTTPError) as e:
            print(f"Authentication failed: {e}", file=sys.stderr)
            return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="googleapis-authenticator",
        description="Obtain Google API credentials from a key file or the metadata server",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("token", "Print an access token"),
        ("header", "Print an Authorization header"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "--scope",
            action="append",
            help="OAuth scope (repeatable). Defaults to GOOGLEAPIS_AUTH_SCOPES",
        )
        sub.add_argument(
            "--subject",
            help="User to impersonate. Defaults to GOOGLEAPIS_AUTH_SUBJECT",
        )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(is_production=settings.is_production, log_level=settings.log_level)
    return asyncio.run(run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
