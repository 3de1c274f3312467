"""Terminal sign-in: request a PIN, wait for approval, print a session token."""

import argparse
import asyncio
import logging
import sys

from plexport.config import Settings, configure_logging, get_settings
from plexport.errors import PlexportError
from plexport.services.plex_auth import PlexAuthService, poll_pin
from plexport.services.plex_client import PlexClient
from plexport.services.session import SessionCodec

logger = logging.getLogger(__name__)


async def login(settings: Settings, timeout: float) -> str:
    auth_service = PlexAuthService(settings, PlexClient(settings), SessionCodec(settings))
    pin = await auth_service.create_pin()
    print(f"Enter code {pin.code} or open:\n  {pin.auth_url}")

    result = await poll_pin(
        lambda: auth_service.check_pin(pin.id),
        interval=settings.pin_poll_interval_seconds,
        timeout=timeout,
        max_failures=settings.pin_poll_max_failures,
    )
    print(f"Signed in as {result.user.username}", file=sys.stderr)
    if not result.servers:
        print("No Plex server available for this account", file=sys.stderr)
    return result.session_token


def main() -> None:
    """Main entry point."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Sign in to Plex and print a PlExport session token")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.pin_poll_timeout_seconds,
        help=f"Seconds to wait for approval (default: {settings.pin_poll_timeout_seconds:g})",
    )
    args = parser.parse_args()
    configure_logging(settings)

    try:
        token = asyncio.run(login(settings, args.timeout))
    except PlexportError as e:
        logger.error("Sign-in failed: %s", e)
        sys.exit(1)
    print(token)


if __name__ == "__main__":
    main()
