"""
Refresh the local GeoIP database.

    python -m geolocator.cli lite
    MAXMIND_LICENSE=... python -m geolocator.cli commercial

Exits non-zero on any failure; retrying is left to whatever runs this.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import sys

from geolocator.dependencies.geoip import get_geoip_updater
from geolocator.exceptions.refresh import RefreshError
from geolocator.helpers.geoip_helper import GeoIPUpdater, RefreshTarget
from geolocator.log import log

logger = log("Refresh")


def parse_cli_args(argv: Sequence[str]) -> RefreshTarget:
    parser = argparse.ArgumentParser(
        prog="geolocator.cli",
        description="Download the MaxMind City database if the cached archive is stale, then unpack and validate it",
    )
    parser.add_argument(
        "target",
        choices=[t.value for t in RefreshTarget],
        help="lite: free GeoLite2 database; commercial: GeoIP2 database (requires MAXMIND_LICENSE)",
    )
    args = parser.parse_args(argv)
    return RefreshTarget(args.target)


async def run(target: RefreshTarget, updater: GeoIPUpdater | None = None) -> int:
    updater = updater or get_geoip_updater()
    try:
        result = await updater.refresh(target)
    except RefreshError as e:
        logger.critical(e.message)
        return 1

    if not result.downloaded:
        logger.info(f"Archive is up to date, reinstalled {result.member_name} from cache")
    elif result.timestamp_anchored is False:
        logger.warning("Origin did not send a usable Last-Modified header")
    logger.success(f"{result.member_name} is ready at {result.database_path}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    target = parse_cli_args(sys.argv[1:] if argv is None else argv)
    return asyncio.run(run(target))


if __name__ == "__main__":
    sys.exit(main())
