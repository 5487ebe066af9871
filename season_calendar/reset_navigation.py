"""
Reset the saved calendar position to day 1, page 1.

Writes the navigation document directly, or asks a running service to do it
when --api-url is given. Exits 0 on success and 1 on failure.
"""
import argparse
import asyncio
import logging
import sys

import httpx
from sqlalchemy.exc import SQLAlchemyError

from season_calendar.config import settings, setup_logging
from season_calendar.database import close_db, init_db
from season_calendar.services.document_store import DocumentStore, StoreError


logger = logging.getLogger(__name__)


async def reset_in_store(database_path: str | None = None, user_id: str | None = None) -> None:
    try:
        await init_db(database_path)
        await DocumentStore(user_id).reset_navigation_prefs()
    finally:
        await close_db()


async def reset_via_api(api_url: str, timeout: float = 10.0) -> None:
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(f"{api_url.rstrip('/')}/navigation/reset")
        response.raise_for_status()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="season-calendar-reset-navigation",
        description="Reset the saved calendar position to day 1, page 1.",
    )
    parser.add_argument("--database", help=f"SQLite database path (default: {settings.database_path})")
    parser.add_argument("--user", help=f"User document to reset (default: {settings.user_id})")
    parser.add_argument("--api-url", help="Reset through a running service instead of the database")
    return parser


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    try:
        if args.api_url:
            asyncio.run(reset_via_api(args.api_url))
        else:
            asyncio.run(reset_in_store(args.database, args.user))
    except (StoreError, SQLAlchemyError, httpx.HTTPError, OSError) as e:
        logger.error(f"Error resetting navigation: {e}")
        return 1

    print("Navigation reset to day 1!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
