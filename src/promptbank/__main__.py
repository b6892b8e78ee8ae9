"""Command line entry point: ``promptbank [serve|init-db]``."""

import argparse
import asyncio
import sys

import uvicorn

from promptbank.common.logging import configure_logging
from promptbank.config import Settings, get_settings
from promptbank.db.session import Database


def serve(settings: Settings) -> None:
    uvicorn.run(
        "promptbank.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        workers=settings.server.workers,
        log_level=settings.logging.level.lower(),
    )


async def init_db(settings: Settings) -> None:
    """Create missing tables without starting the server."""
    configure_logging(settings.logging.level, settings.logging.format)
    database = Database(settings.database)
    try:
        await database.create_all()
    finally:
        await database.dispose()
    print(f"Tables ready on {settings.database.url.split('@')[-1]}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="promptbank")
    parser.add_argument("command", nargs="?", default="serve", choices=("serve", "init-db"))
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.command == "init-db":
        asyncio.run(init_db(settings))
    else:
        serve(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
