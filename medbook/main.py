"""Command that loads the configuration, connects to the database and serves."""

from __future__ import annotations

import argparse
import asyncio
import logging

from medbook.config import ConfigError, load
from medbook.repository import establish_connection
from medbook.web import start

logger = logging.getLogger("medbook")


def main(argv: list[str] | None = None) -> int:
    """Run the user service; return the process exit status."""
    parser = argparse.ArgumentParser(prog="medbook", description="Run the user service.")
    parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG)

    try:
        config = load()
    except ConfigError as exc:
        logger.error("Failed to load ENV: %s", exc)
        return 1
    logger.info("ENV has been loaded")

    try:
        engine = establish_connection(config.database.url)
    except Exception as exc:
        logger.error("Failed to establish connection to Postgres: %s", exc)
        return 1
    logger.info("Postgres connection has been established")

    asyncio.run(start(config, engine))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())