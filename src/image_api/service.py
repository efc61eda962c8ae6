#!/usr/bin/env python3
"""SDR Image API service entrypoint.

Loads configuration, verifies GitHub access, then serves the read API with
uvicorn. The app lifespan opens the store and GitHub client and runs the
sync scheduler for as long as the server is up; uvicorn handles SIGINT and
SIGTERM.

Usage:
    python -m image_api

Environment:
    GITHUB_TOKEN (required), GITHUB_ORG, SYNC_INTERVAL_MINUTES, SYNC_ON_START,
    DATABASE_PATH, HOST, PORT, LOG_LEVEL, LOG_FORMAT.
    See config.py for all variables.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from image_api.api import create_app
from image_api.config import ImageApiConfig, get_config
from image_api.connectors.github.client import GitHubClient
from image_api.connectors.github.sync import ImageSyncEngine
from image_api.logging_config import configure_logging
from image_api.scheduler import SyncScheduler
from image_api.storage import ImageStore

logger = logging.getLogger("image_api.service")


def _new_client(config: ImageApiConfig) -> GitHubClient:
    return GitHubClient(
        token=config.github_token.get_secret_value(),
        org=config.github_org,
        base_url=config.github_api_url,
        api_version=config.github_api_version,
    )


async def verify_github_access(config: ImageApiConfig) -> bool:
    """Check the token before serving anything.

    Returns:
        True when GitHub accepted the token
    """
    async with _new_client(config) as client:
        result = await client.test_connection()
    if not result["success"]:
        logger.error("GitHub authentication failed: %s", result["error"])
        return False
    logger.info(
        "GitHub authentication ok (rate limit %s)", result["rate_limit"].get("limit")
    )
    return True


def build_app(config: ImageApiConfig) -> FastAPI:
    """Wire store, client, engine and scheduler into the FastAPI app."""
    store = ImageStore(config.database_path)
    client = _new_client(config)
    engine = ImageSyncEngine(client, store, config)
    scheduler = SyncScheduler(engine, default_interval=config.sync_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.initialize()
        scheduler.start(force_first=config.sync_on_start)
        try:
            yield
        finally:
            await scheduler.stop()
            await client.close()
            await store.close()
            logger.info("Exiting")

    return create_app(store, scheduler=scheduler, lifespan=lifespan)


def main() -> None:
    """Service entrypoint. Exits with status 1 on fatal startup errors."""
    configure_logging()

    try:
        config = get_config()
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)
    logger.info("Logger level set to %s", config.log_level)

    if not asyncio.run(verify_github_access(config)):
        sys.exit(1)

    logger.info(
        "SDR Image API starting (org=%s, interval=%dm, sync_on_start=%s, port=%d)",
        config.github_org,
        config.sync_interval_minutes,
        config.sync_on_start,
        config.port,
    )
    uvicorn.run(
        build_app(config),
        host=config.host,
        port=config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
