from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from alertmanager_matrix.api import health, webhook
from alertmanager_matrix.core.config import require_credentials
from alertmanager_matrix.core.dependencies import (
    get_alert_bot,
    get_alertmanager_client,
    get_formatter,
    get_matrix_client,
    get_settings,
)
from alertmanager_matrix.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


def _stop_on_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        logger.critical("Matrix sync stopped")
    else:
        logger.critical("Matrix sync failed: %s", exc, exc_info=exc)
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    require_credentials(settings)
    get_formatter()
    logger.info(
        "Connecting to Matrix homeserver at %s as %s, and to Alertmanager at %s",
        settings.homeserver,
        settings.user_id,
        settings.alertmanager_url,
    )
    await asyncio.to_thread(get_alertmanager_client().status)
    matrix = get_matrix_client()
    await matrix.verify()

    bot = get_alert_bot()
    await bot.start()
    sync_task = asyncio.create_task(bot.listen())
    sync_task.add_done_callback(_stop_on_failure)
    logger.info("Listening on %s:%s", settings.host, settings.port)
    try:
        yield
    finally:
        sync_task.remove_done_callback(_stop_on_failure)
        sync_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sync_task
        await matrix.close()


app = FastAPI(title="alertmanager-matrix", version="1.0.0", lifespan=lifespan)
app.include_router(health.router)
app.include_router(webhook.router)


def run() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
