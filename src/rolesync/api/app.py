"""
rolesync.api.app

FastAPI app factory for the role sync service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine, sync runtime, Discord gateway).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

import asyncio
import contextlib

from fastapi import FastAPI

from rolesync import __version__
from rolesync.api.routers.dev_auth import router as dev_auth_router
from rolesync.api.routers.health import router as health_router
from rolesync.api.routers.roles import router as roles_router
from rolesync.api.routers.sync import router as sync_router
from rolesync.bot.client import create_bot
from rolesync.db.init_db import init_db
from rolesync.db.session import create_engine, create_sessionmaker
from rolesync.group_clients.base import GroupDirectory
from rolesync.observability.logging import configure_logging, get_logger
from rolesync.observability.middleware import RequestContextMiddleware
from rolesync.services.runtime import build_runtime
from rolesync.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, directory: GroupDirectory | None = None) -> FastAPI:
    """
    `directory` replaces the Discord gateway (tests, other platforms). Without it the
    bot is started when a Discord token is configured.
    """

    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    app = FastAPI(
        title="Cross-Server Role Sync",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.runtime = None
    app.state.bot = None
    app.state.bot_task = None

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(sync_router)
    app.include_router(roles_router)

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        # One table and no migration history: create it if missing on every start.
        await init_db(engine)

        if directory is not None:
            runtime = build_runtime(
                settings=settings,
                session_factory=app.state.sessionmaker,
                directory=directory,
            )
            runtime.classifier.rebuild()
            app.state.runtime = runtime
        elif settings.discord_token:
            bot = create_bot(settings=settings, session_factory=app.state.sessionmaker)
            app.state.bot = bot
            app.state.runtime = bot.runtime
            # The cog rebuilds syncable roles once the gateway reports ready.
            task = asyncio.create_task(bot.start(settings.discord_token), name="discord-gateway")
            task.add_done_callback(_log_gateway_exit)
            app.state.bot_task = task
        else:
            log.warning("no_group_directory", detail="set ROLESYNC_DISCORD_TOKEN to start the bot")

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        runtime = app.state.runtime
        if runtime is not None:
            await runtime.jobs.aclose()
        bot = app.state.bot
        if bot is not None:
            await bot.close()
        task = app.state.bot_task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
        log.info("shutdown")

    return app


def _log_gateway_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("discord_gateway_stopped", error=str(exc), exc_info=exc)


# --- Module Notes -----------------------------------------------------------
# The bot and the API share one event loop, one DB engine and one runtime, so the guard
# seen by HTTP-triggered resets is the same one the gateway listener checks.
