from __future__ import annotations

"""Application factory for the bot's HTTP process.

Centralizes app construction (logging, middleware, handlers, routers) and
ties the bot runtime (sweepers, optional poller) to the app lifespan.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from relaybot.api.routes import health_router, webhook_router
from relaybot.core.config import Settings, settings as default_settings
from relaybot.core.exception_handlers import setup_exception_handlers
from relaybot.core.logging import configure_logging
from relaybot.core.middleware import request_id_middleware
from relaybot.services.runtime import BotRuntime, build_runtime

logger = logging.getLogger(__name__)


def create_app(cfg: Settings | None = None, *, runtime: BotRuntime | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        cfg: Settings to use; defaults to the global settings.
        runtime: Prebuilt runtime (tests inject one with fake collaborators).
            When omitted, one is built from settings at startup unless
            ``BOT_MODE=disabled``.

    Returns:
        Configured FastAPI app.
    """
    cfg = cfg or default_settings
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = runtime
        if active is None and cfg.bot.mode.lower() != "disabled":
            active = build_runtime(cfg)
        app.state.runtime = active
        if active is not None:
            await active.start()
        try:
            yield
        finally:
            if active is not None:
                await active.stop()
            app.state.runtime = None

    app = FastAPI(
        title="Relay Bot",
        description=(
            "Invite-gated file relay bot. Receives Telegram updates by webhook, "
            "checks channel membership and per-user rate limits, then fetches "
            "shared content and delivers it back through the Bot API."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(webhook_router)
    app.include_router(health_router)

    return app
