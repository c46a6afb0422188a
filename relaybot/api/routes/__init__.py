from __future__ import annotations

from relaybot.api.routes.health import router as health_router
from relaybot.api.routes.webhook import router as webhook_router

__all__ = ["health_router", "webhook_router"]
