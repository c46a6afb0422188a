"""HTTP middleware for correlation ids and timing.

Accepts an incoming correlation header (``LOG_REQUEST_ID_HEADER``, default
``X-Request-ID``) or generates a UUID, binds it for the lifetime of the
request, and echoes it back together with the request duration.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from relaybot.core.config import settings
from relaybot.core.logging import clear_correlation_id, set_correlation_id


async def request_id_middleware(request: Request, call_next) -> Response:
    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_correlation_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_correlation_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
