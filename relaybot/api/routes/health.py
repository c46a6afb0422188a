from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Returns a status flag plus a snapshot of in-memory state when the bot
    runtime is up (verified users, tracked rate-limit keys, in-flight
    downloads, sweeper liveness).
    """

    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        return {"status": "starting"}
    return {"status": "ok", **runtime.snapshot()}
