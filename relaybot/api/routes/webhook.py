from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from relaybot.core.logging import get_correlation_id
from relaybot.core.webhook_auth import verify_webhook_secret
from relaybot.schemas.telegram import TelegramUpdate
from relaybot.services.runtime import BotRuntime

router = APIRouter(tags=["Telegram"])


def get_runtime(request: Request) -> BotRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bot runtime is not running",
        )
    return runtime


@router.post(
    "/telegram/webhook",
    dependencies=[Depends(verify_webhook_secret)],
)
async def telegram_webhook(
    update: TelegramUpdate,
    background_tasks: BackgroundTasks,
    runtime: BotRuntime = Depends(get_runtime),
) -> dict:
    """Receive one Telegram update.

    The update is acknowledged right away and handled after the response
    is sent, so slow downloads never make Telegram retry the delivery.
    Handling errors are contained by the dispatcher and never surface here.

    Returns:
        dict: ``{"ok": true}`` plus the correlation id of this call.
    """
    background_tasks.add_task(runtime.dispatcher.handle_update, update)
    return {"ok": True, "request_id": get_correlation_id()}
