"""
Telegram Webhook Router

Receives Update deliveries from Telegram and hands message updates to the
dispatch pipeline. Each message is processed in its own task and the
response is returned immediately, so the natural delay before a voice reply
never makes Telegram retry the delivery.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Request

from config import WEBHOOK_PATH
from routers.dispatch import TelegramUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


@router.post(WEBHOOK_PATH)
async def receive_update(
    update: TelegramUpdate,
    request: Request,
    secret_token: Optional[str] = Header(default=None, alias=SECRET_HEADER),
):
    """Accept one Telegram update."""
    settings = request.app.state.settings
    if settings.webhook_secret:
        if not secret_token or not hmac.compare_digest(secret_token, settings.webhook_secret):
            logger.warning(f"Rejected update {update.update_id}: bad secret token")
            raise HTTPException(status_code=403, detail="Invalid secret token")

    if update.message is None:
        logger.debug(f"Ignoring non-message update {update.update_id}")
        return {"ok": True}

    request.app.state.pipeline.spawn(update.message)
    return {"ok": True}
