"""Telegram webhook endpoint.

Telegram POSTs every update here when the server runs in webhook mode.  The
``X-Telegram-Bot-Api-Secret-Token`` header must match
``TELEGRAM_WEBHOOK_SECRET`` when one is configured.  Updates are processed
before responding, so Telegram's retry covers crashes mid-update.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException

from intake_server.dependencies import get_transport
from intake_server.telegram import TelegramTransport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["telegram"])


@router.post("/webhook")
async def telegram_webhook(
    update: dict[str, Any] = Body(...),
    secret: str | None = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
    transport: TelegramTransport = Depends(get_transport),
) -> dict:
    """Receive one Telegram update.  Returns 403 on a bad secret."""
    if not transport.verify_secret(secret):
        logger.warning("Rejected webhook call with invalid secret token")
        raise HTTPException(status_code=403, detail="Invalid secret token")
    await transport.process_update(update)
    return {"ok": True}
