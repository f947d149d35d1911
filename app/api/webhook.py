"""
app/api/webhook.py

Purpose: WhatsApp gateway webhook endpoint

- Receives events pushed by the gateway for every linked session
- Verifies the shared secret when one is configured
- Passes chat messages to the command handler
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Header

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from app.flow.commands import handle_command
from app.schemas.webhook import GatewayEvent, parse_message_event
from app.services.session_manager import session_manager

logger = get_logger(__name__)
router = APIRouter()


def verify_webhook_secret(provided: Optional[str]) -> None:
    expected = settings.GATEWAY_WEBHOOK_SECRET
    if not expected:
        return
    if not provided or not secrets.compare_digest(provided, expected):
        raise AuthenticationError("Invalid webhook secret")


@router.post("/webhook")
async def webhook_handler(
    event: GatewayEvent,
    x_webhook_secret: Optional[str] = Header(default=None),
):
    """
    Gateway event sink.

    Only "message" events are acted on; everything else is acknowledged
    and ignored.
    """
    verify_webhook_secret(x_webhook_secret)

    message = parse_message_event(event)
    if message is None:
        logger.debug(f"Ignoring gateway event {event.event} for session {event.session_id}")
        return {"status": "ignored"}

    client = await session_manager.get_by_session_id(event.session_id)
    if client is None:
        logger.debug(f"Message for inactive session {event.session_id} dropped")
        return {"status": "ignored"}

    reply = await handle_command(message, client)
    return {"status": "handled" if reply else "ignored"}


@router.get("/webhook")
async def webhook_verification():
    """
    Webhook verification endpoint (for gateways that probe with GET)
    """
    return {"status": "ok", "message": "Webhook endpoint is active"}
