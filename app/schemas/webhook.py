"""
app/schemas/webhook.py

Purpose: Gateway webhook payload schemas

- Validates events pushed by the WhatsApp gateway
- Normalizes inbound chat messages into IncomingMessage
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from utils.whatsapp_utils import get_message_text


class MessageInfo(BaseModel):
    """Envelope of an inbound message."""
    sender: str = Field(..., description="Sender JID, may carry a device suffix")
    chat: str = Field(..., description="Chat the message arrived in")
    is_from_me: bool = Field(default=False, description="Sent by the session's own account")
    id: Optional[str] = Field(default=None, description="Message id")


class GatewayEvent(BaseModel):
    """
    Event pushed by the gateway.

    Example:
        {
            "session_id": "5f1c...",
            "event": "message",
            "info": {"sender": "923001234567:3@s.whatsapp.net",
                     "chat": "923001234567@s.whatsapp.net",
                     "is_from_me": true},
            "message": {"conversation": ".list"}
        }
    """
    session_id: str = Field(..., description="Gateway session that received the event")
    event: str = Field(..., description="Event type (message, connected, logged_out, ...)")
    info: Optional[MessageInfo] = None
    message: Optional[Dict[str, Any]] = None


class IncomingMessage(BaseModel):
    """Normalized chat message for the command handler."""
    session_id: str
    sender: str
    chat: str
    is_from_me: bool = False
    text: str = ""


def parse_message_event(event: GatewayEvent) -> Optional[IncomingMessage]:
    """
    Converts a gateway event into an IncomingMessage.

    Returns:
        None for non-message events or events without envelope info
    """
    if event.event != "message" or event.info is None:
        return None

    return IncomingMessage(
        session_id=event.session_id,
        sender=event.info.sender,
        chat=event.info.chat,
        is_from_me=event.info.is_from_me,
        text=get_message_text(event.message),
    )
