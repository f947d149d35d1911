"""
utils/whatsapp_utils.py

Purpose: WhatsApp identifier and payload helpers

- JID cleanup (device suffix, server part)
- Phone number normalisation for pairing
- Text extraction from inbound message payloads
"""

from typing import Dict, Any, Optional


def clean_id(jid: str) -> str:
    """
    Reduces a JID to its bare user part.

    "923001234567:12@s.whatsapp.net" -> "923001234567"
    "1234567890@lid" -> "1234567890"
    """
    if not jid:
        return ""
    return jid.split(":", 1)[0].split("@", 1)[0]


def to_non_ad(jid: str) -> str:
    """
    Drops the device part of a JID, keeping the server.

    "923001234567:12@s.whatsapp.net" -> "923001234567@s.whatsapp.net"
    """
    if not jid:
        return ""
    user, _, server = jid.partition("@")
    user = user.split(":", 1)[0]
    return f"{user}@{server}" if server else user


def normalize_phone_number(raw_number: str) -> str:
    """
    Strips formatting characters from a number typed by a user.

    "+92 300-1234567" -> "923001234567"
    """
    if not raw_number:
        return ""
    return raw_number.replace("+", "").replace(" ", "").replace("-", "")


def get_message_text(message: Optional[Dict[str, Any]]) -> str:
    """
    Extracts text content from an inbound message payload.

    Plain conversation text wins; otherwise the extended text message
    (replies, messages with link previews) is used.

    Args:
        message: Message payload as delivered by the gateway

    Returns:
        Message text, or "" for media and other message types
    """
    if not message:
        return ""

    conversation = message.get("conversation")
    if conversation:
        return conversation

    extended = message.get("extended_text_message") or {}
    return extended.get("text") or ""
