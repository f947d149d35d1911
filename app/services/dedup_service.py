"""
app/services/dedup_service.py

Purpose: Global broadcast de-duplication

- Natural key per OTP row: phone + panel timestamp
- Seen keys live in sent_history (unique msg_id, TTL on created_at)
"""

from datetime import datetime, timezone

from pymongo.errors import DuplicateKeyError

from app.db.mongo import get_sent_history_collection
from app.core.logging import get_logger

logger = get_logger(__name__)


def build_message_id(phone: str, raw_time: str) -> str:
    """
    Builds the de-duplication key for an OTP row.

    The same (phone, time) pair always yields the same key.
    """
    return f"{phone}_{raw_time}"


async def is_otp_sent(msg_id: str) -> bool:
    """Checks whether this OTP was already broadcast."""
    collection = get_sent_history_collection()
    doc = await collection.find_one({"msg_id": msg_id}, {"_id": 1})
    return doc is not None


async def mark_otp_sent(msg_id: str) -> bool:
    """
    Records an OTP as broadcast.

    Returns:
        True if the key was new, False if it was already recorded
    """
    collection = get_sent_history_collection()
    try:
        await collection.insert_one({
            "msg_id": msg_id,
            "created_at": datetime.now(timezone.utc)
        })
    except DuplicateKeyError:
        logger.debug(f"Broadcast key already recorded: {msg_id}")
        return False
    return True
