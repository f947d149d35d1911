"""
app/services/device_service.py

Purpose: Linked device records

- One document per gateway session
- Login identity (jid, lid) recorded once pairing completes
- Source for session restore and the LID alias table
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.db.mongo import get_devices_collection
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_device(session_id: str) -> Dict[str, Any]:
    """Stores a freshly created, not yet paired, device."""
    devices = get_devices_collection()
    device = {
        "session_id": session_id,
        "jid": None,
        "lid": None,
        "created_at": datetime.now(timezone.utc),
        "paired_at": None,
    }
    await devices.insert_one(device)
    logger.debug(f"Device record created for session {session_id}")
    return device


async def record_login(session_id: str, jid: str, lid: Optional[str] = None) -> bool:
    """
    Saves the account identity of a device after a successful pairing.

    Returns:
        True if the device record exists
    """
    devices = get_devices_collection()
    result = await devices.update_one(
        {"session_id": session_id},
        {
            "$set": {
                "jid": jid,
                "lid": lid,
                "paired_at": datetime.now(timezone.utc)
            }
        }
    )
    return result.matched_count > 0


async def get_all_devices(logged_in_only: bool = True) -> List[Dict[str, Any]]:
    """
    Lists stored devices.

    Args:
        logged_in_only: Skip devices whose pairing never completed
    """
    devices = get_devices_collection()
    query = {"jid": {"$nin": [None, ""]}} if logged_in_only else {}
    return [device async for device in devices.find(query)]


async def delete_device(session_id: str) -> None:
    devices = get_devices_collection()
    await devices.delete_one({"session_id": session_id})
    logger.debug(f"Device record deleted for session {session_id}")
