"""
app/services/identity_service.py

Purpose: LID -> phone number resolution

WhatsApp may address a sender by its linked identity (LID) instead of its
phone JID. Settings are keyed by phone number, so command senders are
mapped back through a table built from the stored devices.

The table is rebuilt wholesale; there is no incremental update.
"""

import asyncio
from typing import Dict, Optional

from app.services.device_service import get_all_devices
from app.core.logging import get_logger
from utils.whatsapp_utils import clean_id

logger = get_logger(__name__)


class IdentityResolver:
    """In-memory alias table: clean LID -> clean phone id."""

    def __init__(self):
        self._aliases: Dict[str, str] = {}
        self._refresh_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._aliases)

    async def load(self) -> int:
        """
        Bulk-loads every (jid, lid) pair from the device store.

        Returns:
            Number of aliases loaded (the previous table is kept on failure)
        """
        try:
            devices = await get_all_devices(logged_in_only=True)
        except Exception as e:
            logger.warning(f"[LID] Could not read devices: {e}")
            return len(self._aliases)

        aliases: Dict[str, str] = {}
        for device in devices:
            jid = device.get("jid")
            lid = device.get("lid")
            if jid and lid:
                aliases[clean_id(lid)] = clean_id(jid)

        self._aliases = aliases
        logger.info(f"💎 [LID SYSTEM] Loaded {len(aliases)} linked identities into memory.")
        return len(aliases)

    def resolve(self, jid: str) -> str:
        """
        Maps a JID to the phone id settings are stored under.

        Unknown identifiers are returned cleaned but otherwise unchanged.
        """
        cleaned = clean_id(jid)
        return self._aliases.get(cleaned, cleaned)

    def refresh(self) -> asyncio.Task:
        """Reloads the table in the background."""
        self._refresh_task = asyncio.create_task(self.load())
        return self._refresh_task


# Singleton instance
identity_resolver = IdentityResolver()
