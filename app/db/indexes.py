"""
app/db/indexes.py

Purpose: Database index management

- Creates unique and lookup indexes
- Guarantees one settings document per user and one key per broadcast
- TTL index so broadcast keys do not grow forever
"""

from pymongo import ASCENDING
from pymongo.errors import OperationFailure

from app.db.mongo import (
    get_user_settings_collection,
    get_sent_history_collection,
    get_devices_collection,
)
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

SENT_HISTORY_TTL_INDEX = "sent_history_ttl_idx"


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        user_settings = get_user_settings_collection()
        sent_history = get_sent_history_collection()
        devices = get_devices_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USER SETTINGS
        # ==============================================

        await user_settings.create_index(
            [("jid", ASCENDING)], unique=True, name="jid_unique"
        )
        logger.debug("Created unique index on user_settings.jid")

        # ==============================================
        # SENT HISTORY
        # ==============================================

        await sent_history.create_index(
            [("msg_id", ASCENDING)], unique=True, name="msg_id_unique"
        )
        logger.debug("Created unique index on sent_history.msg_id")

        await _ensure_sent_history_ttl(sent_history)

        # ==============================================
        # DEVICES
        # ==============================================

        await devices.create_index(
            [("session_id", ASCENDING)], unique=True, name="session_id_unique"
        )
        logger.debug("Created unique index on devices.session_id")

        await devices.create_index([("jid", ASCENDING)], name="device_jid_idx")
        logger.debug("Created index on devices.jid")

        logger.info("✅ All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


async def _ensure_sent_history_ttl(sent_history):
    """
    Creates (or recreates after a TTL change) the expiry index on sent_history.
    SENT_HISTORY_TTL_DAYS=0 removes it.
    """
    ttl_days = settings.SENT_HISTORY_TTL_DAYS
    existing = await sent_history.index_information()

    if ttl_days == 0:
        if SENT_HISTORY_TTL_INDEX in existing:
            await sent_history.drop_index(SENT_HISTORY_TTL_INDEX)
            logger.info("Dropped sent_history TTL index (keys kept forever)")
        return

    expire_after = ttl_days * 86400
    current = existing.get(SENT_HISTORY_TTL_INDEX)
    if current and current.get("expireAfterSeconds") != expire_after:
        await sent_history.drop_index(SENT_HISTORY_TTL_INDEX)

    try:
        await sent_history.create_index(
            [("created_at", ASCENDING)],
            expireAfterSeconds=expire_after,
            name=SENT_HISTORY_TTL_INDEX
        )
    except OperationFailure as e:
        logger.warning(f"Could not create sent_history TTL index: {e}")
        return

    logger.debug(f"Created TTL index on sent_history.created_at ({ttl_days} days)")


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
