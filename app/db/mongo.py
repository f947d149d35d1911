"""
app/db/mongo.py

Purpose: MongoDB connection and collection access

- One Motor client per process, opened at startup
- Startup ping with exponential backoff
- Collection getters for user_settings, sent_history and devices
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Optional
import asyncio
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

USER_SETTINGS_COLLECTION = "user_settings"
SENT_HISTORY_COLLECTION = "sent_history"
DEVICES_COLLECTION = "devices"

CONNECT_ATTEMPTS = 3
FIRST_RETRY_DELAY_SECONDS = 2

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def _new_client() -> AsyncIOMotorClient:
    # "%%" survives .env interpolation; Mongo expects a percent-encoded "%"
    url = settings.MONGODB_URL.replace("%%", "%25")
    return AsyncIOMotorClient(
        url,
        maxPoolSize=20,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
        retryWrites=True,
        retryReads=True,
    )


async def connect_to_mongo():
    """
    Opens the client and waits for a successful ping.

    Raises:
        ConnectionError: If every attempt fails
    """
    global _client, _database

    if _client is not None:
        logger.warning("connect_to_mongo called twice, keeping the existing client")
        return

    delay = FIRST_RETRY_DELAY_SECONDS
    for attempt in range(1, CONNECT_ATTEMPTS + 1):
        client = _new_client()
        try:
            await client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            client.close()
            logger.error(f"MongoDB ping failed ({attempt}/{CONNECT_ATTEMPTS}): {e}")
            if attempt == CONNECT_ATTEMPTS:
                raise ConnectionError("Could not establish MongoDB connection") from e
            await asyncio.sleep(delay)
            delay *= 2
            continue

        _client = client
        _database = client[settings.MONGODB_DB_NAME]
        logger.info(f"✅ MongoDB connected: {settings.MONGODB_DB_NAME}")
        return


async def close_mongo_connection():
    global _client, _database

    if _client is None:
        return
    _client.close()
    _client = None
    _database = None
    logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """True when the server answers a ping."""
    if _client is None:
        return False
    try:
        await _client.admin.command("ping")
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True


def get_database() -> AsyncIOMotorDatabase:
    """
    Raises:
        RuntimeError: If connect_to_mongo() has not run
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database


def get_user_settings_collection() -> AsyncIOMotorCollection:
    """
    Per-user broadcast settings.

    Fields:
    - jid: str (clean phone id, unique)
    - channels: list[str] (destination JIDs, no duplicates)
    - custom_link: str (footer link, empty means default)
    """
    return get_database()[USER_SETTINGS_COLLECTION]


def get_sent_history_collection() -> AsyncIOMotorCollection:
    """
    Broadcast de-duplication keys.

    Fields:
    - msg_id: str ("{phone}_{time}", unique)
    - created_at: datetime (TTL anchor)
    """
    return get_database()[SENT_HISTORY_COLLECTION]


def get_devices_collection() -> AsyncIOMotorCollection:
    """
    Linked WhatsApp devices, one per gateway session.

    Fields:
    - session_id: str (gateway session, unique)
    - jid: str | None (account JID once logged in)
    - lid: str | None (linked identity JID)
    - created_at, paired_at: datetime
    """
    return get_database()[DEVICES_COLLECTION]
