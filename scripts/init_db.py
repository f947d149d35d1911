"""
Database initialization script

Run once (or after changing SENT_HISTORY_TTL_DAYS) to create indexes:
    python scripts/init_db.py

Prints the resulting indexes and document counts.
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.db.mongo import (
    connect_to_mongo,
    close_mongo_connection,
    get_user_settings_collection,
    get_sent_history_collection,
    get_devices_collection,
)
from app.db.indexes import create_indexes

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main():
    await connect_to_mongo()

    try:
        await create_indexes()

        for name, collection in (
            ("user_settings", get_user_settings_collection()),
            ("sent_history", get_sent_history_collection()),
            ("devices", get_devices_collection()),
        ):
            indexes = await collection.index_information()
            count = await collection.count_documents({})
            logger.info(f"📋 {name}: {count} documents, indexes={sorted(indexes)}")

        logger.info("✅ Database ready")

    except Exception as e:
        logger.error(f"❌ Error: {e}")
        raise
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
