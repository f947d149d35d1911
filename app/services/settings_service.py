"""
app/services/settings_service.py

Purpose: Per-user broadcast settings

- Destination channel list (ordered, no duplicates)
- Footer link override
- Every mutation is a single atomic update, so concurrent commands for
  the same user cannot overwrite each other
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

from pymongo.errors import DuplicateKeyError

from app.db.mongo import get_user_settings_collection
from app.core.config import settings
from app.core.exceptions import ChannelAlreadyAddedError, ChannelNotFoundError
from app.core.logging import get_logger, LogContext

logger = get_logger(__name__)


@dataclass
class UserSettings:
    jid: str
    channels: List[str] = field(default_factory=list)
    custom_link: str = ""


async def get_user_settings(jid: str) -> UserSettings:
    """
    Retrieves a user's settings.

    Args:
        jid: Clean user id (phone number)

    Returns:
        UserSettings with an empty channel list and the default link when
        the user never configured anything
    """
    collection = get_user_settings_collection()
    doc = await collection.find_one({"jid": jid})

    if not doc:
        return UserSettings(jid=jid, channels=[], custom_link=settings.DEFAULT_CHANNEL_LINK)

    return UserSettings(
        jid=jid,
        channels=list(doc.get("channels") or []),
        custom_link=doc.get("custom_link") or settings.DEFAULT_CHANNEL_LINK,
    )


async def add_channel(jid: str, channel_id: str) -> None:
    """
    Appends a destination channel to a user's list.

    The filter only matches a document that does not hold the channel yet.
    When the user exists and already has it, the upsert collides with the
    unique jid index, which is how a duplicate is detected.
    create_indexes() must have run, otherwise a duplicate upsert would
    create a second document for the user.

    Raises:
        ChannelAlreadyAddedError: If the channel is already in the list
    """
    with LogContext(jid=jid):
        collection = get_user_settings_collection()
        now = datetime.now(timezone.utc)

        try:
            await collection.update_one(
                {"jid": jid, "channels": {"$ne": channel_id}},
                {
                    "$push": {"channels": channel_id},
                    "$set": {"updated_at": now},
                    "$setOnInsert": {"custom_link": "", "created_at": now},
                },
                upsert=True
            )
        except DuplicateKeyError:
            logger.info(f"Channel already active: {channel_id}")
            raise ChannelAlreadyAddedError()

        logger.info(f"Channel added: {channel_id}")


async def remove_channel(jid: str, channel_id: str) -> None:
    """
    Removes a destination channel from a user's list.

    Raises:
        ChannelNotFoundError: If the user never added the channel
    """
    with LogContext(jid=jid):
        collection = get_user_settings_collection()

        result = await collection.update_one(
            {"jid": jid, "channels": channel_id},
            {
                "$pull": {"channels": channel_id},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            }
        )

        if result.matched_count == 0:
            raise ChannelNotFoundError()

        logger.info(f"Channel removed: {channel_id}")


async def set_custom_link(jid: str, link: str) -> None:
    """
    Sets the footer link shown in this user's broadcasts.
    """
    with LogContext(jid=jid):
        collection = get_user_settings_collection()
        now = datetime.now(timezone.utc)

        await collection.update_one(
            {"jid": jid},
            {
                "$set": {"custom_link": link, "updated_at": now},
                "$setOnInsert": {"channels": [], "created_at": now},
            },
            upsert=True
        )

        logger.info(f"Footer link updated: {link}")
