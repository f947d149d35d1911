"""
app/flow/commands.py

Purpose: Chat command handling

- Parses dot-commands sent to a linked session
- Resolves the acting user (LID -> phone)
- Mutates that user's broadcast settings
- Replies in the chat the command came from
"""

from typing import Optional

from app.core.exceptions import ChannelAlreadyAddedError, ChannelNotFoundError, GatewayError
from app.core.logging import get_logger, LogContext
from app.schemas.webhook import IncomingMessage
from app.services.identity_service import identity_resolver, IdentityResolver
from app.services.settings_service import (
    add_channel,
    get_user_settings,
    remove_channel,
    set_custom_link,
)
from app.services.whatsapp_client import WhatsAppClient
from utils import constants
from utils.whatsapp_utils import to_non_ad

logger = get_logger(__name__)


def resolve_acting_user(
    message: IncomingMessage,
    client: WhatsAppClient,
    resolver: IdentityResolver,
) -> str:
    """
    Works out whose settings a command applies to.

    Messages the account sends itself (note-to-self, or typed in any chat
    from the phone) belong to the session's own number; anything else
    belongs to the sender.
    """
    target = to_non_ad(message.sender)
    if message.is_from_me and client.jid:
        target = to_non_ad(client.jid)
    return resolver.resolve(target)


async def build_reply(
    command: str,
    args: list,
    message: IncomingMessage,
    user_jid: str,
) -> Optional[str]:
    """
    Executes a command and returns the reply text.

    Returns:
        Reply text, or None for unknown commands
    """
    if command == constants.CMD_ID:
        return constants.ID_REPLY.format(
            sender=to_non_ad(message.sender),
            chat=to_non_ad(message.chat),
        )

    if command == constants.CMD_ACTIVE:
        if len(args) < 2:
            return constants.ACTIVE_USAGE
        channel_id = args[1]
        try:
            await add_channel(user_jid, channel_id)
        except ChannelAlreadyAddedError as e:
            return constants.COMMAND_ERROR.format(error=e.message)
        return constants.ACTIVE_SUCCESS.format(channel=channel_id)

    if command == constants.CMD_DEACTIVE:
        if len(args) < 2:
            return constants.DEACTIVE_USAGE
        try:
            await remove_channel(user_jid, args[1])
        except ChannelNotFoundError as e:
            return constants.COMMAND_ERROR.format(error=e.message)
        return constants.DEACTIVE_SUCCESS

    if command == constants.CMD_CHANGE:
        if len(args) < 2:
            return constants.CHANGE_USAGE
        new_link = args[1]
        await set_custom_link(user_jid, new_link)
        return constants.CHANGE_SUCCESS.format(link=new_link)

    if command == constants.CMD_LIST:
        user_settings = await get_user_settings(user_jid)
        reply = constants.LIST_HEADER
        if not user_settings.channels:
            reply += constants.LIST_EMPTY
        else:
            reply += "".join(
                constants.LIST_ITEM.format(channel=channel)
                for channel in user_settings.channels
            )
        reply += constants.LIST_LINK.format(link=user_settings.custom_link)
        return reply

    return None


async def handle_command(
    message: IncomingMessage,
    client: WhatsAppClient,
    resolver: Optional[IdentityResolver] = None,
) -> Optional[str]:
    """
    Entry point for every inbound chat message of a session.

    Args:
        message: Normalized inbound message
        client: Session that received it (used for the reply)
        resolver: Alias table, defaults to the global one

    Returns:
        The reply that was sent, or None if the message was not a command
    """
    args = message.text.split()
    if not args:
        return None

    command = args[0].lower()
    user_jid = resolve_acting_user(
        message, client, resolver if resolver is not None else identity_resolver
    )

    with LogContext(jid=user_jid, session_id=client.session_id):
        reply = await build_reply(command, args, message, user_jid)
        if reply is None:
            return None

        logger.info(f"🤖 Command {command} handled")
        try:
            await client.send_text(message.chat, reply)
        except GatewayError as e:
            logger.error(f"❌ Reply to {message.chat} failed: {e.message}")

    return reply
