"""
app/services/session_manager.py

Purpose: Multi-session bookkeeping

- Active sessions keyed by the account's clean phone id
- Restores stored devices on startup
- Phone-code pairing with a background login watcher
- Bulk delete / shutdown disconnect

A single asyncio.Lock guards the session map. It is never held across a
broadcast: senders work on a snapshot from active_sessions().
"""

import asyncio
from typing import Dict, List, Optional, Set, Tuple

from app.core.config import settings
from app.core.exceptions import GatewayError, PairingError
from app.core.logging import get_logger, LogContext
from app.services import device_service
from app.services.identity_service import identity_resolver, IdentityResolver
from app.services.whatsapp_client import GatewayAPI, WhatsAppClient, gateway_api
from utils.whatsapp_utils import clean_id, normalize_phone_number

logger = get_logger(__name__)


def _log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"❌ Background task {task.get_name()} failed: {exc}", exc_info=exc)


class SessionManager:
    """Owns every live WhatsApp session of the bot."""

    def __init__(
        self,
        api: Optional[GatewayAPI] = None,
        resolver: Optional[IdentityResolver] = None,
    ):
        self.api = api or gateway_api
        self.resolver = resolver if resolver is not None else identity_resolver
        self._clients: Dict[str, WhatsAppClient] = {}
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def active_sessions(self) -> List[Tuple[str, WhatsAppClient]]:
        """Snapshot of (clean id, client) pairs."""
        async with self._lock:
            return list(self._clients.items())

    async def get_by_session_id(self, session_id: str) -> Optional[WhatsAppClient]:
        async with self._lock:
            for client in self._clients.values():
                if client.session_id == session_id:
                    return client
        return None

    async def is_active(self, clean_number: str) -> bool:
        async with self._lock:
            return clean_number in self._clients

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(_log_task_failure)
        return task

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start_all_sessions(self) -> int:
        """
        Reconnects every stored, logged-in device.

        Connections run in the background, started a short delay apart so
        the gateway is not hit all at once.

        Returns:
            Number of devices scheduled
        """
        try:
            devices = await device_service.get_all_devices(logged_in_only=True)
        except Exception as e:
            logger.error(f"❌ Could not load sessions: {e}")
            return 0

        logger.info(f"🤖 Found {len(devices)} sessions in database. Loading...")

        for index, device in enumerate(devices):
            if index:
                await asyncio.sleep(settings.SESSION_STARTUP_DELAY_SECONDS)
            self._spawn(self.connect_session(device))

        return len(devices)

    async def connect_session(self, device: dict) -> Optional[WhatsAppClient]:
        """
        Connects one stored device and registers it as active.

        Returns:
            The client, or None if already active or the connect failed
        """
        clean_number = clean_id(device.get("jid") or "")
        if not clean_number:
            return None

        if await self.is_active(clean_number):
            return None

        client = self.api.client(device["session_id"], jid=device.get("jid"))
        client.lid = device.get("lid")

        try:
            await client.connect()
        except GatewayError as e:
            logger.error(f"❌ Failed to connect {clean_number}: {e.message}")
            return None

        async with self._lock:
            if clean_number in self._clients:
                await client.disconnect()
                return None
            self._clients[clean_number] = client

        logger.info(f"✅ [LOADED] Session: {clean_number}")
        return client

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    async def pair(self, raw_number: str) -> Tuple[str, str]:
        """
        Links a phone number to a new session.

        Any existing session and stored device for the number is removed
        first. The returned code is typed into WhatsApp on the phone; login
        is awaited in the background.

        Args:
            raw_number: Number as typed ("+92 300-1234567")

        Returns:
            (pairing code, clean number)

        Raises:
            PairingError: If the gateway cannot connect or issue a code
        """
        number = normalize_phone_number(raw_number)
        clean_number = clean_id(number)

        with LogContext(jid=clean_number):
            logger.info(f"📱 [PAIRING] Request for: {clean_number}")

            await self._drop_session(clean_number)
            await self._delete_stored_devices(clean_number)

            try:
                session_id = await self.api.create_session()
            except GatewayError as e:
                raise PairingError(f"Connect failed: {e.message}")

            await device_service.create_device(session_id)
            client = self.api.client(session_id)
            try:
                await client.connect()
            except GatewayError as e:
                await self._delete_device(session_id)
                raise PairingError(f"Connect failed: {e.message}")

            try:
                code = await client.pair_phone(
                    number,
                    show_push_notification=True,
                    client_display_name=settings.PAIR_CLIENT_DISPLAY_NAME,
                )
            except GatewayError as e:
                await client.disconnect()
                await self._delete_device(session_id)
                raise PairingError(f"Pairing failed: {e.message}")

            self._spawn(self.wait_for_login(client, clean_number))
            return code, clean_number

    async def wait_for_login(
        self,
        client: WhatsAppClient,
        clean_number: str,
        timeout_seconds: Optional[int] = None,
        poll_interval: float = 1.0,
    ) -> bool:
        """
        Polls the session until the phone confirms the pairing code.

        Returns:
            True if the session logged in before the timeout
        """
        attempts = timeout_seconds if timeout_seconds is not None else settings.PAIRING_TIMEOUT_SECONDS

        for _ in range(attempts):
            await asyncio.sleep(poll_interval)
            try:
                status = await client.get_status()
            except GatewayError as e:
                logger.debug(f"Pairing status check failed for {clean_number}: {e.message}")
                continue

            if status.jid:
                await device_service.record_login(client.session_id, status.jid, status.lid)
                async with self._lock:
                    self._clients[clean_number] = client
                logger.info(f"🎉 [SUCCESS] {clean_number} Paired Successfully!")
                self.resolver.refresh()
                return True

        logger.info(f"⌛ Pairing timed out for {clean_number}")
        await client.disconnect()
        await self._delete_device(client.session_id)
        return False

    async def _drop_session(self, clean_number: str) -> None:
        async with self._lock:
            client = self._clients.pop(clean_number, None)
        if client:
            await client.disconnect()

    async def _delete_stored_devices(self, clean_number: str) -> None:
        devices = await device_service.get_all_devices(logged_in_only=True)
        for device in devices:
            if clean_id(device.get("jid") or "") == clean_number:
                await self._delete_device(device["session_id"])

    async def _delete_device(self, session_id: str) -> None:
        try:
            await self.api.delete_session(session_id)
        except GatewayError as e:
            logger.warning(f"Gateway could not delete session {session_id}: {e.message}")
        await device_service.delete_device(session_id)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def delete_all_sessions(self) -> int:
        """
        Disconnects every session and deletes every stored device.

        Returns:
            Number of stored devices deleted
        """
        async with self._lock:
            clients = list(self._clients.values())
            self._clients = {}

            for client in clients:
                await client.disconnect()

            devices = await device_service.get_all_devices(logged_in_only=False)
            for device in devices:
                await self._delete_device(device["session_id"])

        logger.info(f"🗑️ Deleted {len(devices)} sessions")
        return len(devices)

    async def disconnect_all(self) -> None:
        """Shutdown helper: disconnects without touching stored devices."""
        for task in list(self._tasks):
            task.cancel()

        async with self._lock:
            clients = list(self._clients.values())
            self._clients = {}

        for client in clients:
            await client.disconnect()


# Singleton instance
session_manager = SessionManager()
