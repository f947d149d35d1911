"""
app/services/otp_monitor.py

Purpose: OTP polling and broadcast loop

- Polls every configured SMS panel endpoint, one after another
- Parses the DataTables-style {"aaData": [[time, country, phone, service, message], ...]}
- Broadcasts each unseen OTP to every ready session's channels
- Marks the row as sent whatever the delivery outcome

Fetch and decode failures skip the endpoint for this round; send failures
are logged. Nothing is retried.
"""

import asyncio
import httpx
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import GatewayError
from app.core.logging import get_logger, LogContext
from app.services.dedup_service import build_message_id, is_otp_sent, mark_otp_sent
from app.services.session_manager import SessionManager, session_manager
from app.services.settings_service import get_user_settings
from app.services.whatsapp_client import WhatsAppClient
from utils.constants import OTP_NOTIFICATION_TEMPLATE, NOTIFICATION_FOOTER
from utils.countries import get_country_with_flag
from utils.otp_utils import (
    as_text,
    clean_country_name,
    extract_otp,
    flatten_message,
    mask_phone_number,
)

logger = get_logger(__name__)

MIN_ROW_FIELDS = 5


@dataclass
class OTPRecord:
    """One row of an SMS panel table."""
    time: str
    country: str
    phone: str
    service: str
    message: str

    @classmethod
    def from_row(cls, row: Any) -> Optional["OTPRecord"]:
        """
        Builds a record from a raw table row.

        Returns:
            None for non-list rows and rows with fewer than five fields
        """
        if not isinstance(row, list) or len(row) < MIN_ROW_FIELDS:
            return None
        return cls(*(as_text(value) for value in row[:MIN_ROW_FIELDS]))

    @property
    def message_id(self) -> str:
        return build_message_id(self.phone, self.time)


def format_message(
    flag: str,
    service: str,
    api_index: int,
    raw_time: str,
    country: str,
    phone: str,
    otp: str,
    full_message: str,
    link: str,
) -> str:
    """Renders the broadcast text for one OTP and one user's footer link."""
    return OTP_NOTIFICATION_TEMPLATE.format(
        flag=flag,
        service_upper=service.upper(),
        api_index=api_index,
        time=raw_time,
        country=country,
        phone=phone,
        service=service,
        otp=otp,
        link=link,
        message=full_message,
        footer=NOTIFICATION_FOOTER,
    )


def parse_rows(payload: Any) -> List[Any]:
    """
    Extracts the aaData table from a decoded response.

    Returns:
        The row list, or [] when the payload does not have the expected shape
    """
    if not isinstance(payload, dict):
        return []
    rows = payload.get("aaData")
    if not isinstance(rows, list):
        return []
    return rows


class OTPMonitor:
    """
    Background poller. One instance runs for the application lifetime.
    """

    def __init__(
        self,
        urls: Optional[List[str]] = None,
        interval: Optional[float] = None,
        sessions: Optional[SessionManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.urls = list(urls) if urls is not None else list(settings.OTP_API_URLS)
        self.interval = interval if interval is not None else settings.OTP_POLL_INTERVAL_SECONDS
        self.sessions = sessions or session_manager
        self._transport = transport
        self._task: Optional[asyncio.Task] = None

    async def run(self):
        """Polls forever; cancel the task to stop."""
        logger.info("👀 OTP Monitor Started...")
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    async def poll_once(self) -> int:
        """
        Runs one round over every endpoint.

        Returns:
            Number of OTPs broadcast in this round
        """
        broadcast = 0
        for index, url in enumerate(self.urls, start=1):
            try:
                broadcast += await self.process_api(url, index)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"API {index} processing failed: {e}", exc_info=True)
        return broadcast

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def fetch_rows(self, url: str) -> List[Any]:
        """
        Downloads one endpoint's table.

        Returns:
            Table rows, or [] on any network, status or decode failure
        """
        try:
            async with httpx.AsyncClient(
                timeout=settings.OTP_FETCH_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Skipping {url}: {e}")
            return []

        return parse_rows(payload)

    async def process_api(self, url: str, api_index: int) -> int:
        """
        Broadcasts every unseen OTP from one endpoint.

        Session readiness is checked once, when the first unseen row shows
        up, and reused for the rest of the round.

        Returns:
            Number of OTPs broadcast
        """
        rows = await self.fetch_rows(url)
        broadcast = 0
        ready: Optional[List[Tuple[str, WhatsAppClient]]] = None

        with LogContext(api_index=api_index):
            for row in rows:
                record = OTPRecord.from_row(row)
                if record is None:
                    continue
                if record.phone in ("", "0"):
                    continue

                msg_id = record.message_id
                if await is_otp_sent(msg_id):
                    continue

                if ready is None:
                    ready = await self.ready_sessions()

                await self.broadcast(record, api_index, ready)
                await mark_otp_sent(msg_id)
                broadcast += 1
                logger.info(f"✅ [Broadcast] API {api_index}: {record.phone}")

        return broadcast

    async def ready_sessions(self) -> List[Tuple[str, WhatsAppClient]]:
        """Snapshot of the sessions that are connected and logged in."""
        snapshot = await self.sessions.active_sessions()
        flags = await asyncio.gather(*(client.is_ready() for _, client in snapshot))
        return [entry for entry, ready in zip(snapshot, flags) if ready]

    async def broadcast(
        self,
        record: OTPRecord,
        api_index: int,
        ready: Optional[List[Tuple[str, WhatsAppClient]]] = None,
    ) -> int:
        """
        Sends one OTP to every channel of every ready session.

        A failure for one user is logged and does not stop the others.

        Returns:
            Number of messages successfully delivered
        """
        if ready is None:
            ready = await self.ready_sessions()

        country = clean_country_name(record.country)
        flag = get_country_with_flag(country)
        otp = extract_otp(record.message)
        masked_phone = mask_phone_number(record.phone)
        flat_message = flatten_message(record.message)

        delivered = 0
        for jid, client in ready:
            try:
                user_settings = await get_user_settings(jid)
                if not user_settings.channels:
                    continue

                body = format_message(
                    flag, record.service, api_index, record.time, country,
                    masked_phone, otp, flat_message, user_settings.custom_link,
                ).strip()

                results = await asyncio.gather(
                    *(self._send(client, channel, body) for channel in user_settings.channels)
                )
                delivered += sum(results)
            except Exception as e:
                logger.error(f"❌ Broadcast to {jid} failed: {e}", exc_info=True)

        return delivered

    async def _send(self, client: WhatsAppClient, channel: str, body: str) -> bool:
        try:
            await client.send_text(channel, body)
        except GatewayError as e:
            logger.error(f"❌ Send to {channel} via {client.session_id} failed: {e.message}")
            return False
        return True


# Singleton instance
otp_monitor = OTPMonitor()
