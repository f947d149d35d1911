"""
app/services/whatsapp_client.py

Purpose: WhatsApp session client over the multi-device gateway

- One client per gateway session (linked device)
- Connect / disconnect / status / pairing code
- Sends plain text messages to users, groups and channels

The gateway owns the WhatsApp protocol state; this module only binds its
HTTP API.
"""

import httpx
from dataclasses import dataclass
from typing import Any, Dict, Optional
from app.core.config import settings
from app.core.exceptions import GatewayError
from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SessionStatus:
    """Gateway view of one session."""
    connected: bool = False
    logged_in: bool = False
    jid: Optional[str] = None
    lid: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SessionStatus":
        return cls(
            connected=bool(payload.get("connected")),
            logged_in=bool(payload.get("logged_in")),
            jid=payload.get("jid") or None,
            lid=payload.get("lid") or None,
        )


class GatewayAPI:
    """
    Thin HTTP binding for the gateway.

    A transport can be injected for tests (httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.WHATSAPP_GATEWAY_URL).rstrip("/")
        self.token = token if token is not None else settings.WHATSAPP_GATEWAY_TOKEN
        self.timeout = timeout or settings.WHATSAPP_GATEWAY_TIMEOUT
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Performs one gateway call.

        Returns:
            Decoded JSON body ({} for empty responses)

        Raises:
            GatewayError: On network failure, timeout or non-2xx status
        """
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method, url, json=json, headers=self._headers()
                )
        except httpx.TimeoutException as e:
            raise GatewayError(f"Gateway timeout on {method} {path}") from e
        except httpx.RequestError as e:
            raise GatewayError(f"Gateway unreachable: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            raise GatewayError(
                f"Gateway returned {response.status_code}: {detail}",
                details={"status": response.status_code, "path": path},
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"Gateway sent invalid JSON for {method} {path}") from e

    async def create_session(self) -> str:
        """Creates a fresh, unpaired device on the gateway."""
        payload = await self.request("POST", "/sessions")
        session_id = payload.get("session_id")
        if not session_id:
            raise GatewayError("Gateway did not return a session_id")
        return session_id

    async def delete_session(self, session_id: str) -> None:
        await self.request("DELETE", f"/sessions/{session_id}")

    def client(self, session_id: str, jid: Optional[str] = None) -> "WhatsAppClient":
        return WhatsAppClient(session_id, api=self, jid=jid)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)


class WhatsAppClient:
    """
    A single linked WhatsApp session.

    Mirrors the lifecycle of a multi-device client: connect, pair with a
    phone code, wait for login, send, disconnect.
    """

    def __init__(self, session_id: str, api: GatewayAPI, jid: Optional[str] = None):
        self.session_id = session_id
        self.api = api
        self.jid = jid
        self.lid: Optional[str] = None

    def __repr__(self) -> str:
        return f"<WhatsAppClient session={self.session_id} jid={self.jid}>"

    @property
    def _path(self) -> str:
        return f"/sessions/{self.session_id}"

    async def connect(self) -> None:
        await self.api.request("POST", f"{self._path}/connect")
        logger.debug(f"Session {self.session_id} connected")

    async def disconnect(self) -> None:
        """
        Disconnects the session. Failures are logged, not raised, since
        callers disconnect while tearing down.
        """
        try:
            await self.api.request("POST", f"{self._path}/disconnect")
        except GatewayError as e:
            logger.warning(f"Disconnect failed for session {self.session_id}: {e.message}")

    async def get_status(self) -> SessionStatus:
        payload = await self.api.request("GET", f"{self._path}/status")
        status = SessionStatus.from_payload(payload)
        if status.jid:
            self.jid = status.jid
        if status.lid:
            self.lid = status.lid
        return status

    async def is_ready(self) -> bool:
        """True when the session is connected and logged in."""
        try:
            status = await self.get_status()
        except GatewayError as e:
            logger.warning(f"Status check failed for session {self.session_id}: {e.message}")
            return False
        return status.connected and status.logged_in

    async def pair_phone(
        self,
        phone: str,
        show_push_notification: bool = True,
        client_display_name: Optional[str] = None,
    ) -> str:
        """
        Requests a phone pairing code (the 8-character code typed into
        WhatsApp > Linked devices > Link with phone number).
        """
        payload = await self.api.request(
            "POST",
            f"{self._path}/pair",
            json={
                "phone": phone,
                "show_push_notification": show_push_notification,
                "client_type": "chrome",
                "client_display_name": client_display_name or settings.PAIR_CLIENT_DISPLAY_NAME,
            },
        )
        code = payload.get("code")
        if not code:
            raise GatewayError("Gateway did not return a pairing code")
        return code

    async def send_text(self, to_jid: str, text: str) -> Dict[str, Any]:
        """
        Sends a plain conversation message.

        Args:
            to_jid: Recipient user, group (@g.us) or channel (@newsletter) JID
            text: Message body (WhatsApp markdown supported)
        """
        return await self.api.request(
            "POST",
            f"{self._path}/messages",
            json={"to": to_jid, "text": text},
        )


# Singleton instance
gateway_api = GatewayAPI()
