"""Tests for session bookkeeping, pairing and teardown."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import settings
from app.core.exceptions import PairingError
from app.services import device_service
from app.services.session_manager import SessionManager

OWNER_JID = "923001234567:4@s.whatsapp.net"
OWNER_LID = "111222333444555:4@lid"


@pytest.fixture
def resolver():
    return MagicMock()


@pytest.fixture
def manager(gateway_api, resolver):
    return SessionManager(api=gateway_api, resolver=resolver)


async def settle(manager):
    if manager._tasks:
        await asyncio.gather(*list(manager._tasks))


async def store_device(fake_db, session_id, jid=None, lid=None):
    await fake_db["devices"].insert_one({"session_id": session_id, "jid": jid, "lid": lid})


# ----------------------------------------------------------------------
# Startup
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_start_all_sessions_restores_logged_in_devices(fake_db, fake_gateway, manager, monkeypatch):
    monkeypatch.setattr(settings, "SESSION_STARTUP_DELAY_SECONDS", 0)
    fake_gateway.add_session("a", jid=OWNER_JID, connected=False)
    fake_gateway.add_session("b", jid="447700900123@s.whatsapp.net", connected=False)
    fake_gateway.add_session("c", connected=False, logged_in=False)
    await store_device(fake_db, "a", OWNER_JID, OWNER_LID)
    await store_device(fake_db, "b", "447700900123@s.whatsapp.net")
    await store_device(fake_db, "c")

    assert await manager.start_all_sessions() == 2
    await settle(manager)

    active = dict(await manager.active_sessions())
    assert sorted(active) == ["447700900123", "923001234567"]
    assert active["923001234567"].lid == OWNER_LID
    assert "POST /sessions/c/connect" not in fake_gateway.requests


@pytest.mark.asyncio
async def test_connect_session_failure_leaves_it_inactive(fake_db, fake_gateway, manager):
    fake_gateway.add_session("a", jid=OWNER_JID, connected=False)
    fake_gateway.fail["/connect"] = 503

    client = await manager.connect_session({"session_id": "a", "jid": OWNER_JID})

    assert client is None
    assert not await manager.is_active("923001234567")


@pytest.mark.asyncio
async def test_connect_session_skips_active_number(fake_db, fake_gateway, manager):
    fake_gateway.add_session("a", jid=OWNER_JID)
    fake_gateway.add_session("b", jid=OWNER_JID)

    first = await manager.connect_session({"session_id": "a", "jid": OWNER_JID})
    second = await manager.connect_session({"session_id": "b", "jid": OWNER_JID})

    assert first is not None
    assert second is None
    assert (await manager.get_by_session_id("a")) is first
    assert await manager.get_by_session_id("b") is None


# ----------------------------------------------------------------------
# Pairing
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_pair_returns_code_and_clean_number(fake_db, fake_gateway, manager, monkeypatch):
    watcher = AsyncMock(return_value=True)
    monkeypatch.setattr(manager, "wait_for_login", watcher)

    code, number = await manager.pair("+92 300-1234567")
    await settle(manager)

    assert (code, number) == ("ABCD-1234", "923001234567")
    assert "POST /sessions/s1/connect" in fake_gateway.requests
    assert "POST /sessions/s1/pair" in fake_gateway.requests
    assert fake_db["devices"].docs[0]["session_id"] == "s1"
    assert fake_db["devices"].docs[0]["jid"] is None
    watcher.assert_awaited_once()
    assert watcher.await_args.args[1] == "923001234567"


@pytest.mark.asyncio
async def test_pair_replaces_existing_session_for_number(fake_db, fake_gateway, manager, monkeypatch):
    monkeypatch.setattr(manager, "wait_for_login", AsyncMock(return_value=True))
    fake_gateway.add_session("old", jid=OWNER_JID)
    await store_device(fake_db, "old", OWNER_JID, OWNER_LID)
    await manager.connect_session({"session_id": "old", "jid": OWNER_JID})

    await manager.pair("923001234567")
    await settle(manager)

    assert not await manager.is_active("923001234567")
    assert "POST /sessions/old/disconnect" in fake_gateway.requests
    assert "DELETE /sessions/old" in fake_gateway.requests
    assert [d["session_id"] for d in fake_db["devices"].docs] == ["s1"]


@pytest.mark.asyncio
async def test_pair_connect_failure(fake_db, fake_gateway, manager):
    fake_gateway.fail["/connect"] = 500

    with pytest.raises(PairingError) as exc_info:
        await manager.pair("923001234567")

    assert exc_info.value.message.startswith("Connect failed")
    assert exc_info.value.status_code == 500
    assert manager._tasks == set()


@pytest.mark.asyncio
async def test_failed_pairings_leave_no_devices_behind(fake_db, fake_gateway, manager):
    fake_gateway.fail["/connect"] = 500

    for _ in range(3):
        with pytest.raises(PairingError):
            await manager.pair("923001234567")

    assert fake_db["devices"].docs == []
    assert fake_gateway.sessions == {}


@pytest.mark.asyncio
async def test_pair_code_failure_disconnects(fake_db, fake_gateway, manager):
    fake_gateway.fail["/pair"] = 400

    with pytest.raises(PairingError) as exc_info:
        await manager.pair("923001234567")

    assert exc_info.value.message.startswith("Pairing failed")
    assert "POST /sessions/s1/disconnect" in fake_gateway.requests
    assert manager._tasks == set()
    assert fake_db["devices"].docs == []
    assert fake_gateway.sessions == {}


@pytest.mark.asyncio
async def test_wait_for_login_registers_session(fake_db, fake_gateway, gateway_api, manager, resolver):
    fake_gateway.add_session("s9", jid=OWNER_JID, lid=OWNER_LID)
    await device_service.create_device("s9")
    client = gateway_api.client("s9")

    assert await manager.wait_for_login(client, "923001234567", timeout_seconds=3, poll_interval=0)

    assert await manager.get_by_session_id("s9") is client
    stored = await fake_db["devices"].find_one({"session_id": "s9"})
    assert stored["jid"] == OWNER_JID
    assert stored["lid"] == OWNER_LID
    assert stored["paired_at"] is not None
    resolver.refresh.assert_called_once()


@pytest.mark.asyncio
async def test_wait_for_login_times_out(fake_db, fake_gateway, gateway_api, manager, resolver):
    fake_gateway.add_session("s9", logged_in=False)
    await device_service.create_device("s9")
    client = gateway_api.client("s9")

    assert not await manager.wait_for_login(client, "923001234567", timeout_seconds=2, poll_interval=0)

    assert not await manager.is_active("923001234567")
    assert fake_gateway.requests.count("GET /sessions/s9/status") == 2
    assert fake_gateway.requests[-2:] == ["POST /sessions/s9/disconnect", "DELETE /sessions/s9"]
    assert fake_db["devices"].docs == []
    assert fake_gateway.sessions == {}
    resolver.refresh.assert_not_called()


# ----------------------------------------------------------------------
# Teardown
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_delete_all_sessions(fake_db, fake_gateway, manager):
    fake_gateway.add_session("a", jid=OWNER_JID)
    fake_gateway.add_session("b", logged_in=False)
    await store_device(fake_db, "a", OWNER_JID)
    await store_device(fake_db, "b")
    await manager.connect_session({"session_id": "a", "jid": OWNER_JID})

    assert await manager.delete_all_sessions() == 2

    assert await manager.active_sessions() == []
    assert fake_db["devices"].docs == []
    assert fake_gateway.sessions == {}


@pytest.mark.asyncio
async def test_delete_all_sessions_survives_gateway_errors(fake_db, fake_gateway, manager):
    await store_device(fake_db, "gone", OWNER_JID)

    assert await manager.delete_all_sessions() == 1

    assert fake_db["devices"].docs == []


@pytest.mark.asyncio
async def test_disconnect_all_keeps_stored_devices(fake_db, fake_gateway, manager):
    fake_gateway.add_session("a", jid=OWNER_JID)
    await store_device(fake_db, "a", OWNER_JID)
    await manager.connect_session({"session_id": "a", "jid": OWNER_JID})

    await manager.disconnect_all()

    assert await manager.active_sessions() == []
    assert fake_gateway.sessions["a"]["connected"] is False
    assert len(fake_db["devices"].docs) == 1


# ----------------------------------------------------------------------
# Background tasks
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_background_task_failures_are_logged(manager, caplog):
    caplog.set_level(logging.ERROR)

    async def failing_login():
        raise RuntimeError("store down")

    task = manager._spawn(failing_login())
    await asyncio.wait([task])
    await asyncio.sleep(0)

    assert manager._tasks == set()
    assert any("store down" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_cancelled_background_tasks_are_not_logged(manager, caplog):
    caplog.set_level(logging.ERROR)

    task = manager._spawn(asyncio.sleep(10))
    await asyncio.sleep(0)
    task.cancel()
    await asyncio.wait([task])
    await asyncio.sleep(0)

    assert caplog.records == []
