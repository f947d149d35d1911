"""Pytest configuration and common fixtures."""

import copy
import json
import os
from itertools import count
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

# Settings are read at import time; keep tests independent of a local .env
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("OTP_MONITOR_ENABLED", "false")

import httpx
import pytest
from pymongo.errors import DuplicateKeyError

import app.db.mongo as mongo
from app.services.whatsapp_client import GatewayAPI


# ----------------------------------------------------------------------
# In-memory MongoDB collection
# ----------------------------------------------------------------------


def _matches_value(stored: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$ne":
                if isinstance(stored, list):
                    if operand in stored:
                        return False
                elif stored == operand:
                    return False
            elif op == "$nin":
                if isinstance(stored, list):
                    if any(item in operand for item in stored):
                        return False
                elif stored in operand:
                    return False
            else:
                raise NotImplementedError(op)
        return True
    if isinstance(stored, list) and not isinstance(condition, list):
        return condition in stored
    return stored == condition


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(_matches_value(doc.get(key), cond) for key, cond in query.items())


class FakeCollection:
    """
    Just enough of the motor collection API for the services under test,
    including unique-index enforcement.
    """

    def __init__(self, unique: Optional[List[str]] = None):
        self.docs: List[Dict[str, Any]] = []
        self.unique = unique or []
        self._ids = count(1)

    def _check_unique(self, candidate: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None):
        for key in self.unique:
            for doc in self.docs:
                if doc is ignore:
                    continue
                if key in candidate and doc.get(key) == candidate[key]:
                    raise DuplicateKeyError(f"E11000 duplicate key error: {key}")

    async def find_one(self, query: Dict[str, Any], projection: Optional[Dict[str, Any]] = None):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: Optional[Dict[str, Any]] = None):
        matched = [copy.deepcopy(d) for d in self.docs if _matches(d, query or {})]

        async def iterate():
            for doc in matched:
                yield doc

        return iterate()

    async def insert_one(self, document: Dict[str, Any]):
        self._check_unique(document)
        document.setdefault("_id", next(self._ids))
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                self._apply(doc, update, inserting=False)
                return SimpleNamespace(
                    matched_count=1,
                    modified_count=int(before != doc),
                    upserted_id=None,
                )

        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

        new_doc = {
            key: value for key, value in query.items()
            if not (isinstance(value, dict) and any(k.startswith("$") for k in value))
        }
        self._apply(new_doc, update, inserting=True)
        self._check_unique(new_doc)
        new_doc["_id"] = next(self._ids)
        self.docs.append(new_doc)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=new_doc["_id"])

    def _apply(self, doc: Dict[str, Any], update: Dict[str, Any], inserting: bool):
        for op, fields in update.items():
            for key, value in fields.items():
                if op == "$set":
                    doc[key] = copy.deepcopy(value)
                elif op == "$setOnInsert":
                    if inserting:
                        doc[key] = copy.deepcopy(value)
                elif op == "$push":
                    doc.setdefault(key, []).append(value)
                elif op == "$addToSet":
                    items = doc.setdefault(key, [])
                    if value not in items:
                        items.append(value)
                elif op == "$pull":
                    doc[key] = [item for item in doc.get(key, []) if item != value]
                else:
                    raise NotImplementedError(op)

    async def delete_one(self, query: Dict[str, Any]):
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, query: Dict[str, Any]):
        return sum(1 for doc in self.docs if _matches(doc, query))


class FakeDatabase(dict):
    pass


@pytest.fixture
def fake_db(monkeypatch):
    """Replaces the MongoDB database with in-memory collections."""
    database = FakeDatabase({
        mongo.USER_SETTINGS_COLLECTION: FakeCollection(unique=["jid"]),
        mongo.SENT_HISTORY_COLLECTION: FakeCollection(unique=["msg_id"]),
        mongo.DEVICES_COLLECTION: FakeCollection(unique=["session_id"]),
    })
    monkeypatch.setattr(mongo, "_database", database)
    return database


# ----------------------------------------------------------------------
# Fake WhatsApp gateway
# ----------------------------------------------------------------------


class FakeGateway:
    """
    Scriptable gateway behind httpx.MockTransport.

    Each session is a dict of its status fields; sent messages and
    requests are recorded for assertions.
    """

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.sent: List[Dict[str, str]] = []
        self.requests: List[str] = []
        self.fail: Dict[str, int] = {}
        self.pair_code = "ABCD-1234"
        self._ids = count(1)

    def add_session(self, session_id: str, jid: Optional[str] = None, lid: Optional[str] = None,
                    connected: bool = True, logged_in: bool = True):
        self.sessions[session_id] = {
            "connected": connected,
            "logged_in": logged_in,
            "jid": jid,
            "lid": lid,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(f"{request.method} {path}")

        for suffix, status in self.fail.items():
            if path.endswith(suffix):
                return httpx.Response(status, json={"error": f"forced failure on {suffix}"})

        parts = path.strip("/").split("/")

        if request.method == "POST" and parts == ["sessions"]:
            session_id = f"s{next(self._ids)}"
            self.add_session(session_id, connected=False, logged_in=False)
            return httpx.Response(201, json={"session_id": session_id})

        if len(parts) < 2 or parts[1] not in self.sessions:
            return httpx.Response(404, json={"error": "unknown session"})

        session = self.sessions[parts[1]]

        if request.method == "DELETE" and len(parts) == 2:
            del self.sessions[parts[1]]
            return httpx.Response(204)

        action = parts[2] if len(parts) > 2 else ""
        if action == "connect":
            session["connected"] = True
            return httpx.Response(200, json={"connected": True})
        if action == "disconnect":
            session["connected"] = False
            return httpx.Response(200, json={"connected": False})
        if action == "status":
            return httpx.Response(200, json=session)
        if action == "pair":
            return httpx.Response(200, json={"code": self.pair_code})
        if action == "messages":
            body = json.loads(request.content)
            self.sent.append({"session_id": parts[1], **body})
            return httpx.Response(200, json={"id": f"m{len(self.sent)}"})

        return httpx.Response(404, json={"error": "unknown route"})


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def gateway_api(fake_gateway):
    return GatewayAPI(
        base_url="http://gateway.test",
        token="test-token",
        timeout=1.0,
        transport=httpx.MockTransport(fake_gateway.handler),
    )
