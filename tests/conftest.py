"""Shared fixtures: deterministic stores and an in-memory document API."""

import json
import random
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx
import pytest

# ---------------------------------------------------------------------------
# Ensure the project root is importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from mindcanvas.config import ClientConfig
from mindcanvas.database import Database
from mindcanvas.graph import GraphStore
from mindcanvas.session import Session, SessionManager

API_URL = "http://docs.test/api"
VALID_TOKEN = "token-alice"


class FakeDocumentAPI:
    """Just enough of the mind map REST API to exercise the gateway."""

    def __init__(self, valid_tokens=(VALID_TOKEN,)):
        self.valid_tokens = set(valid_tokens)
        self.docs: Dict[str, dict] = {}
        self.requests: List[httpx.Request] = []
        self._next_id = 1
        self._clock = 0
        # Returns a Response to short-circuit the next request
        self.override: Optional[Callable[[httpx.Request], Optional[httpx.Response]]] = None
        self.before_response: Optional[Callable[[httpx.Request], None]] = None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _tick(self) -> str:
        self._clock += 1
        return f"2026-01-01T00:00:{self._clock:02d}.000Z"

    def add_doc(self, title: str, nodes: list, connections: list, view=None) -> dict:
        doc_id = f"m{self._next_id}"
        self._next_id += 1
        now = self._tick()
        doc = {
            "_id": doc_id,
            "user": "alice",
            "title": title,
            "nodes": nodes,
            "connections": connections,
            "viewState": view or {"translateX": 0, "translateY": 0},
            "createdAt": now,
            "updatedAt": now,
        }
        self.docs[doc_id] = doc
        return doc

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._respond(request)
        if self.before_response:
            self.before_response(request)
        return response

    def _respond(self, request: httpx.Request) -> httpx.Response:
        if self.override:
            forced = self.override(request)
            if forced is not None:
                return forced

        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer ") or auth[len("Bearer "):] not in self.valid_tokens:
            return httpx.Response(401, json={"message": "Not authorized, token failed"})

        parts = [p for p in request.url.path.split("/") if p]
        # ['api', 'mindmaps', <id>?]
        doc_id = parts[2] if len(parts) > 2 else None

        if request.method == "GET" and doc_id is None:
            docs = sorted(self.docs.values(), key=lambda d: d["updatedAt"], reverse=True)
            return httpx.Response(200, json=docs)

        if request.method == "POST" and doc_id is None:
            body = json.loads(request.content)
            doc = self.add_doc(body.get("title", ""), body.get("nodes", []),
                               body.get("connections", []), body.get("viewState"))
            return httpx.Response(201, json=doc)

        if doc_id not in self.docs:
            return httpx.Response(404, json={"message": "Mind map not found"})

        if request.method == "GET":
            return httpx.Response(200, json=self.docs[doc_id])
        if request.method == "PUT":
            body = json.loads(request.content)
            doc = self.docs[doc_id]
            doc.update({k: body[k] for k in ("title", "nodes", "connections", "viewState") if k in body})
            doc["updatedAt"] = self._tick()
            return httpx.Response(200, json=doc)
        if request.method == "DELETE":
            del self.docs[doc_id]
            return httpx.Response(200, json={"message": "Mind map removed"})

        return httpx.Response(405, json={"message": "Method not allowed"})


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store(rng):
    return GraphStore(rng=rng)


@pytest.fixture
def config(tmp_path):
    return ClientConfig(api_url=API_URL, auth_url="http://auth.test", auth_key="anon-key",
                        timeout=5.0, data_dir=tmp_path)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "mindcanvas.db")
    yield database
    database.close()


@pytest.fixture
def sessions(db):
    return SessionManager(db)


@pytest.fixture
def alice():
    return Session(token=VALID_TOKEN, user_id="alice", email="alice@example.com")


@pytest.fixture
def api():
    return FakeDocumentAPI()
