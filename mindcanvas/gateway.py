"""Persistence gateway between the GraphStore and the document API.

All operations are explicit and user-triggered. They return a
``GatewayResult`` and never raise for transport, HTTP or parse failures.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Any, Dict

import httpx

from mindcanvas.config import ClientConfig
from mindcanvas.graph import GraphStore
from mindcanvas.model import MindMap, MapSummary
from mindcanvas.session import Session, SessionManager

logger = logging.getLogger("mindcanvas.gateway")

MSG_SAVED = "Mind map saved successfully!"
MSG_LOADED = "Mind map loaded"
MSG_DELETED = "Mind map deleted"
MSG_NOT_FOUND = "No mind map found"
MSG_UNAUTHORIZED = "Session expired or unauthorized. Please log in again."
MSG_LOGIN_TO_SAVE = "Please log in to save your mind map."
MSG_LOGIN_TO_LOAD = "Please log in to load a mind map."
MSG_LOGIN_TO_LIST = "Please log in to see your mind maps."
MSG_LOGIN_TO_DELETE = "Please log in to delete a mind map."
MSG_DISCARDED = "Response ignored: the session changed while it was in flight"


class ResultStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    ERROR = "error"
    NO_SESSION = "no_session"
    DISCARDED = "discarded"


@dataclass
class GatewayResult:
    status: ResultStatus
    message: str = ""
    map_id: Optional[str] = None
    maps: List[MapSummary] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK


class GatewayError(Exception):
    """Non-2xx response or unusable body from the document API."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(GatewayError):
    """401: the bearer credential is no longer accepted."""


class NotFoundError(GatewayError):
    """404: no such map (or none yet for this user)."""


class _Superseded(Exception):
    """The session changed while a request was in flight."""


def _server_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


class MindMapGateway:
    """Save, load, list and delete mind maps for the current session."""

    def __init__(self, store: GraphStore, sessions: SessionManager, config: ClientConfig,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.store = store
        self.sessions = sessions
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.timeout,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    # ==================== Operations ====================

    async def save(self) -> GatewayResult:
        """Insert or update the open map; adopt the server's id and title."""
        session = self.sessions.current
        if session is None:
            return GatewayResult(ResultStatus.NO_SESSION, MSG_LOGIN_TO_SAVE)

        generation = self.sessions.generation
        snapshot = self.store.to_mind_map()
        if snapshot.id:
            method, url = "PUT", f"/mindmaps/{snapshot.id}"
        else:
            method, url = "POST", "/mindmaps"

        try:
            body = await self._request(session, generation, method, url, json=snapshot.to_payload())
            saved = MindMap.from_dict(body)
        except _Superseded:
            return self._discarded("save")
        except UnauthorizedError:
            return self._unauthorized()
        except GatewayError as exc:
            return self._failed("save", str(exc))
        except httpx.HTTPError as exc:
            return self._failed("save", f"Network error: {exc}")
        except (ValueError, KeyError, TypeError) as exc:
            return self._failed("save", f"Unexpected response: {exc}")

        map_id = saved.id or snapshot.id
        if not map_id:
            return self._failed("save", "Unexpected response: no map id")
        self.store.adopt_saved(map_id, saved.title)
        logger.info("Saved map %s (%d nodes)", map_id, len(snapshot.nodes))
        return GatewayResult(ResultStatus.OK, MSG_SAVED, map_id=map_id)

    async def load(self, map_id: Optional[str] = None) -> GatewayResult:
        """Replace the store with a server map; the most recent one when map_id is None."""
        session = self.sessions.current
        if session is None:
            return GatewayResult(ResultStatus.NO_SESSION, MSG_LOGIN_TO_LOAD)

        generation = self.sessions.generation
        try:
            if map_id is None:
                body = await self._request(session, generation, "GET", "/mindmaps")
                docs = body if isinstance(body, list) else [body]
                docs = [d for d in docs if d]
                if not docs:
                    raise NotFoundError(MSG_NOT_FOUND, 404)
                mind_map = MindMap.from_dict(docs[0])
            else:
                body = await self._request(session, generation, "GET", f"/mindmaps/{map_id}")
                mind_map = MindMap.from_dict(body)
        except _Superseded:
            return self._discarded("load")
        except UnauthorizedError:
            return self._unauthorized()
        except NotFoundError:
            self.store.reset()
            return GatewayResult(ResultStatus.NOT_FOUND, MSG_NOT_FOUND)
        except GatewayError as exc:
            return self._failed("load", str(exc))
        except httpx.HTTPError as exc:
            return self._failed("load", f"Network error: {exc}")
        except (ValueError, KeyError, TypeError) as exc:
            return self._failed("load", f"Unexpected response: {exc}")

        self.store.replace(mind_map)
        logger.info("Loaded map %s (%d nodes)", mind_map.id, len(mind_map.nodes))
        return GatewayResult(ResultStatus.OK, MSG_LOADED, map_id=mind_map.id)

    async def list_maps(self) -> GatewayResult:
        session = self.sessions.current
        if session is None:
            return GatewayResult(ResultStatus.NO_SESSION, MSG_LOGIN_TO_LIST)

        generation = self.sessions.generation
        try:
            body = await self._request(session, generation, "GET", "/mindmaps")
            if not isinstance(body, list):
                raise TypeError("expected a list of maps")
            maps = [MapSummary.from_dict(d) for d in body]
        except _Superseded:
            return self._discarded("list")
        except UnauthorizedError:
            return self._unauthorized()
        except NotFoundError:
            return GatewayResult(ResultStatus.OK, "", maps=[])
        except GatewayError as exc:
            return self._failed("list", str(exc))
        except httpx.HTTPError as exc:
            return self._failed("list", f"Network error: {exc}")
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            return self._failed("list", f"Unexpected response: {exc}")

        return GatewayResult(ResultStatus.OK, "", maps=maps)

    async def delete_map(self, map_id: str) -> GatewayResult:
        session = self.sessions.current
        if session is None:
            return GatewayResult(ResultStatus.NO_SESSION, MSG_LOGIN_TO_DELETE)

        generation = self.sessions.generation
        try:
            await self._request(session, generation, "DELETE", f"/mindmaps/{map_id}",
                                expect_body=False)
        except _Superseded:
            return self._discarded("delete")
        except UnauthorizedError:
            return self._unauthorized()
        except NotFoundError:
            return GatewayResult(ResultStatus.NOT_FOUND, MSG_NOT_FOUND, map_id=map_id)
        except GatewayError as exc:
            return self._failed("delete", str(exc))
        except httpx.HTTPError as exc:
            return self._failed("delete", f"Network error: {exc}")

        if self.store.map_id == map_id:
            # The open map no longer exists remotely; the next save inserts
            self.store.map_id = None
        logger.info("Deleted map %s", map_id)
        return GatewayResult(ResultStatus.OK, MSG_DELETED, map_id=map_id)

    # ==================== Internals ====================

    async def _request(self, session: Session, generation: int, method: str, url: str,
                       json: Optional[Dict[str, Any]] = None, expect_body: bool = True) -> Any:
        headers = {"Authorization": f"Bearer {session.token}"}
        try:
            response = await self._client.request(method, url, json=json, headers=headers)
        except httpx.HTTPError:
            if not self.sessions.is_current(generation):
                raise _Superseded()
            raise

        if not self.sessions.is_current(generation):
            raise _Superseded()

        if response.status_code == 401:
            raise UnauthorizedError(MSG_UNAUTHORIZED, 401)
        if response.status_code == 404:
            raise NotFoundError(_server_message(response), 404)
        if response.status_code >= 400:
            raise GatewayError(_server_message(response), response.status_code)

        # DELETE acknowledgements vary (JSON, plain text, empty)
        if not expect_body or response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _unauthorized(self) -> GatewayResult:
        logger.warning("Document API rejected the session; logging out")
        self.sessions.end("unauthorized")
        self.store.reset()
        return GatewayResult(ResultStatus.UNAUTHORIZED, MSG_UNAUTHORIZED)

    def _discarded(self, operation: str) -> GatewayResult:
        logger.info("Discarding late %s response after session change", operation)
        return GatewayResult(ResultStatus.DISCARDED, MSG_DISCARDED)

    def _failed(self, operation: str, message: str) -> GatewayResult:
        logger.warning("Failed to %s mind map: %s", operation, message)
        return GatewayResult(ResultStatus.ERROR, message)
