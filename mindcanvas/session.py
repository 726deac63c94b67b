"""Explicit login session and its single owner."""

import json
import logging
from dataclasses import dataclass
from typing import Optional, List, Callable, Dict, Any

logger = logging.getLogger("mindcanvas.session")

SESSION_KEY = "session"


@dataclass(frozen=True)
class Session:
    """Credential passed explicitly to every authenticated request."""
    token: str
    user_id: str
    email: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "user": {"id": self.user_id, "email": self.email}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        """Raises KeyError/TypeError/ValueError when token or user is missing."""
        token = data["token"]
        user = data["user"]
        if not token or not isinstance(token, str):
            raise ValueError("session without token")
        user_id = user["id"]
        if not user_id:
            raise ValueError("session without user id")
        return cls(token=token, user_id=str(user_id), email=str(user.get("email") or ""))


class SessionManager:
    """Owns the current Session; persists it in the settings table.

    ``generation`` increases on every begin/end so that work started under
    one session can tell it has been superseded.
    """

    def __init__(self, db=None):
        self._db = db
        self._current: Optional[Session] = None
        self._generation = 0

        # Observers
        self.on_started: List[Callable[[Session], None]] = []
        self.on_ended: List[Callable[[str], None]] = []

    @property
    def current(self) -> Optional[Session]:
        return self._current

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def restore(self) -> Optional[Session]:
        """Pick up a stored session at startup. A malformed blob is cleared."""
        if self._db is None:
            return None
        raw = self._db.get_raw_setting(SESSION_KEY)
        if raw is None:
            return None
        try:
            session = Session.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError):
            logger.warning("Stored session is malformed; clearing it")
            self._db.delete_setting(SESSION_KEY)
            return None

        self._current = session
        self._generation += 1
        logger.info("Restored session for %s", session.email or session.user_id)
        for callback in list(self.on_started):
            callback(session)
        return session

    def begin(self, session: Session):
        self._current = session
        self._generation += 1
        if self._db is not None:
            self._db.set_setting(SESSION_KEY, session.to_dict())
        logger.info("Session started for %s", session.email or session.user_id)
        for callback in list(self.on_started):
            callback(session)

    def end(self, reason: str = "logout"):
        had_session = self._current is not None
        self._current = None
        self._generation += 1
        if self._db is not None:
            self._db.delete_setting(SESSION_KEY)
        if had_session:
            logger.info("Session ended (%s)", reason)
        for callback in list(self.on_ended):
            callback(reason)
