"""Login against the Supabase GoTrue REST API."""

import logging
from typing import Optional, Dict, Any

import httpx

from mindcanvas.config import ClientConfig
from mindcanvas.session import Session

logger = logging.getLogger("mindcanvas.auth")


class AuthError(Exception):
    """Sign-in or sign-up failed; the message is safe to show to the user."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class AuthClient:
    """Exchanges e-mail and password for a Session."""

    def __init__(self, config: ClientConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    async def sign_in(self, email: str, password: str) -> Session:
        body = await self._post("/auth/v1/token", {"email": email, "password": password},
                                params={"grant_type": "password"})
        session = self._session_from(body)
        if session is None:
            raise AuthError("Login response did not contain a session")
        return session

    async def sign_up(self, email: str, password: str) -> Optional[Session]:
        """Register; returns None when the account still needs e-mail confirmation."""
        body = await self._post("/auth/v1/signup", {"email": email, "password": password})
        return self._session_from(body)

    # ==================== Internals ====================

    async def _post(self, path: str, payload: Dict[str, Any],
                    params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        if not self.config.auth_enabled:
            raise AuthError("Login is not configured (set MINDCANVAS_AUTH_URL)")

        headers = {"apikey": self.config.auth_key, "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(base_url=self.config.auth_url,
                                         timeout=self.config.timeout,
                                         transport=self._transport) as client:
                response = await client.post(path, json=payload, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Auth request to %s failed: %s", path, exc)
            raise AuthError(f"Could not reach the login service: {exc}") from exc

        if response.status_code >= 400:
            raise AuthError(_error_message(response), response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise AuthError("Login service returned an invalid response") from exc
        if not isinstance(body, dict):
            raise AuthError("Login service returned an invalid response")
        return body

    @staticmethod
    def _session_from(body: Dict[str, Any]) -> Optional[Session]:
        token = body.get("access_token")
        user = body.get("user") or {}
        if not token or not isinstance(user, dict) or not user.get("id"):
            return None
        return Session(token=token, user_id=str(user["id"]), email=str(user.get("email") or ""))
