"""Tests for AuthClient against a mocked GoTrue endpoint."""

import json

import httpx
import pytest

from mindcanvas.auth import AuthClient, AuthError
from mindcanvas.config import ClientConfig


def gotrue(handler_calls):
    def handler(request: httpx.Request) -> httpx.Response:
        handler_calls.append(request)
        body = json.loads(request.content)
        if request.url.path == "/auth/v1/token":
            if body["password"] != "hunter2":
                return httpx.Response(400, json={"error": "invalid_grant",
                                                 "error_description": "Invalid login credentials"})
            return httpx.Response(200, json={
                "access_token": "jwt-123",
                "token_type": "bearer",
                "user": {"id": "u-1", "email": body["email"]},
            })
        if request.url.path == "/auth/v1/signup":
            # Confirmation e-mail pending: user but no session
            return httpx.Response(200, json={"id": "u-2", "email": body["email"]})
        return httpx.Response(404, json={"msg": "not found"})
    return httpx.MockTransport(handler)


@pytest.fixture
def calls():
    return []


@pytest.fixture
def auth(config, calls):
    return AuthClient(config, transport=gotrue(calls))


class TestSignIn:

    @pytest.mark.asyncio
    async def test_success(self, auth, calls):
        session = await auth.sign_in("alice@example.com", "hunter2")
        assert session.token == "jwt-123"
        assert session.user_id == "u-1"
        assert session.email == "alice@example.com"

        request = calls[0]
        assert request.url.params["grant_type"] == "password"
        assert request.headers["apikey"] == "anon-key"

    @pytest.mark.asyncio
    async def test_bad_password_uses_error_description(self, auth):
        with pytest.raises(AuthError) as excinfo:
            await auth.sign_in("alice@example.com", "wrong")
        assert str(excinfo.value) == "Invalid login credentials"
        assert excinfo.value.status_code == 400

    @pytest.mark.asyncio
    async def test_not_configured(self, calls):
        client = AuthClient(ClientConfig(auth_url=""), transport=gotrue(calls))
        with pytest.raises(AuthError):
            await client.sign_in("a@b.c", "hunter2")
        assert calls == []

    @pytest.mark.asyncio
    async def test_network_error(self, config):
        def broken(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client = AuthClient(config, transport=httpx.MockTransport(broken))
        with pytest.raises(AuthError) as excinfo:
            await client.sign_in("a@b.c", "hunter2")
        assert "timed out" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_response_without_session(self, config):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"user": {"id": "u"}}))
        client = AuthClient(config, transport=transport)
        with pytest.raises(AuthError):
            await client.sign_in("a@b.c", "x")


class TestSignUp:

    @pytest.mark.asyncio
    async def test_pending_confirmation_returns_none(self, auth, calls):
        assert await auth.sign_up("new@example.com", "secret") is None
        assert calls[0].url.path == "/auth/v1/signup"

    @pytest.mark.asyncio
    async def test_immediate_session(self, config):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={
            "access_token": "jwt-9", "user": {"id": "u-9", "email": "n@e.w"},
        }))
        session = await AuthClient(config, transport=transport).sign_up("n@e.w", "pw")
        assert session.token == "jwt-9"
