# tests/test_client.py
"""The async API client against a scripted transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from inkwell.client import ApiError, InkwellClient

USER = {
    "id": 1,
    "email": "alice@example.com",
    "username": "alice",
    "role": "user",
    "email_verified": False,
    "profile": {"display_name": "Alice"},
}


def _auth(access: str, refresh: str) -> dict:
    return {"access_token": access, "refresh_token": refresh, "token_type": "bearer", "user": USER}


def _error(status_code: int, message: str) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={
            "success": False,
            "error": {
                "code": "UNAUTHORIZED" if status_code == 401 else "BAD_REQUEST",
                "message": message,
                "statusCode": status_code,
                "timestamp": "2026-01-01T00:00:00+00:00",
                "path": "/",
            },
        },
    )


class FakeServer:
    """Accepts only the current access token and rotates refresh tokens once each."""

    def __init__(self) -> None:
        self.valid_access = "access-1"
        self.valid_refresh = {"refresh-1"}
        self.generation = 1
        self.refresh_calls = 0
        self.allow_refresh = True

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/v1/auth/login":
            return httpx.Response(200, json=_auth("access-1", "refresh-1"))
        if path == "/api/v1/auth/refresh":
            self.refresh_calls += 1
            token = json.loads(request.content)["refresh_token"]
            if not self.allow_refresh or token not in self.valid_refresh:
                return _error(401, "Invalid refresh token")
            self.valid_refresh.discard(token)
            self.generation += 1
            self.valid_access = f"access-{self.generation}"
            new_refresh = f"refresh-{self.generation}"
            self.valid_refresh.add(new_refresh)
            return httpx.Response(200, json=_auth(self.valid_access, new_refresh))
        if path == "/api/v1/comments/5":
            if request.headers.get("Authorization") != f"Bearer {self.valid_access}":
                return _error(401, "Could not validate credentials")
            return httpx.Response(200, json={"ok": True})
        if path == "/api/v1/posts/7/comments":
            return _error(400, "Maximum nesting level (3) reached")
        if path == "/health":
            return httpx.Response(503, json={"status": "error"})
        return httpx.Response(404)


@pytest.fixture()
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture()
async def api(server: FakeServer):
    client = InkwellClient("http://inkwell.test", transport=httpx.MockTransport(server))
    async with client:
        yield client


@pytest.mark.asyncio
async def test_login_stores_tokens(api: InkwellClient) -> None:
    auth = await api.login("alice", "Passw0rd!")
    assert auth.user.username == "alice"
    assert api.authenticated
    assert api.tokens.refresh_token == "refresh-1"


@pytest.mark.asyncio
async def test_expired_access_token_is_refreshed_once(api: InkwellClient, server: FakeServer) -> None:
    await api.login("alice", "Passw0rd!")
    server.valid_access = "access-rotated-by-server"

    assert await api._request("GET", "/comments/5") == {"ok": True}
    assert server.refresh_calls == 1
    assert api.tokens.refresh_token == "refresh-2"


@pytest.mark.asyncio
async def test_concurrent_401s_share_one_refresh(api: InkwellClient, server: FakeServer) -> None:
    await api.login("alice", "Passw0rd!")
    server.valid_access = "expired"

    results = await asyncio.gather(*(api._request("GET", "/comments/5") for _ in range(3)))
    assert results == [{"ok": True}] * 3
    assert server.refresh_calls == 1


@pytest.mark.asyncio
async def test_failed_refresh_clears_credentials(api: InkwellClient, server: FakeServer) -> None:
    await api.login("alice", "Passw0rd!")
    server.valid_access = "expired"
    server.allow_refresh = False

    with pytest.raises(ApiError) as excinfo:
        await api._request("GET", "/comments/5")
    assert excinfo.value.status_code == 401
    assert not api.authenticated


@pytest.mark.asyncio
async def test_error_envelope_is_parsed(api: InkwellClient) -> None:
    with pytest.raises(ApiError) as excinfo:
        await api.create_comment(7, "deep reply", parent_id=99)
    error = excinfo.value
    assert error.status_code == 400
    assert error.code == "BAD_REQUEST"
    assert error.message == "Maximum nesting level (3) reached"


@pytest.mark.asyncio
async def test_health_report_is_returned_not_raised(api: InkwellClient) -> None:
    assert await api.health() == {"status": "error"}
