"""Async HTTP client for the Inkwell API.

The client keeps the token pair returned by login/register. When a request
fails with 401 it rotates the refresh token once and replays the request;
concurrent 401s share a single refresh.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from inkwell.schemas.auth import AuthResponse
from inkwell.schemas.category import CategoryResponse
from inkwell.schemas.comment import CommentListResponse, CommentResponse
from inkwell.schemas.common import LikeStatus
from inkwell.schemas.post import PostListResponse, PostResponse, SearchResponse

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
HTTP_UNAUTHORIZED = 401
DEFAULT_TIMEOUT_SECONDS = 10.0

# Endpoints that must never trigger a refresh-and-retry.
_NO_REFRESH_PATHS = ("/auth/login", "/auth/register", "/auth/refresh")


class ApiError(RuntimeError):
    """Non-2xx response, parsed from the error envelope where possible."""

    def __init__(self, status_code: int, code: str, message: str, details: Any | None = None) -> None:
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details

    @classmethod
    def from_response(cls, response: httpx.Response) -> ApiError:
        try:
            body = response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return cls(
                response.status_code,
                str(error.get("code", "UNKNOWN_ERROR")),
                str(error.get("message", response.reason_phrase)),
                error.get("details"),
            )
        return cls(response.status_code, "UNKNOWN_ERROR", response.text or response.reason_phrase)


@dataclass
class TokenState:
    access_token: str | None = None
    refresh_token: str | None = None


class InkwellClient:
    """HTTP client wrapper for the Inkwell REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.tokens = TokenState()
        self._refresh_lock = asyncio.Lock()
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=httpx.Timeout(timeout),
        )

    async def __aenter__(self) -> InkwellClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def authenticated(self) -> bool:
        return self.tokens.access_token is not None

    def _headers(self) -> dict[str, str]:
        if self.tokens.access_token is None:
            return {}
        return {"Authorization": f"Bearer {self.tokens.access_token}"}

    def _store(self, auth: AuthResponse) -> AuthResponse:
        self.tokens = TokenState(auth.access_token, auth.refresh_token)
        return auth

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        return await self._client.request(
            method,
            f"{API_PREFIX}{path}",
            json=json,
            params=params,
            headers=self._headers(),
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request, refreshing the token pair once on 401."""
        sent_with = self.tokens.access_token
        response = await self._send(method, path, json=json, params=params)

        if (
            response.status_code == HTTP_UNAUTHORIZED
            and self.tokens.refresh_token
            and not path.startswith(_NO_REFRESH_PATHS)
        ):
            await self._refresh_once(sent_with)
            response = await self._send(method, path, json=json, params=params)

        if response.is_error:
            raise ApiError.from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _refresh_once(self, stale_access_token: str | None) -> None:
        async with self._refresh_lock:
            # Another request already rotated the pair while we waited.
            if self.tokens.access_token != stale_access_token:
                return
            try:
                await self.refresh()
            except ApiError:
                logger.info("Token refresh failed; clearing stored credentials")
                self.tokens = TokenState()
                raise

    # --- Auth ---------------------------------------------------------------------

    async def register(
        self, email: str, username: str, password: str, display_name: str | None = None
    ) -> AuthResponse:
        payload = {"email": email, "username": username, "password": password}
        if display_name is not None:
            payload["display_name"] = display_name
        data = await self._request("POST", "/auth/register", json=payload)
        return self._store(AuthResponse.model_validate(data))

    async def login(self, identifier: str, password: str) -> AuthResponse:
        data = await self._request(
            "POST", "/auth/login", json={"identifier": identifier, "password": password}
        )
        return self._store(AuthResponse.model_validate(data))

    async def refresh(self) -> AuthResponse:
        if not self.tokens.refresh_token:
            raise ApiError(HTTP_UNAUTHORIZED, "UNAUTHORIZED", "No refresh token")
        data = await self._request(
            "POST", "/auth/refresh", json={"refresh_token": self.tokens.refresh_token}
        )
        return self._store(AuthResponse.model_validate(data))

    async def logout(self) -> None:
        if self.tokens.refresh_token:
            await self._request(
                "POST", "/auth/logout", json={"refresh_token": self.tokens.refresh_token}
            )
        self.tokens = TokenState()

    # --- Posts --------------------------------------------------------------------

    async def list_posts(self, **filters: Any) -> PostListResponse:
        params = {key: value for key, value in filters.items() if value is not None}
        return PostListResponse.model_validate(await self._request("GET", "/posts", params=params))

    async def get_post(self, slug: str) -> PostResponse:
        return PostResponse.model_validate(await self._request("GET", f"/posts/{slug}"))

    async def create_post(self, **fields: Any) -> PostResponse:
        return PostResponse.model_validate(await self._request("POST", "/posts", json=fields))

    # --- Comments -----------------------------------------------------------------

    async def list_comments(
        self,
        post_id: int,
        *,
        page: int = 1,
        limit: int | None = None,
        sort: str = "newest",
        include_deleted: bool = False,
    ) -> CommentListResponse:
        params: dict[str, Any] = {"page": page, "sort": sort, "include_deleted": include_deleted}
        if limit is not None:
            params["limit"] = limit
        data = await self._request("GET", f"/posts/{post_id}/comments", params=params)
        return CommentListResponse.model_validate(data)

    async def create_comment(
        self, post_id: int, content: str, parent_id: int | None = None
    ) -> CommentResponse:
        data = await self._request(
            "POST",
            f"/posts/{post_id}/comments",
            json={"content": content, "parent_id": parent_id},
        )
        return CommentResponse.model_validate(data)

    async def update_comment(self, comment_id: int, content: str) -> CommentResponse:
        data = await self._request("PATCH", f"/comments/{comment_id}", json={"content": content})
        return CommentResponse.model_validate(data)

    async def delete_comment(self, comment_id: int) -> CommentResponse:
        return CommentResponse.model_validate(await self._request("DELETE", f"/comments/{comment_id}"))

    async def toggle_comment_like(self, comment_id: int) -> LikeStatus:
        return LikeStatus.model_validate(await self._request("POST", f"/comments/{comment_id}/like"))

    # --- Categories, search, health -----------------------------------------------

    async def list_categories(self) -> list[CategoryResponse]:
        data = await self._request("GET", "/categories")
        return [CategoryResponse.model_validate(item) for item in data]

    async def search(self, q: str, **filters: Any) -> SearchResponse:
        params = {"q": q, **{key: value for key, value in filters.items() if value is not None}}
        return SearchResponse.model_validate(await self._request("GET", "/search", params=params))

    async def health(self) -> dict[str, Any]:
        """Return the health report; a 503 report is returned, not raised."""
        response = await self._client.get("/health")
        return response.json()
