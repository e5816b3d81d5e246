"""ASGI middleware for request logging."""

from __future__ import annotations

import logging
import time
from typing import Any

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("inkwell.http")

# Bodies larger than this are only partially kept for error logs.
MAX_LOGGED_BODY_BYTES = 10 * 1024


class RequestLoggingMiddleware:
    """Log ``METHOD path status duration`` for every HTTP request.

    The first bytes of the request body are copied into ``request.state`` so the
    exception handlers can include them when logging a failure.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state: dict[str, Any] = scope.setdefault("state", {})
        state.setdefault("request_body", b"")
        status_code = 500
        started = time.perf_counter()

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                captured = state["request_body"]
                if len(captured) < MAX_LOGGED_BODY_BYTES:
                    chunk = message.get("body", b"")
                    state["request_body"] = (captured + chunk)[:MAX_LOGGED_BODY_BYTES]
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            path = scope.get("path", "")
            query = scope.get("query_string", b"")
            if query:
                path = f"{path}?{query.decode('latin-1')}"
            line = "%s %s %s %.1fms"
            args = (scope.get("method", "-"), path, status_code, duration_ms)
            if status_code >= 500:
                logger.error(line, *args)
            elif status_code >= 400:
                logger.warning(line, *args)
            else:
                logger.info(line, *args)
