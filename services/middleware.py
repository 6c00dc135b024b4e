"""Request ID middleware (pure ASGI, so streamed responses are never buffered)."""

from __future__ import annotations

import logging
import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = b"x-request-id"


class RequestIdMiddleware:
    """Tag every HTTP request with an ID and echo it in ``X-Request-ID``.

    A client-supplied ``X-Request-ID`` is reused; otherwise a short UUID is
    generated.  The ID is stored in ``scope["state"]["request_id"]`` and the
    total time until the response body finishes is logged, which for the
    relay endpoints covers the whole upstream stream.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        request_id = headers.get(REQUEST_ID_HEADER, b"").decode() or uuid.uuid4().hex[:8]
        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id
        t0 = time.monotonic()
        status_code = 0

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                message["headers"] = [
                    *message.get("headers", []),
                    (REQUEST_ID_HEADER, request_id.encode()),
                ]
            elif message["type"] == "http.response.body" and not message.get("more_body"):
                logger.info(
                    "[%s] %s %s → %d (%.0fms)",
                    request_id, scope["method"], scope["path"], status_code,
                    (time.monotonic() - t0) * 1000,
                )
            await send(message)

        await self.app(scope, receive, send_with_request_id)
