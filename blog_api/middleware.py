import logging
import time

from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """
    Pure ASGI middleware that times every HTTP request.

    - Adds ``X-Response-Time-Ms`` (wall-clock time until the response
      starts) to the response headers.
    - Logs one ``METHOD path -> status (ms)`` line per request.

    Written against raw ASGI rather than ``BaseHTTPMiddleware`` so the
    handler is not moved into a child task.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.info("%s %s -> %s (%.2f ms)", scope["method"], scope["path"], status_code, duration_ms)
