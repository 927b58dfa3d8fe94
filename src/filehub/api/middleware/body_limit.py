"""Request body size limit middleware.

Pure ASGI middleware (not BaseHTTPMiddleware) so it can wrap ``receive``
and count bytes as they stream in.

Behavior:
- Declared Content-Length above the limit => 413 before the app runs
- Streamed body growing past the limit => RequestBodyTooLargeError raised
  from ``receive``; the app's exception handlers turn it into 413
"""

from __future__ import annotations

import logging

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from filehub.api.error_model import make_error_response_no_request

logger = logging.getLogger(__name__)

# Room for multipart boundaries, part headers and scalar form fields.
MULTIPART_OVERHEAD_BYTES = 1024 * 1024


class RequestBodyTooLargeError(Exception):
    """Raised when a streamed request body exceeds the configured limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Request body exceeds {limit} bytes")
        self.limit = limit


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes``."""

    def __init__(self, app: ASGIApp, max_body_bytes: int | None = None) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            max_body_bytes: Limit in bytes; None disables the check.
        """
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self.max_body_bytes is None:
            await self.app(scope, receive, send)
            return

        limit = self.max_body_bytes
        request_id = scope.get("state", {}).get("request_id")

        declared = _declared_length(scope)
        if declared is not None and declared > limit:
            logger.info("Rejected request body: declared %d bytes > limit %d", declared, limit)
            response = make_error_response_no_request(
                code="PAYLOAD_TOO_LARGE",
                message=f"Request body exceeds {limit} bytes",
                http_status=413,
                request_id=request_id,
                details={"limit_bytes": limit},
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise RequestBodyTooLargeError(limit)
            return message

        await self.app(scope, limited_receive, send)


def _declared_length(scope: Scope) -> int | None:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None
