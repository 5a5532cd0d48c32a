"""Per-request log context."""

import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from campusfix.logging_config import request_log_context


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id (honoring ``X-Request-ID``) to every log line of the request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        with request_log_context(request_id, method=request.method, path=request.url.path):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
