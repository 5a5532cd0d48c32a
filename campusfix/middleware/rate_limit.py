"""Redis-based sliding window rate limiting for write endpoints."""

import time

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from campusfix.logging_config import get_logger

logger = get_logger(__name__)

# Reads are never limited
LIMITED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

DEFAULT_LIMIT = 30
DEFAULT_WINDOW = 60  # seconds


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Redis sliding window rate limiter (ZADD + ZREMRANGEBYSCORE).

    Fails open: when Redis is unavailable the request is let through.
    """

    def __init__(self, app, redis_getter, limit: int = DEFAULT_LIMIT, window: int = DEFAULT_WINDOW):
        super().__init__(app)
        self._redis_getter = redis_getter
        self._limit = limit
        self._window = window

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in LIMITED_METHODS:
            return await call_next(request)

        # Identify the caller: token tail if present, otherwise client IP
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer ") and len(auth_header) > 23:
            identifier = auth_header[-16:]
        else:
            identifier = request.client.host if request.client else "unknown"

        key = f"ratelimit:{identifier}:{request.method}:{request.url.path}"

        try:
            redis = self._redis_getter()
            now = time.time()
            window_start = now - self._window

            pipe = redis.pipeline()
            pipe.zremrangebyscore(key, 0, window_start)
            pipe.zadd(key, {str(now): now})
            pipe.zcard(key)
            pipe.expire(key, self._window + 1)
            results = await pipe.execute()
            request_count = results[2]
        except Exception as e:
            logger.warning("rate_limit_redis_error", error=str(e))
            return await call_next(request)

        if request_count > self._limit:
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                path=request.url.path,
                count=request_count,
                limit=self._limit,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "type": "rate_limit_exceeded",
                    "title": "Rate Limit Exceeded",
                    "status": 429,
                    "detail": f"Rate limit exceeded: {self._limit} requests per {self._window}s",
                },
                headers={"Retry-After": str(self._window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self._limit - request_count))
        return response
