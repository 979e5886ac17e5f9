"""Rate limiting middleware — Redis fixed-window counters.

Each IP gets a counter key like "wedsite:rl:{ip}:{bucket}:{minute}".
Login and refresh share a stricter "auth" bucket to slow down password
guessing; everything else uses the default bucket.

Skips rate limiting entirely if Redis is unavailable (e.g. in tests).
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from wedsite.cache import get_redis

logger = structlog.get_logger()

AUTH_PATHS = ("/api/v1/auth/login", "/api/v1/auth/refresh")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP, per-minute request limits."""

    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_auth = request.url.path.startswith(AUTH_PATHS)
        rpm = self.auth_rpm if is_auth else self.default_rpm

        window = int(time.time() // 60)
        bucket = "auth" if is_auth else "api"
        key = f"wedsite:rl:{client_ip}:{bucket}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except RedisError as e:
            # Redis hiccup: let the request through rather than fail it
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket=bucket)
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded. Try again later.",
                    "code": "RATE_LIMITED",
                },
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
