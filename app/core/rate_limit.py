"""Per-IP fixed-window rate limiting backed by the Redis cache."""

import structlog
from fastapi import Request

from app.config import settings
from app.core.cache import CacheManager, rate_limit_key
from app.core.exceptions import RateLimitError
from app.services.activity_log import client_ip

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    FastAPI dependency allowing ``limit`` requests per ``window`` seconds
    for each client IP within a named scope.

    Counters live in Redis; without a reachable cache requests pass.
    """

    def __init__(self, scope: str, limit: int, window: int):
        self.scope = scope
        self.limit = limit
        self.window = window

    async def __call__(self, request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return

        cache: CacheManager = request.app.state.cache
        ip = client_ip(request) or "unknown"
        hits = cache.hit_window(rate_limit_key(self.scope, ip), self.window)
        if hits is None:
            logger.debug("rate_limit_skipped", scope=self.scope)
            return

        if hits > self.limit:
            logger.warning("rate_limit_exceeded", scope=self.scope, client_ip=ip, hits=hits)
            raise RateLimitError()


api_limiter = RateLimiter("api", settings.RATE_LIMIT_API, settings.RATE_LIMIT_API_WINDOW)
auth_limiter = RateLimiter("auth", settings.RATE_LIMIT_AUTH, settings.RATE_LIMIT_AUTH_WINDOW)
upload_limiter = RateLimiter("upload", settings.RATE_LIMIT_UPLOAD, settings.RATE_LIMIT_UPLOAD_WINDOW)
password_reset_limiter = RateLimiter(
    "password_reset",
    settings.RATE_LIMIT_PASSWORD_RESET,
    settings.RATE_LIMIT_PASSWORD_RESET_WINDOW,
)
