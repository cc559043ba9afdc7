import math
import time
from typing import Optional, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from recipehub.core.config import settings
from recipehub.core.errors import RateLimitError, app_error_handler
from recipehub.core.logging import get_request_id
from recipehub.core.ratelimit import InMemoryRateLimiter, RateLimitConfig, build_rate_limit_config

# Stripe retries on its own schedule; never throttle it
EXEMPT_PATHS = {"/api/subscriptions/webhook"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP token-bucket limiting over /api (opt-in via settings)."""

    def __init__(self, app, *, config: Optional[RateLimitConfig] = None, time_fn: Optional[Callable[[], float]] = None):
        super().__init__(app)
        self.config = config or build_rate_limit_config(settings)
        self.limiter = InMemoryRateLimiter(self.config, time_fn=time_fn or time.monotonic)

    def _applies_to(self, request: Request) -> bool:
        path = request.url.path
        return path.startswith("/api/") and path not in EXEMPT_PATHS

    def _client_key(self, request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
        else:
            ip = request.client.host if request.client else "unknown"
        return f"ip:{ip}"

    async def dispatch(self, request: Request, call_next):
        if not self.config.enabled or not self._applies_to(request):
            return await call_next(request)

        key = self._client_key(request)
        bucket = self.limiter.bucket_for(key)
        if bucket.allow():
            return await call_next(request)

        rid = getattr(request.state, "request_id", None) or get_request_id()
        response = await app_error_handler(
            request,
            RateLimitError("Too many requests from this IP, please try again later.", request_id=rid),
        )
        retry_after = max(1, math.ceil(bucket.seconds_until_available()))
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-RateLimit-Limit"] = str(self.config.per_window)
        response.headers["X-RateLimit-Remaining"] = "0"
        return response
