"""
HTTP middleware: per-address rate limiting and baseline security headers.

Rate limiting is traffic shaping only. Counters live in process memory, so
each worker process counts on its own.
"""
import math
import time
from typing import Callable, Dict, Sequence, Tuple

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from pydantic import BaseModel, ConfigDict
import structlog

from config import Settings

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/"
AUTH_PATHS = ("/api/users/login", "/api/users/register")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
}


class RateLimitPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_ms: int
    max_requests: int
    scope: str  # "global" or "auth"
    message: str = "Too many requests from this IP, please try again later."

    def applies_to(self, path: str) -> bool:
        if self.scope == "auth":
            return path.rstrip("/") in AUTH_PATHS
        return path.startswith(API_PREFIX)


def policies_from_settings(settings: Settings) -> Tuple[RateLimitPolicy, ...]:
    auth = RateLimitPolicy(
        window_ms=settings.rate_limit_window_ms,
        max_requests=settings.auth_rate_limit_max,
        scope="auth",
        message="Too many authentication attempts, please try again later.",
    )
    if settings.rate_limit_scope == "auth-endpoints-only":
        return (auth,)
    general = RateLimitPolicy(
        window_ms=settings.rate_limit_window_ms,
        max_requests=settings.rate_limit_max,
        scope="global",
    )
    return (general, auth)


class FixedWindowCounter:
    """Counts hits per key inside fixed windows starting at the key's first hit.

    Keys are kept in window-start order, so once ``max_keys`` is reached the
    oldest windows are evicted first.
    """

    max_keys = 10_000

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: Dict[Tuple[str, str], Tuple[float, int]] = {}

    def hit(self, key: Tuple[str, str], policy: RateLimitPolicy) -> Tuple[bool, float]:
        """Record a hit. Returns (allowed, seconds until the window resets)."""
        now = self._clock()
        window = policy.window_ms / 1000.0
        entry = self._windows.get(key)
        if entry is None or now - entry[0] >= window:
            # a new window moves the key to the end
            self._windows.pop(key, None)
            while len(self._windows) >= self.max_keys:
                del self._windows[next(iter(self._windows))]
            started, count = now, 0
        else:
            started, count = entry
        count += 1
        self._windows[key] = (started, count)
        return count <= policy.max_requests, max(0.0, started + window - now)

    def __len__(self) -> int:
        return len(self._windows)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, policies: Sequence[RateLimitPolicy], clock: Callable[[], float] = time.monotonic):
        super().__init__(app)
        self.policies = tuple(policies)
        self.counter = FixedWindowCounter(clock)

    async def dispatch(self, request: Request, call_next):
        client = request.client.host if request.client else "unknown"
        path = request.url.path
        for policy in self.policies:
            if not policy.applies_to(path):
                continue
            allowed, reset_in = self.counter.hit((policy.scope, client), policy)
            if not allowed:
                logger.warning("rate_limit.exceeded", client=client, path=path, scope=policy.scope)
                return JSONResponse(
                    status_code=429,
                    content={"success": False, "message": policy.message},
                    headers={"Retry-After": str(math.ceil(reset_in))},
                )
        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response
