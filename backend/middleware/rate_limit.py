"""
In-memory rate limiting for the unauthenticated endpoints.

The payment callback and the public status lookup accept anonymous callers,
so each client IP gets a sliding-window quota per route.

Counters live in process memory; with several workers each one keeps its own.
"""
import time
import logging
from collections import defaultdict

from fastapi import Request

from domain.errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window counter keyed by (client IP, route).
    """

    def __init__(self):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = defaultdict(list)

    def _cleanup(self, key: str, window_seconds: int):
        cutoff = time.monotonic() - window_seconds
        self._requests[key] = [ts for ts in self._requests[key] if ts > cutoff]

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Record a hit for `key`. Returns False when the window is already full."""
        self._cleanup(key, window_seconds)

        if len(self._requests[key]) >= max_requests:
            return False

        self._requests[key].append(time.monotonic())
        return True

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
_limiter = RateLimiter()


def reset_rate_limits():
    """Forget every recorded hit (used by tests)."""
    _limiter.reset()


def rate_limit(max_requests: int = 60, window_seconds: int = 60):
    """
    FastAPI dependency factory.

    Usage:
        @router.post("/callback")
        async def callback(..., _rate=Depends(rate_limit(120, 60))):
            ...
    """
    async def _check_rate_limit(request: Request):
        client_ip = request.client.host if request.client else "unknown"
        # route template, so /status-info/SO-1 and /status-info/SO-2 share a quota
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        key = f"{client_ip}:{route_path}"

        if not _limiter.check(key, max_requests, window_seconds):
            logger.warning(
                f"Rate limit exceeded: {client_ip} on {route_path} "
                f"({max_requests}/{window_seconds}s)"
            )
            raise RateLimitedError(max_requests, window_seconds)

    return _check_rate_limit
