"""
API Gateway Rate Limiting - per client IP.

AI-backed resource endpoints (POST /api/v1/resources/...) are limited per
hour; every other API call per minute.
"""

import time
from typing import Callable, Optional, Tuple

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from learnpath.api.deps import get_client_ip
from learnpath.config import get_settings


class InMemoryRateLimitStore:
    """Fixed-window in-memory store. Key -> (count, window_start_ts)."""

    def __init__(self):
        self._data: dict[str, Tuple[int, float]] = {}
        self._window_sec: dict[str, int] = {}

    def _key(self, scope: str, identifier: str) -> str:
        return f"{scope}:{identifier}"

    def check_and_incr(
        self,
        scope: str,
        identifier: str,
        limit: int,
        window_seconds: int,
    ) -> bool:
        """Returns True if under limit (and increments). False if over limit (no increment)."""
        key = self._key(scope, identifier)
        now = time.monotonic()
        if key not in self._data:
            self._data[key] = (1, now)
            self._window_sec[key] = window_seconds
            return True
        count, start = self._data[key]
        win = self._window_sec.get(key, window_seconds)
        if now - start >= win:
            self._data[key] = (1, now)
            self._window_sec[key] = window_seconds
            return True
        if count >= limit:
            return False
        self._data[key] = (count + 1, start)
        return True

    def cleanup_old(self, max_age_seconds: int = 3600):
        """Remove entries older than max_age_seconds to avoid unbounded growth."""
        now = time.monotonic()
        to_remove = [k for k, (_, start) in self._data.items() if now - start > max_age_seconds]
        for k in to_remove:
            self._data.pop(k, None)
            self._window_sec.pop(k, None)

    def reset(self) -> None:
        self._data.clear()
        self._window_sec.clear()


# Module-level store (single process)
_store: Optional[InMemoryRateLimitStore] = None


def get_store() -> InMemoryRateLimitStore:
    global _store
    if _store is None:
        _store = InMemoryRateLimitStore()
    return _store


def classify_request(path: str, method: str, api_prefix: str) -> Tuple[str, int]:
    """(scope, window_seconds) for a request under the API prefix."""
    if method == "POST" and path.startswith(f"{api_prefix}/resources/"):
        return "ai", 3600
    return "api", 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limit by scope, keyed on client IP:
    - ai: POST /api/v1/resources/* -> rate_limit_ai_per_hour
    - api: other /api/v1 -> rate_limit_api_per_minute
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled:
            return await call_next(request)

        path = request.url.path or ""
        if not path.startswith(settings.api_v1_prefix):
            return await call_next(request)

        store = get_store()
        # Periodic cleanup
        store.cleanup_old(max_age_seconds=7200)

        scope, window = classify_request(path, request.method, settings.api_v1_prefix)
        limit = settings.rate_limit_ai_per_hour if scope == "ai" else settings.rate_limit_api_per_minute

        allowed = store.check_and_incr(scope, get_client_ip(request), limit, window)
        if not allowed:
            return Response(
                content='{"detail":"Too many requests. Please try again later."}',
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
                headers={"Retry-After": str(window)},
            )
        return await call_next(request)
