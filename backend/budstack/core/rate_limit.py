"""
Rate limiting for the BudStack API

Two layers share one in-memory sliding window store:
- RateLimitMiddleware: a per-client budget on every request (token or IP)
- enforce_user_rate_limit: a tighter per-user budget for bulk and export routes

Author: TM3
Date: 2025-11-05
"""
import time
import hashlib
import logging
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple

from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from budstack.core.config import settings

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

CLIENT_LIMITS = {
    "token": settings.RATE_LIMIT_AUTHENTICATED,
    "ip": settings.RATE_LIMIT_UNAUTHENTICATED,
}

UNLIMITED_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


class RateLimiter:
    """
    Sliding window counter keyed by an arbitrary identifier.

    Each key keeps the timestamps of its accepted requests, oldest first.
    State is per process; several API workers each keep their own window.
    """

    def __init__(self, sweep_every: float = 300.0):
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._sweep_every = sweep_every
        self._last_sweep = time.monotonic()

    def _sweep(self, now: float, window_seconds: int):
        if now - self._last_sweep < self._sweep_every:
            return
        for key in [key for key, hits in self._hits.items() if not hits or hits[-1] <= now - window_seconds]:
            del self._hits[key]
        self._last_sweep = now

    def is_allowed(self, identifier: str, max_requests: int, window_seconds: int = WINDOW_SECONDS) -> Tuple[bool, int, int]:
        """
        Record a request for identifier if it fits in the window.

        Returns:
            (allowed, remaining, retry_after_seconds)
        """
        now = time.monotonic()
        self._sweep(now, window_seconds)

        hits = self._hits[identifier]
        while hits and hits[0] <= now - window_seconds:
            hits.popleft()

        if len(hits) >= max_requests:
            retry_after = max(1, int(hits[0] + window_seconds - now) + 1) if hits else 1
            return False, 0, retry_after

        hits.append(now)
        return True, max_requests - len(hits), 0

    def reset(self):
        self._hits.clear()


rate_limiter = RateLimiter()


def client_key(request: Request) -> Tuple[str, int]:
    """Identifier and budget: bearer token hash if present, else client IP"""
    authorization = request.headers.get("Authorization") or ""
    if authorization.startswith("Bearer "):
        digest = hashlib.sha256(authorization.encode()).hexdigest()[:32]
        return f"token:{digest}", CLIENT_LIMITS["token"]

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else "unknown"
    return f"ip:{ip_address}", CLIENT_LIMITS["ip"]


def _limit_headers(limit: int, remaining: int, retry_after: int = 0) -> Dict[str, str]:
    headers = {"X-RateLimit-Limit": str(limit), "X-RateLimit-Remaining": str(remaining)}
    if retry_after:
        headers["X-RateLimit-Reset"] = str(retry_after)
        headers["Retry-After"] = str(retry_after)
    return headers


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client budget per minute, reported in X-RateLimit-* headers"""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        identifier, limit = client_key(request)
        allowed, remaining, retry_after = rate_limiter.is_allowed(identifier, limit)

        if not allowed:
            logger.warning(f"Rate limit hit for {identifier.split(':')[0]} client on {request.url.path}")
            # JSONResponse instead of HTTPException so CORS headers still apply
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Rate limit exceeded. Please slow down."},
                headers=_limit_headers(limit, 0, retry_after),
            )

        response = await call_next(request)
        response.headers.update(_limit_headers(limit, remaining))
        return response


def enforce_user_rate_limit(
    user_id: str,
    scope: str,
    max_requests: int = settings.RATE_LIMIT_ADMIN_BULK,
    window_seconds: int = WINDOW_SECONDS
):
    """
    Per-user limit for expensive admin operations (bulk updates, exports).

    Raises 429 when the user exceeded max_requests within the window.
    """
    allowed, _, retry_after = rate_limiter.is_allowed(f"user:{scope}:{user_id}", max_requests, window_seconds)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many requests. Try again in {retry_after} seconds.",
            headers=_limit_headers(max_requests, 0, retry_after),
        )
