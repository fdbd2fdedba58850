"""
seo_checker/middleware/rate_limit.py — Sliding-window per-IP rate limiter.
Only applies to POST /api/analyze. Limit configurable via .env RATE_LIMIT_PER_MINUTE.
"""
import time
from collections import deque
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from seo_checker.config import get_settings

WINDOW = 60
LIMITED = {"/api/analyze"}


def _ip(request: Request) -> str:
    fwd = request.headers.get("X-Forwarded-For")
    if fwd:
        return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limit: int = None, clock: Callable[[], float] = time.monotonic):
        super().__init__(app)
        self.limit = limit
        self._clock = clock
        self._log: Dict[str, deque] = {}

    def _forget_idle(self, now: float) -> None:
        """Drop clients with no request inside the window."""
        idle = [ip for ip, q in self._log.items() if not q or now - q[-1] > WINDOW]
        for ip in idle:
            del self._log[ip]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "POST" and request.url.path in LIMITED:
            limit = self.limit or get_settings().rate_limit_per_minute
            ip = _ip(request)
            now = self._clock()
            self._forget_idle(now)
            q = self._log.setdefault(ip, deque())
            while q and now - q[0] > WINDOW:
                q.popleft()
            if len(q) >= limit:
                retry = int(WINDOW - (now - q[0])) + 1
                return JSONResponse(
                    status_code=429,
                    content={
                        "success": False,
                        "kind": "rate_limited",
                        "error": f"Rate limit exceeded. Max {limit}/min per IP.",
                        "retry_after_seconds": retry,
                    },
                    headers={"Retry-After": str(retry)},
                )
            q.append(now)
        return await call_next(request)
