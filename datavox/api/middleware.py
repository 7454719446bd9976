"""
API Middleware.

- ``RequestContextMiddleware`` binds a request id (and the process id
  for ``/processes/{id}/...`` routes) into the log context, echoes
  ``X-Request-ID`` and logs one ``api_request`` event per request.
- ``RateLimitMiddleware`` applies a per-IP sliding window; upload and
  extraction calls each cost vendor money, so ``/health`` is the only
  exempt path.
"""

from __future__ import annotations

import re
import time
from collections import deque
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from datavox.config import get_settings
from datavox.logging_config import generate_trace_id, get_logger, process_context, request_context

logger = get_logger(__name__)

_PROCESS_PATH = re.compile(r"^/processes/(?P<process_id>[^/]+)")
_UNLIMITED_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_trace_id()
        match = _PROCESS_PATH.match(request.url.path)

        start = time.monotonic()
        with request_context(request_id):
            if match:
                with process_context(match.group("process_id")):
                    response = await call_next(request)
            else:
                response = await call_next(request)

            elapsed_ms = round((time.monotonic() - start) * 1000, 1)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time-Ms"] = str(elapsed_ms)

            log = logger.debug if request.url.path in _UNLIMITED_PATHS else logger.info
            log(
                "api_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                elapsed_ms=elapsed_ms,
            )
        return response


class SlidingWindowLimiter:
    """
    Per-key request timestamps over a fixed window.

    Keys whose window has emptied are dropped, both on their own next
    hit and by a full sweep at most once per window, so idle clients do
    not accumulate.
    """

    def __init__(self, max_requests: int, window_seconds: float = 60.0) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = 0.0

    def __len__(self) -> int:
        return len(self._hits)

    def _expire(self, key: str, now: float) -> Optional[deque[float]]:
        hits = self._hits.get(key)
        if hits is None:
            return None
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()
        if not hits:
            del self._hits[key]
            return None
        return hits

    def _sweep(self, now: float) -> None:
        for key in list(self._hits):
            self._expire(key, now)
        self._last_sweep = now

    def allow(self, key: str, now: Optional[float] = None) -> bool:
        """Record a hit for ``key`` unless it is over the limit."""
        now = time.monotonic() if now is None else now
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        hits = self._expire(key, now)
        if hits is not None and len(hits) >= self.max_requests:
            return False
        self._hits.setdefault(key, deque()).append(now)
        return True


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_requests: Optional[int] = None, window_seconds: float = 60.0) -> None:
        super().__init__(app)
        self.limiter = SlidingWindowLimiter(
            max_requests or get_settings().rate_limit_per_minute, window_seconds
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in _UNLIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if not self.limiter.allow(client_ip):
            logger.warning("rate_limit_exceeded", client_ip=client_ip)
            return JSONResponse(
                {"detail": "Rate limit exceeded"},
                status_code=429,
                headers={"Retry-After": str(int(self.limiter.window_seconds))},
            )
        return await call_next(request)
