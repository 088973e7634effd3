"""Per-request context: request id, timing, access log and rate limiting.

All four happen in one middleware pass. The token bucket itself is the pure
function ``check_rate_limit`` so it can be exercised without HTTP.
"""

import logging
import threading
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.config import settings
from ..core.logging_config import client_ip_var, request_id_var
from ..exceptions import ErrorCode

logger = logging.getLogger(__name__)


# {client_key: (tokens_left, last_seen)}
_rate_buckets: dict[str, tuple[float, float]] = {}
_rate_lock = threading.Lock()

_sweep_counter = 0
_SWEEP_EVERY = 100
_IDLE_SECONDS = 120.0


def check_rate_limit(
    bucket: dict[str, tuple[float, float]],
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> tuple[bool, float]:
    """Take one token for *key* from *bucket*.

    Returns ``(allowed, retry_after)``. *retry_after* is 0.0 when allowed,
    otherwise the seconds until a token is available again. A
    *max_per_minute* of 0 or less disables limiting.
    """
    global _sweep_counter

    if max_per_minute <= 0:
        return True, 0.0

    if now is None:
        now = time.monotonic()

    _sweep_counter += 1
    if _sweep_counter % _SWEEP_EVERY == 0:
        idle_before = now - _IDLE_SECONDS
        for stale_key in [k for k, (_, seen) in bucket.items() if seen < idle_before]:
            del bucket[stale_key]

    per_second = max_per_minute / 60.0
    tokens, last_seen = bucket.get(key, (float(max_per_minute), now))
    tokens = min(float(max_per_minute), tokens + (now - last_seen) * per_second)

    if tokens >= 1.0:
        bucket[key] = (tokens - 1.0, now)
        return True, 0.0

    bucket[key] = (tokens, now)
    return False, (1.0 - tokens) / per_second


# Probes and docs are never throttled.
_EXEMPT_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


def _client_key(request: Request) -> str:
    """First ``X-Forwarded-For`` hop when proxied, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def _rate_limited(request_id: str, retry_after: float) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": ErrorCode.RATE_LIMITED.value,
            "message": "Too many requests",
            "details": {"retry_after": round(retry_after, 1)},
        },
        headers={
            "Retry-After": str(int(retry_after) + 1),
            "X-Request-ID": request_id,
        },
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(request_id)
        path = request.url.path
        client = _client_key(request)
        client_ip_var.set(client)

        if path not in _EXEMPT_PATHS:
            with _rate_lock:
                allowed, retry_after = check_rate_limit(
                    _rate_buckets, client, settings.rate_limit_per_minute
                )
            if not allowed:
                logger.warning(
                    "Rate limit exceeded",
                    extra={"client": client, "path": path, "retry_after": round(retry_after, 1)},
                )
                return _rate_limited(request_id, retry_after)

        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - started) * 1000, 1)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms}ms"

        logger.info(
            "%s %s %s", request.method, path, response.status_code,
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )
        return response
