"""API middleware: request ids, Basic authentication, rate limiting."""

from __future__ import annotations

import logging
import math
import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from keygate.api.errors import error_response, unauthorized_response
from keygate.core.errors import AuthError, StorageError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import Request, Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
_MAX_REQUEST_ID_LEN = 128


def _valid_request_id(value: str) -> bool:
    return (
        0 < len(value) <= _MAX_REQUEST_ID_LEN
        and value.isascii()
        and value.isprintable()
    )


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and log its start and completion.

    A well-formed incoming ``X-Request-Id`` is kept; anything else is
    replaced by a fresh UUID4. The id is echoed on the response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
        request_id = incoming if _valid_request_id(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id

        extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }
        logger.info("request started", extra=extra)
        start = time.monotonic()

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 1)
        logger.info(
            "request completed",
            extra={
                **extra,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Require valid Basic credentials on every path except the health check.

    The authenticated ``Identity`` is stored on ``request.state.identity``.
    Every authentication failure produces the same 401 response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        config = request.app.state.config
        if request.url.path == config.api.health_path:
            return await call_next(request)

        authenticator = request.app.state.authenticator
        try:
            identity = await authenticator.authenticate(
                request.headers.get("Authorization")
            )
        except AuthError:
            return unauthorized_response(config.auth.realm)
        except StorageError as e:
            logger.error(
                "Credential lookup failed: %s",
                e,
                extra={"request_id": getattr(request.state, "request_id", None)},
            )
            return error_response(500, "Storage failure")

        request.state.identity = identity
        request.state.api_key_id = identity.key_id
        return await call_next(request)


# ── Rate limiting ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RateDecision:
    """Outcome of recording one request against a window."""

    allowed: bool
    limit: int
    remaining: int
    reset: float

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(max(1, math.ceil(self.reset))),
        }


class SlidingWindow:
    """Request timestamps per bucket over the last *window* seconds.

    A bucket is dropped as soon as its last timestamp expires, and the
    whole table is swept once per window so clients that never return
    do not linger.
    """

    def __init__(self, limit: int, window: float) -> None:
        self.limit = limit
        self.window = window
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        return len(self._hits)

    def _live(self, bucket: str, now: float) -> deque[float] | None:
        hits = self._hits.get(bucket)
        if hits is None:
            return None
        while hits and now - hits[0] >= self.window:
            hits.popleft()
        if not hits:
            del self._hits[bucket]
            return None
        return hits

    def _sweep(self, now: float) -> None:
        for bucket in list(self._hits):
            self._live(bucket, now)
        self._last_sweep = now

    def hit(self, bucket: str) -> RateDecision:
        """Record a request for *bucket* unless it is already at the limit."""
        now = time.monotonic()
        if now - self._last_sweep >= self.window:
            self._sweep(now)

        hits = self._live(bucket, now)
        if hits is not None and len(hits) >= self.limit:
            return RateDecision(False, self.limit, 0, self.window - (now - hits[0]))

        if hits is None:
            hits = self._hits[bucket] = deque()
        hits.append(now)
        return RateDecision(
            True,
            self.limit,
            self.limit - len(hits),
            self.window - (now - hits[0]),
        )


def _limited(decision: RateDecision) -> Response:
    headers = decision.headers()
    headers["Retry-After"] = headers["X-RateLimit-Reset"]
    return error_response(
        429, "Rate limit exceeded. Try again later.", headers=headers
    )


class ClientRateLimitMiddleware(BaseHTTPMiddleware):
    """Pre-authentication limits: one process-wide window and one per client IP.

    Runs before credentials are checked, so failed guesses count
    against the caller like any other request.
    """

    def __init__(
        self,
        app: object,
        global_limit: int = 1000,
        ip_limit: int = 120,
        window: int = 60,
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self.global_window = SlidingWindow(global_limit, window)
        self.ip_window = SlidingWindow(ip_limit, window)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        ip_addr = request.client.host if request.client else "unknown"

        per_ip = self.ip_window.hit(f"ip:{ip_addr}")
        if not per_ip.allowed:
            logger.warning("Client rate limit hit", extra={"client_ip": ip_addr})
            return _limited(per_ip)

        overall = self.global_window.hit("global")
        if not overall.allowed:
            logger.warning("Global rate limit hit")
            return _limited(overall)

        response = await call_next(request)
        for name, value in per_ip.headers().items():
            response.headers.setdefault(name, value)
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-key rate limiting using sliding window.

    Only authenticated requests are counted here; anonymous traffic is
    limited by ``ClientRateLimitMiddleware``.
    """

    def __init__(self, app: object, rate_limit: int = 60, window: int = 60) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self.window = SlidingWindow(rate_limit, window)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        api_key_id = getattr(request.state, "api_key_id", None)
        if api_key_id is None:
            return await call_next(request)

        decision = self.window.hit(f"api_key:{api_key_id}")
        if not decision.allowed:
            return _limited(decision)

        response = await call_next(request)
        response.headers.update(decision.headers())
        return response
