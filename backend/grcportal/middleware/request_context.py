"""
Per-request context (acting user, client IP) and access logging.

The acting user comes from the X-User-Id header; there is no real
authentication yet. Code that records who did something (e.g.
risk_controls.created_by) reads it through current_user_id().
"""
from __future__ import annotations

import contextvars
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("grcportal.http")

_ctx_user_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "_ctx_user_id", default=None
)
_ctx_ip_address: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "_ctx_ip_address", default=None
)


def set_request_context(
    *,
    user_id: str | None = None,
    ip_address: str | None = None,
) -> None:
    """Store the current request's user and IP for downstream code."""
    _ctx_user_id.set(user_id)
    _ctx_ip_address.set(ip_address)


def current_user_id() -> str | None:
    return _ctx_user_id.get()


def current_ip_address() -> str | None:
    return _ctx_ip_address.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Set the request context and log each request with its latency."""

    async def dispatch(self, request: Request, call_next):
        user_id = request.headers.get("X-User-Id") or None
        ip = request.client.host if request.client else None
        set_request_context(user_id=user_id, ip_address=ip)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %d (%.0f ms) user=%s ip=%s",
            request.method, request.url.path, response.status_code, elapsed_ms,
            current_user_id(), current_ip_address(),
        )
        return response
