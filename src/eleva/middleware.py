from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from structlog import contextvars as structlog_contextvars

from .logging import logger
from .metrics import UNMATCHED_ROUTE, registry


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign a request ID to each incoming request and expose it in headers.

    - Sets `request.state.request_id`
    - Adds `X-Request-ID` to the response headers
    - Binds `request_id` into structlog contextvars for the request duration
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        structlog_contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog_contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


def route_template(request: Request) -> str:
    """Return the matched route's path template, e.g. `/api/plans/{plan_id}/reviews`.

    O roteador grava a rota em `scope["route"]`; requisições sem rota (404)
    caem todas na mesma chave.
    """

    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


class AccessLogAndMetricsMiddleware(BaseHTTPMiddleware):
    """Emit one `request_complete` log per call and record per-route metrics."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        start = time.perf_counter()
        status_code = 500
        error_type: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as exc:
            error_type = exc.__class__.__name__
            raise
        finally:
            latency_ms = (time.perf_counter() - start) * 1000
            route = route_template(request)
            registry.record(request.method, route, status_code, latency_ms)
            log_method = logger.error if status_code >= 500 else logger.info
            log_method(
                "request_complete",
                method=request.method,
                route=route,
                path=request.url.path,
                status_code=status_code,
                latency_ms=round(latency_ms, 2),
                error_type=error_type,
            )
