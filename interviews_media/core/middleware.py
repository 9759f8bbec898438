"""HTTP middleware: correlation IDs, tracing, metrics and access logs.

Paths are normalised before they are used as metric labels or span names so
that recording IDs and stream tokens do not create unbounded cardinality.
"""

import logging
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

from interviews_media.core.logging import clear_correlation_id, set_correlation_id
from interviews_media.core.metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_REQUESTS_TOTAL,
)
from interviews_media.core.tracing import add_span_attributes, create_span, record_exception

access_logger = logging.getLogger("interviews_media.access")

CORRELATION_ID_HEADER = "X-Correlation-ID"

_STREAM_TOKEN_RE = re.compile(r"/stream/.+$")
_NUMERIC_ID_RE = re.compile(r"/\d+(?=/|$)")


def normalize_path(path: str) -> str:
    """Replace stream tokens with ``{token}`` and numeric segments with ``{id}``."""
    path = _STREAM_TOKEN_RE.sub("/stream/{token}", path)
    return _NUMERIC_ID_RE.sub("/{id}", path)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Adopt the caller's correlation ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or uuid.uuid4().hex
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        labels = {"method": request.method, "endpoint": normalize_path(request.url.path)}
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(**labels)
        in_progress.inc()

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            in_progress.dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(**labels).observe(
                time.perf_counter() - started
            )
            HTTP_REQUESTS_TOTAL.labels(**labels, status_code=str(status_code)).inc()


class TracingMiddleware(BaseHTTPMiddleware):
    """Open a server span per request, tagged with the byte range asked for."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        route = normalize_path(request.url.path)
        attributes = {
            "http.method": request.method,
            "http.route": route,
            "http.scheme": request.url.scheme,
        }
        range_header = request.headers.get("range")
        if range_header:
            attributes["http.request.range"] = range_header

        with create_span(f"{request.method} {route}", attributes, trace.SpanKind.SERVER):
            try:
                response = await call_next(request)
            except Exception as e:
                record_exception(e)
                raise
            add_span_attributes({"http.status_code": response.status_code})
            return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Write one access log record per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        context = {
            "method": request.method,
            "path": normalize_path(request.url.path),
            "range": request.headers.get("range"),
            "client_ip": request.client.host if request.client else None,
        }

        try:
            response = await call_next(request)
        except Exception:
            access_logger.exception(
                "Request failed", extra={**context, "duration_ms": _elapsed_ms(started)}
            )
            raise

        access_logger.info(
            "Request completed",
            extra={
                **context,
                "status_code": response.status_code,
                "duration_ms": _elapsed_ms(started),
            },
        )
        return response
