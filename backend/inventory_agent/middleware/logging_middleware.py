from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Dict

from prometheus_client import Counter, Histogram
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..logging_utils import bind_request_context, bind_thread_context, clear_context

REQUEST_ID_HEADER = "x-request-id"

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status_code"],
)

# chat turns wait on one or more model round-trips
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "route"],
    buckets=(0.25, 0.5, 1, 2.5, 5, 10, 20, 40, 80, float("inf")),
)


class RequestLoggingMiddleware:
    """Tag every request with an id, write one access log line, record metrics.

    The route template and ``thread_id`` path parameter are only known once
    the router has matched, so they are read back from the scope afterwards.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self.logger = logging.getLogger("inventory_agent.http")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        clear_context()
        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        bind_request_context(request_id)
        response: Dict[str, Any] = {"status_code": 500}
        start = time.perf_counter()

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                response["status_code"] = message["status"]
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Exception:
            self._finish(scope, 500, start, failed=True)
            raise
        else:
            self._finish(scope, response["status_code"], start)
        finally:
            clear_context()

    def _finish(self, scope: Scope, status_code: int, start: float, failed: bool = False) -> None:
        duration = time.perf_counter() - start
        route = getattr(scope.get("route"), "path", scope.get("path", ""))
        method = scope.get("method", "")
        thread_id = (scope.get("path_params") or {}).get("thread_id")
        bind_thread_context(thread_id)

        REQUEST_COUNT.labels(method=method, route=route, status_code=str(status_code)).inc()
        REQUEST_LATENCY.labels(method=method, route=route).observe(duration)

        extra = {
            "method": method,
            "route": route,
            "status_code": status_code,
            "duration_ms": round(duration * 1000, 2),
        }
        if failed:
            self.logger.exception("HTTP request failed", extra=extra)
        else:
            self.logger.info("HTTP request completed", extra=extra)
