from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from userapi.observability.metrics import RequestMetrics


def route_label(scope: dict[str, Any]) -> str:
    """Matched route template (``/api/users/{user_id}``) or the raw path if nothing matched."""
    route = scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    return scope.get("path") or ""


class RequestInstrumentationMiddleware:
    """Adds request_id context, access logs, and per-request HTTP metrics.

    Each request is observed exactly once, from the ``finally`` block: normal
    responses, exceptions raised by the app and cancelled requests all pass
    through it.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        metrics: RequestMetrics,
        excluded_paths: frozenset[str] = frozenset({"/metrics"}),
    ) -> None:
        self.app = app
        self.metrics = metrics
        # Avoid self-observing the scrape endpoint.
        self._excluded_metric_paths = excluded_paths

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path")
        if path in self._excluded_metric_paths:
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        method = scope.get("method", "")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        in_flight = self._safely("in_flight_inc_failed", self.metrics.inc_in_flight)
        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed = perf_counter() - start
            route = route_label(scope)

            # Update metrics first so they update even if logging misbehaves.
            self._safely(
                "request_observe_failed",
                self.metrics.observe_request,
                method=method,
                route=route,
                status_code=status_code,
                duration=elapsed,
            )
            if in_flight:
                self._safely("in_flight_dec_failed", self.metrics.dec_in_flight)

            structlog.get_logger("access").info(
                "http_request",
                route=route,
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000.0, 2),
            )

            structlog.contextvars.clear_contextvars()

    @staticmethod
    def _safely(event: str, fn: Callable[..., None], **kwargs: Any) -> bool:
        # Metrics are best-effort; a failure here must never change the response.
        try:
            fn(**kwargs)
        except Exception:
            structlog.get_logger("metrics").warning(event, exc_info=True)
            return False
        return True
