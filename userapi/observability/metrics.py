"""Prometheus metrics for the service.

A single ``MetricsRegistry`` is built per application and shared by the
request middleware (which writes to it) and the ``/metrics`` endpoint (which
renders it).  It wraps a private ``CollectorRegistry`` so nothing leaks into
prometheus_client's global default registry.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from typing import Any

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.metrics_core import Metric

REQUEST_DURATION_BUCKETS = (0.1, 0.3, 0.5, 0.7, 1, 3, 5, 7, 10)


class DuplicateMetricName(ValueError):
    """Raised when an instrument's name is already taken in the registry."""


class MetricsRegistry:
    """Named instruments plus a fixed set of labels stamped on every sample."""

    def __init__(self, default_labels: Mapping[str, str] | None = None, collect_default_metrics: bool = False) -> None:
        self._registry = CollectorRegistry()
        self.default_labels = dict(default_labels or {})
        if collect_default_metrics:
            ProcessCollector(registry=self._registry)
            PlatformCollector(registry=self._registry)
            GCCollector(registry=self._registry)

    def register(self, instrument: Any) -> Any:
        try:
            self._registry.register(instrument)
        except ValueError as exc:
            raise DuplicateMetricName(str(exc)) from exc
        return instrument

    def collect(self) -> Iterator[Metric]:
        for family in self._registry.collect():
            if not self.default_labels:
                yield family
                continue
            labelled = copy.copy(family)
            labelled.samples = [
                sample._replace(labels={**self.default_labels, **sample.labels}) for sample in family.samples
            ]
            yield labelled

    def get_sample_value(self, name: str, labels: Mapping[str, str] | None = None) -> float | None:
        """Current raw value of a sample, without default labels."""
        return self._registry.get_sample_value(name, dict(labels or {}))

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def generate(self) -> bytes:
        return generate_latest(self)  # type: ignore[arg-type]


class RequestMetrics:
    """HTTP request instruments: duration histogram, request counter, in-flight gauge."""

    def __init__(self, registry: MetricsRegistry) -> None:
        self.registry = registry

        self._request_duration = registry.register(
            Histogram(
                "http_request_duration_seconds",
                "Duration of HTTP requests in seconds",
                ["method", "route", "status_code"],
                buckets=REQUEST_DURATION_BUCKETS,
                registry=None,
            )
        )
        self._requests_total = registry.register(
            Counter(
                "http_requests_total",
                "Total number of HTTP requests",
                ["method", "route", "status_code"],
                registry=None,
            )
        )
        self._in_flight = registry.register(
            Gauge(
                "active_connections",
                "Number of active connections",
                registry=None,
            )
        )

    def inc_in_flight(self) -> None:
        self._in_flight.inc()

    def dec_in_flight(self) -> None:
        self._in_flight.dec()

    def observe_request(self, method: str, route: str, status_code: int, duration: float) -> None:
        labels = {"method": method, "route": route, "status_code": str(status_code)}
        self._request_duration.labels(**labels).observe(duration)
        self._requests_total.labels(**labels).inc()
