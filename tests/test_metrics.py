import pytest
from prometheus_client import Counter, Gauge, Histogram
from prometheus_client.parser import text_string_to_metric_families

from userapi.observability.metrics import DuplicateMetricName, MetricsRegistry, RequestMetrics


def _samples(body: str, name: str) -> list:
    return [s for family in text_string_to_metric_families(body) for s in family.samples if s.name == name]


def test_register_rejects_duplicate_names() -> None:
    registry = MetricsRegistry()
    registry.register(Counter("jobs_total", "Jobs", registry=None))
    with pytest.raises(DuplicateMetricName):
        registry.register(Counter("jobs_total", "Jobs again", registry=None))


def test_collect_applies_default_labels_without_touching_instruments() -> None:
    registry = MetricsRegistry(default_labels={"app": "svc"})
    gauge = registry.register(Gauge("queue_depth", "Depth", ["queue"], registry=None))
    gauge.labels(queue="a").set(4)

    families = list(registry.collect())
    (sample,) = [s for f in families for s in f.samples if s.name == "queue_depth"]
    assert sample.labels == {"app": "svc", "queue": "a"}
    assert sample.value == 4

    # Raw instrument state stays unlabelled and unchanged.
    assert registry.get_sample_value("queue_depth", {"queue": "a"}) == 4
    assert list(registry.collect())[0].samples[0].labels == {"app": "svc", "queue": "a"}


def test_generate_renders_help_type_and_samples() -> None:
    registry = MetricsRegistry(default_labels={"app": "svc"})
    histogram = registry.register(Histogram("work_seconds", "Work time", buckets=(1, 5), registry=None))
    histogram.observe(2)

    body = registry.generate().decode()
    assert "# HELP work_seconds Work time" in body
    assert "# TYPE work_seconds histogram" in body
    (inf_bucket,) = [s for s in _samples(body, "work_seconds_bucket") if s.labels["le"] == "+Inf"]
    assert inf_bucket.labels["app"] == "svc"
    assert inf_bucket.value == 1


def test_default_process_collectors_are_opt_in() -> None:
    assert MetricsRegistry().generate() == b""
    body = MetricsRegistry(collect_default_metrics=True).generate().decode()
    assert "python_info" in body


def test_request_metrics_use_fixed_buckets_and_shared_labels() -> None:
    registry = MetricsRegistry()
    metrics = RequestMetrics(registry)
    metrics.observe_request("GET", "/api/users/{user_id}", 200, 0.2)
    metrics.observe_request("GET", "/api/users/{user_id}", 200, 4.0)

    labels = {"method": "GET", "route": "/api/users/{user_id}", "status_code": "200"}
    assert registry.get_sample_value("http_requests_total", labels) == 2
    assert registry.get_sample_value("http_request_duration_seconds_count", labels) == 2
    assert registry.get_sample_value("http_request_duration_seconds_bucket", {**labels, "le": "0.3"}) == 1
    assert registry.get_sample_value("http_request_duration_seconds_bucket", {**labels, "le": "5.0"}) == 2

    body = registry.generate().decode()
    bounds = {s.labels["le"] for s in _samples(body, "http_request_duration_seconds_bucket")}
    assert bounds == {"0.1", "0.3", "0.5", "0.7", "1.0", "3.0", "5.0", "7.0", "10.0", "+Inf"}


def test_request_metrics_cannot_be_registered_twice_in_one_registry() -> None:
    registry = MetricsRegistry()
    RequestMetrics(registry)
    with pytest.raises(DuplicateMetricName):
        RequestMetrics(registry)


async def test_metrics_endpoint_exposes_labelled_request_metrics(api_client, settings) -> None:
    assert (await api_client.get("/api/users/1")).status_code == 200
    assert (await api_client.get("/api/users/2")).status_code == 200
    assert (await api_client.get("/api/users/999")).status_code == 404

    resp = await api_client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")

    counts = {
        (s.labels["route"], s.labels["status_code"]): s.value
        for s in _samples(resp.text, "http_requests_total")
        if s.labels["method"] == "GET"
    }
    assert counts[("/api/users/{user_id}", "200")] == 2
    assert counts[("/api/users/{user_id}", "404")] == 1
    assert all(s.labels["app"] == settings.app_name for s in _samples(resp.text, "http_requests_total"))

    # The scrape itself is not observed.
    assert not [s for s in _samples(resp.text, "http_requests_total") if s.labels["route"] == "/metrics"]


async def test_unmatched_paths_are_labelled_with_raw_path(app, api_client) -> None:
    await api_client.get("/no/such/path")

    registry = app.state.metrics_registry
    labels = {"method": "GET", "route": "/no/such/path", "status_code": "404"}
    assert registry.get_sample_value("http_requests_total", labels) == 1


async def test_metrics_endpoint_can_be_disabled(app, api_client) -> None:
    app.state.settings = app.state.settings.model_copy(update={"enable_metrics_endpoint": False})
    resp = await api_client.get("/metrics")
    assert resp.status_code == 404
