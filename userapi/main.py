from __future__ import annotations

from time import monotonic

from fastapi import FastAPI

from userapi.api.errors import register_exception_handlers
from userapi.api.metrics import router as metrics_router
from userapi.api.stats import router as stats_router
from userapi.api.users import router as users_router
from userapi.config import Settings, get_settings
from userapi.observability.logging import configure_logging
from userapi.observability.metrics import MetricsRegistry, RequestMetrics
from userapi.observability.middleware import RequestInstrumentationMiddleware
from userapi.services.user_store import UserStore


def create_app(settings: Settings | None = None, store: UserStore | None = None) -> FastAPI:
    """Build the application with its own store and metrics registry."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, service=settings.app_name)

    if store is None:
        store = UserStore.with_sample_users() if settings.seed_users else UserStore()

    registry = MetricsRegistry(
        default_labels=settings.default_labels,
        collect_default_metrics=settings.collect_default_metrics,
    )
    request_metrics = RequestMetrics(registry)

    app = FastAPI(title="User Service", version="0.1.0")
    app.state.settings = settings
    app.state.user_store = store
    app.state.metrics_registry = registry
    app.state.request_metrics = request_metrics
    app.state.started_at = monotonic()

    app.add_middleware(RequestInstrumentationMiddleware, metrics=request_metrics)
    register_exception_handlers(app)

    app.include_router(users_router)
    app.include_router(stats_router)
    app.include_router(metrics_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
