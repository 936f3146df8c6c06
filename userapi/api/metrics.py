from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, Response

from userapi.observability.metrics import MetricsRegistry


router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
async def metrics(request: Request) -> Response:
    if not request.app.state.settings.enable_metrics_endpoint:
        raise HTTPException(status_code=404, detail="Not found")
    registry: MetricsRegistry = request.app.state.metrics_registry
    return Response(content=registry.generate(), media_type=registry.content_type)
