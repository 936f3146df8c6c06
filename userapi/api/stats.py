from __future__ import annotations

from datetime import datetime, timezone
from time import monotonic

import psutil
from fastapi import APIRouter, Depends, Request

from userapi.api.errors import internal_errors
from userapi.api.users import get_user_store
from userapi.models.schemas import ErrorResponse, Stats, StatsResponse
from userapi.services.user_store import UserStore

router = APIRouter(prefix="/api", tags=["stats"], responses={500: {"model": ErrorResponse}})


def _memory_usage() -> dict[str, int]:
    """Current resident and virtual memory of this process, in bytes."""
    info = psutil.Process().memory_info()
    return {"rss": info.rss, "vms": info.vms}


@router.get("/stats", response_model=StatsResponse)
def get_stats(request: Request, store: UserStore = Depends(get_user_store)) -> StatsResponse:
    with internal_errors("Failed to fetch stats"):
        stats = Stats(
            total_users=store.count(),
            uptime=monotonic() - request.app.state.started_at,
            memory_usage=_memory_usage(),
            timestamp=datetime.now(timezone.utc),
        )
    return StatsResponse(data=stats)
