"""Aggregate endpoints: statistics and the operator dashboard."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from callcenter.dependencies import get_query_service
from callcenter.schemas.call import CallOut, DashboardResponse, StatsResponse
from callcenter.services.queries import QueryService

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    queries: Annotated[QueryService, Depends(get_query_service)],
    period: int = Query(7, ge=1, le=365, description="Window size in days"),
) -> StatsResponse:
    """Call counts grouped by urgency, unit and status over the last `period` days."""
    stats = await queries.stats(period_days=period)
    return StatsResponse.model_validate(stats)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    queries: Annotated[QueryService, Depends(get_query_service)],
) -> DashboardResponse:
    """Active call counts and the five most recent calls."""
    dashboard = await queries.dashboard()
    return DashboardResponse(
        active_calls=dashboard.active_calls,
        urgent_calls=dashboard.urgent_calls,
        recent_calls=[CallOut.model_validate(c) for c in dashboard.recent_calls],
    )
