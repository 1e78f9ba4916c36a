"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from callcenter.database import get_db
from callcenter.models import ACTIVE_STATUSES, Call

router = APIRouter(tags=["health"])


class CallStoreStatus(BaseModel):
    """Status of the call store."""

    record_count: int
    active_count: int
    newest_record: datetime | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    calls: CallStoreStatus


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """
    Health check endpoint with store status.

    Returns live and active call counts and the newest call timestamp.
    """
    live = Call.deleted_at.is_(None)

    count_result = await db.execute(select(func.count(Call.id)).where(live))
    active_result = await db.execute(
        select(func.count(Call.id)).where(live, Call.status.in_(ACTIVE_STATUSES))
    )
    newest_result = await db.execute(select(func.max(Call.created_at)).where(live))

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        calls=CallStoreStatus(
            record_count=count_result.scalar() or 0,
            active_count=active_result.scalar() or 0,
            newest_record=newest_result.scalar(),
        ),
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe for container orchestration."""
    return {"status": "alive"}
