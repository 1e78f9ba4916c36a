"""Read-side queries over the call store."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, select

from callcenter.models import ACTIVE_STATUSES, Call, CallStatus, Unit, Urgency
from callcenter.services.store import CallStore, utcnow

KM_PER_DEGREE = 111.32
RECENT_CALLS_LIMIT = 5


@dataclass(frozen=True)
class StatsBucket:
    urgency: Urgency
    unit: Unit
    status: CallStatus
    count: int


@dataclass(frozen=True)
class CallStats:
    total_calls: int
    period_days: int
    since: datetime
    breakdown: list[StatsBucket]


@dataclass(frozen=True)
class Dashboard:
    active_calls: int
    urgent_calls: int
    recent_calls: list[Call]


def bounding_box(lat: float, lng: float, radius_km: float) -> tuple[float, float, float, float]:
    """
    Approximate square around a point as (min_lat, max_lat, min_lng, max_lng).

    Uses a flat 111.32 km per degree on both axes.
    """
    delta = radius_km / KM_PER_DEGREE
    return lat - delta, lat + delta, lng - delta, lng + delta


class QueryService:
    """Lookups, filtered listings and aggregates. "No match" is never an error."""

    def __init__(self, store: CallStore):
        self.store = store
        self.db = store.db

    async def by_id(self, call_id: int, include_deleted: bool = False) -> Call | None:
        return await self.store.get(call_id, include_deleted=include_deleted)

    async def by_code(self, code: str, include_deleted: bool = False) -> Call | None:
        return await self.store.get_by_code(code, include_deleted=include_deleted)

    async def list_calls(
        self,
        status: CallStatus | None = None,
        urgency: Urgency | None = None,
        unit: Unit | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Call]:
        """Filtered, priority-ordered listing of live calls."""
        conditions = []
        if status:
            conditions.append(Call.status == status)
        if urgency:
            conditions.append(Call.urgency == urgency)
        if unit:
            conditions.append(Call.unit == unit)
        return await self.store.scan(*conditions, limit=limit, offset=offset)

    async def by_urgency(self, urgency: Urgency, include_terminal: bool = False) -> list[Call]:
        """Calls of one urgency tier, active ones only by default."""
        conditions = [Call.urgency == urgency]
        if not include_terminal:
            conditions.append(Call.status.in_(ACTIVE_STATUSES))
        return await self.store.scan(*conditions)

    async def near(self, lat: float, lng: float, radius_km: float = 5.0) -> list[Call]:
        """Active calls inside the bounding box around (lat, lng)."""
        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_km)
        return await self.store.scan(
            Call.status.in_(ACTIVE_STATUSES),
            Call.lat.between(min_lat, max_lat),
            Call.lng.between(min_lng, max_lng),
        )

    async def stats(self, period_days: int = 7) -> CallStats:
        """Counts grouped by (urgency, unit, status) over the last `period_days` days."""
        since = utcnow() - timedelta(days=period_days)
        window = [Call.deleted_at.is_(None), Call.created_at >= since]

        result = await self.db.execute(
            select(Call.urgency, Call.unit, Call.status, func.count(Call.id))
            .where(*window)
            .group_by(Call.urgency, Call.unit, Call.status)
            .order_by(Call.urgency, Call.unit, Call.status)
        )
        breakdown = [
            StatsBucket(urgency=urgency, unit=unit, status=status, count=count)
            for urgency, unit, status, count in result.all()
        ]

        return CallStats(
            total_calls=sum(bucket.count for bucket in breakdown),
            period_days=period_days,
            since=since,
            breakdown=breakdown,
        )

    async def dashboard(self) -> Dashboard:
        """Active and active-Red counts plus the most recent calls."""
        active = Call.status.in_(ACTIVE_STATUSES)
        live = Call.deleted_at.is_(None)

        active_count = await self.db.execute(select(func.count(Call.id)).where(live, active))
        urgent_count = await self.db.execute(
            select(func.count(Call.id)).where(live, active, Call.urgency == Urgency.RED)
        )
        recent = await self.store.scan(
            limit=RECENT_CALLS_LIMIT,
            order_by=[Call.created_at.desc(), Call.id.desc()],
        )

        return Dashboard(
            active_calls=active_count.scalar() or 0,
            urgent_calls=urgent_count.scalar() or 0,
            recent_calls=recent,
        )
