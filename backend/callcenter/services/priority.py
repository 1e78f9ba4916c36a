"""Priority ordering of calls: urgency severity first, newest first within a tier."""

import bisect
import functools
from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import case
from sqlalchemy.sql.elements import ColumnElement

from callcenter.models import Call, Urgency

URGENCY_RANK: dict[Urgency, int] = {
    Urgency.RED: 0,
    Urgency.YELLOW: 1,
    Urgency.GREEN: 2,
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def priority_key(call: Call) -> tuple[int, float, int]:
    """Sort key: ascending key means higher priority."""
    return (
        URGENCY_RANK[Urgency(call.urgency)],
        -_as_utc(call.created_at).timestamp(),
        -(call.id or 0),
    )


def compare_calls(a: Call, b: Call) -> int:
    """Three-way comparator: negative when `a` should be handled before `b`."""
    key_a, key_b = priority_key(a), priority_key(b)
    return (key_a > key_b) - (key_a < key_b)


def sort_by_priority(calls: Iterable[Call]) -> list[Call]:
    """Return calls in priority order."""
    return sorted(calls, key=functools.cmp_to_key(compare_calls))


def insert_by_priority(working_set: list[Call], call: Call) -> list[Call]:
    """
    Insert a call into an already-ordered working set, keeping it ordered.

    The list is modified in place and returned.
    """
    keys = [priority_key(c) for c in working_set]
    working_set.insert(bisect.bisect_right(keys, priority_key(call)), call)
    return working_set


def order_by_priority() -> list[ColumnElement]:
    """SQL ORDER BY clauses equivalent to `priority_key`."""
    severity = case(URGENCY_RANK, value=Call.urgency, else_=len(URGENCY_RANK))
    return [severity.asc(), Call.created_at.desc(), Call.id.desc()]
