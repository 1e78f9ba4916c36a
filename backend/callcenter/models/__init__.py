"""Database models."""

from callcenter.models.call import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    UNIT_TRANSLATIONS,
    Call,
    CallStatus,
    Unit,
    Urgency,
)

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "UNIT_TRANSLATIONS",
    "Call",
    "CallStatus",
    "Unit",
    "Urgency",
]
