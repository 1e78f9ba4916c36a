"""Pydantic schemas for API request/response validation."""

from callcenter.schemas.call import (
    AssignRequest,
    CallCreate,
    CallOut,
    CallUpdate,
    DashboardResponse,
    DeleteResponse,
    GeocodeResponse,
    NoteRequest,
    StatsResponse,
    StatusUpdate,
    ValidationErrorResponse,
)

__all__ = [
    "AssignRequest",
    "CallCreate",
    "CallOut",
    "CallUpdate",
    "DashboardResponse",
    "DeleteResponse",
    "GeocodeResponse",
    "NoteRequest",
    "StatsResponse",
    "StatusUpdate",
    "ValidationErrorResponse",
]
