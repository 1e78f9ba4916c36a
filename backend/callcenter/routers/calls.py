"""API routes for emergency calls."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request

from callcenter.config import get_settings
from callcenter.dependencies import get_call_store, get_intake_coordinator, get_query_service
from callcenter.limiter import limiter
from callcenter.models import CallStatus, Unit, Urgency
from callcenter.schemas.call import (
    AssignRequest,
    CallCreate,
    CallOut,
    CallUpdate,
    DeleteResponse,
    NoteRequest,
    StatusUpdate,
    ValidationErrorResponse,
)
from callcenter.services.intake import IntakeCoordinator
from callcenter.services.queries import QueryService
from callcenter.services.store import CallStore

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/calls", tags=["calls"])


@router.post(
    "",
    response_model=CallOut,
    status_code=201,
    responses={400: {"model": ValidationErrorResponse}},
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def create_call(
    request: Request,
    payload: CallCreate,
    coordinator: Annotated[IntakeCoordinator, Depends(get_intake_coordinator)],
) -> CallOut:
    """
    Submit a raw emergency report.

    The report is classified (urgency and responder unit), its description is
    rewritten in technical terms, and it is stored under a fresh short code.
    If the classification provider is down the call is still created, with
    Green urgency and a Police unit.
    """
    call = await coordinator.intake(
        payload.description, payload.address, payload.lat, payload.lng
    )
    return CallOut.model_validate(call)


@router.get("", response_model=list[CallOut])
async def list_calls(
    queries: Annotated[QueryService, Depends(get_query_service)],
    status: CallStatus | None = None,
    urgency: Urgency | None = None,
    unit: Unit | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[CallOut]:
    """List live calls, most urgent first and newest first within a tier."""
    calls = await queries.list_calls(
        status=status, urgency=urgency, unit=unit, limit=limit, offset=offset
    )
    return [CallOut.model_validate(c) for c in calls]


@router.get("/code/{code}", response_model=CallOut)
async def get_call_by_code(
    code: str,
    queries: Annotated[QueryService, Depends(get_query_service)],
    include_deleted: bool = Query(False, description="Also match soft-deleted calls"),
) -> CallOut:
    """Get a call by its short code (case-insensitive)."""
    call = await queries.by_code(code, include_deleted=include_deleted)
    if not call:
        raise HTTPException(status_code=404, detail="Call not found")
    return CallOut.model_validate(call)


@router.get("/urgency/{level}", response_model=list[CallOut])
async def get_calls_by_urgency(
    level: Urgency,
    queries: Annotated[QueryService, Depends(get_query_service)],
    include_terminal: bool = Query(False, description="Include completed and cancelled calls"),
) -> list[CallOut]:
    """Calls of a single urgency tier; active ones only by default."""
    calls = await queries.by_urgency(level, include_terminal=include_terminal)
    return [CallOut.model_validate(c) for c in calls]


@router.get("/location/{lat}/{lng}", response_model=list[CallOut])
async def get_calls_near(
    queries: Annotated[QueryService, Depends(get_query_service)],
    lat: float = Path(..., ge=-90, le=90),
    lng: float = Path(..., ge=-180, le=180),
    radius: float = Query(5.0, gt=0, le=1000, description="Radius in km"),
) -> list[CallOut]:
    """Active calls within an approximate square of `radius` km around a point."""
    calls = await queries.near(lat, lng, radius)
    return [CallOut.model_validate(c) for c in calls]


@router.get("/{call_id}", response_model=CallOut)
async def get_call(
    call_id: int,
    queries: Annotated[QueryService, Depends(get_query_service)],
    include_deleted: bool = Query(False, description="Return soft-deleted calls too"),
) -> CallOut:
    """Get a specific call by id."""
    call = await queries.by_id(call_id, include_deleted=include_deleted)
    if not call:
        raise HTTPException(status_code=404, detail="Call not found")
    return CallOut.model_validate(call)


@router.put("/{call_id}", response_model=CallOut)
async def update_call(
    call_id: int,
    payload: CallUpdate,
    store: Annotated[CallStore, Depends(get_call_store)],
) -> CallOut:
    """
    Partially update a call.

    `code` is immutable and silently ignored. `notes` is appended to the
    call's log rather than replacing it.
    """
    call = await store.update(call_id, payload.model_dump(exclude_unset=True))
    return CallOut.model_validate(call)


@router.patch("/{call_id}/status", response_model=CallOut)
async def update_call_status(
    call_id: int,
    payload: StatusUpdate,
    store: Annotated[CallStore, Depends(get_call_store)],
) -> CallOut:
    """Advance a call through its lifecycle."""
    call = await store.transition(call_id, payload.status, operator=payload.assigned_to)
    return CallOut.model_validate(call)


@router.post("/{call_id}/assign", response_model=CallOut)
async def assign_call(
    call_id: int,
    payload: AssignRequest,
    store: Annotated[CallStore, Depends(get_call_store)],
) -> CallOut:
    """Assign a pending call to an operator."""
    call = await store.assign(call_id, payload.operator)
    return CallOut.model_validate(call)


@router.post("/{call_id}/notes", response_model=CallOut)
async def add_call_note(
    call_id: int,
    payload: NoteRequest,
    store: Annotated[CallStore, Depends(get_call_store)],
) -> CallOut:
    """Append a timestamped note."""
    call = await store.add_note(call_id, payload.note)
    return CallOut.model_validate(call)


@router.delete("/{call_id}", response_model=DeleteResponse)
async def delete_call(
    call_id: int,
    store: Annotated[CallStore, Depends(get_call_store)],
) -> DeleteResponse:
    """Soft-delete a call. Its code becomes available to new calls."""
    call = await store.soft_delete(call_id)
    return DeleteResponse(
        id=call.id,
        code=call.code,
        deleted_at=call.deleted_at,
        message="Call deleted",
    )
