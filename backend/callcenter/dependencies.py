"""FastAPI dependencies wiring services to the request-scoped session."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from callcenter.database import get_db
from callcenter.services.classifier import TriageClient
from callcenter.services.codes import CodeAllocator
from callcenter.services.geocoder import Geocoder
from callcenter.services.intake import IntakeCoordinator
from callcenter.services.queries import QueryService
from callcenter.services.store import CallStore


def get_call_store(db: Annotated[AsyncSession, Depends(get_db)]) -> CallStore:
    return CallStore(db)


def get_query_service(store: Annotated[CallStore, Depends(get_call_store)]) -> QueryService:
    return QueryService(store)


def get_triage_client() -> TriageClient:
    return TriageClient()


def get_code_allocator() -> CodeAllocator:
    return CodeAllocator()


@lru_cache
def get_geocoder() -> Geocoder:
    """Shared geocoder so its lookup cache survives across requests."""
    return Geocoder()


def get_intake_coordinator(
    store: Annotated[CallStore, Depends(get_call_store)],
    triage: Annotated[TriageClient, Depends(get_triage_client)],
    allocator: Annotated[CodeAllocator, Depends(get_code_allocator)],
) -> IntakeCoordinator:
    return IntakeCoordinator(store, triage, allocator)
