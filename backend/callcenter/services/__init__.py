"""Services for intake, triage and call queries."""

from callcenter.services.classifier import ClassificationResult, TriageClient
from callcenter.services.codes import CodeAllocator
from callcenter.services.geocoder import Geocoder
from callcenter.services.intake import IntakeCoordinator
from callcenter.services.queries import QueryService
from callcenter.services.store import CallStore

__all__ = [
    "CallStore",
    "ClassificationResult",
    "CodeAllocator",
    "Geocoder",
    "IntakeCoordinator",
    "QueryService",
    "TriageClient",
]
