"""Intake pipeline: validate, triage, allocate a code and persist a new call."""

import logging
import math
from dataclasses import dataclass
from typing import Any

from callcenter.errors import AllocationExhausted, CallValidationError, CodeCollision, FieldError
from callcenter.models import Call, CallStatus, Unit, Urgency
from callcenter.services.classifier import ClassificationResult, TriageClient
from callcenter.services.codes import CodeAllocator
from callcenter.services.store import CallStore, utcnow

logger = logging.getLogger(__name__)

DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 1000
ADDRESS_MIN_LENGTH = 5
ADDRESS_MAX_LENGTH = 255

# Applied field by field whenever classification leaves a value unset.
TRIAGE_FALLBACK = {
    "urgency": Urgency.GREEN,
    "unit": Unit.POLICE,
}


@dataclass(frozen=True)
class Report:
    """A validated raw report."""

    description: str
    address: str
    lat: float
    lng: float


def _check_text(
    errors: list[FieldError], field: str, value: Any, min_length: int, max_length: int
) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(FieldError(field, "Field is required"))
        return None
    if not isinstance(value, str):
        errors.append(FieldError(field, "Must be a string"))
        return None
    value = value.strip()
    if not min_length <= len(value) <= max_length:
        errors.append(
            FieldError(field, f"Must be between {min_length} and {max_length} characters")
        )
        return None
    return value


def _check_coordinate(errors: list[FieldError], field: str, value: Any, bound: float) -> float | None:
    if value is None:
        errors.append(FieldError(field, "Field is required"))
        return None
    if isinstance(value, bool):
        errors.append(FieldError(field, "Must be a number"))
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors.append(FieldError(field, "Must be a number"))
        return None
    if not math.isfinite(number) or not -bound <= number <= bound:
        errors.append(FieldError(field, f"Must be between {-bound:g} and {bound:g}"))
        return None
    return number


def validate_report(description: Any, address: Any, lat: Any, lng: Any) -> Report:
    """
    Validate all four intake inputs at once.

    Raises CallValidationError listing every offending field.
    """
    errors: list[FieldError] = []
    clean_description = _check_text(
        errors, "description", description, DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH
    )
    clean_address = _check_text(errors, "address", address, ADDRESS_MIN_LENGTH, ADDRESS_MAX_LENGTH)
    clean_lat = _check_coordinate(errors, "lat", lat, 90)
    clean_lng = _check_coordinate(errors, "lng", lng, 180)

    if errors:
        raise CallValidationError(errors)

    return Report(
        description=clean_description,
        address=clean_address,
        lat=clean_lat,
        lng=clean_lng,
    )


def resolve_triage(report: Report, result: ClassificationResult) -> tuple[Urgency, Unit, str]:
    """Merge a classification result with the fallback table."""
    urgency = result.urgency or TRIAGE_FALLBACK["urgency"]
    unit = result.unit or TRIAGE_FALLBACK["unit"]

    description = report.description
    rewrite = result.reformulated_text
    if rewrite and DESCRIPTION_MIN_LENGTH <= len(rewrite) <= DESCRIPTION_MAX_LENGTH:
        description = rewrite
    elif rewrite:
        logger.info("Discarding reformulation outside the description length bounds")

    return urgency, unit, description


class IntakeCoordinator:
    """
    Orchestrates one intake end to end.

    Classification failures degrade to the fallback table and never abort
    the intake. Code collisions at insert time trigger a fresh allocation,
    bounded by the allocator's attempt budget.
    """

    def __init__(self, store: CallStore, triage: TriageClient, allocator: CodeAllocator):
        self.store = store
        self.triage = triage
        self.allocator = allocator

    async def intake(self, description: Any, address: Any, lat: Any, lng: Any) -> Call:
        """Validate, classify and persist a report. Returns the stored call."""
        report = validate_report(description, address, lat, lng)

        result = await self.triage.classify(report.description)
        if not result.classified:
            logger.warning("Classification unavailable, applying fallback triage")
        urgency, unit, text = resolve_triage(report, result)

        for attempt in range(1, self.allocator.max_attempts + 1):
            code = await self.allocator.allocate(self.store)
            call = Call(
                code=code,
                unit=unit,
                urgency=urgency,
                description=text,
                address=report.address,
                lat=report.lat,
                lng=report.lng,
                status=CallStatus.PENDING,
                created_at=utcnow(),
            )
            try:
                return await self.store.insert(call)
            except CodeCollision:
                logger.info(f"Retrying code allocation (attempt {attempt})")

        logger.error("Intake aborted: no free call code")
        raise AllocationExhausted(self.allocator.max_attempts)
