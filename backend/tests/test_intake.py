"""Tests for the intake coordinator."""

import re
from unittest.mock import AsyncMock

import pytest

from callcenter.errors import AllocationExhausted, CallValidationError
from callcenter.models import CallStatus, Unit, Urgency
from callcenter.services.classifier import ClassificationResult
from callcenter.services.codes import CodeAllocator
from callcenter.services.intake import (
    IntakeCoordinator,
    resolve_triage,
    validate_report,
)

DESCRIPTION = "Persona ferita in strada"
ADDRESS = "Via Test 1"


class TestValidateReport:
    """Tests for validate_report."""

    def test_valid_report_is_normalized(self):
        report = validate_report(f"  {DESCRIPTION}  ", ADDRESS, "45.0", 9)

        assert report.description == DESCRIPTION
        assert report.lat == 45.0
        assert report.lng == 9.0

    def test_all_offending_fields_listed(self):
        """Test every bad field is reported at once."""
        with pytest.raises(CallValidationError) as exc_info:
            validate_report("short", None, 91.0, "east")

        fields = [e.field for e in exc_info.value.errors]
        assert fields == ["description", "address", "lat", "lng"]

    @pytest.mark.parametrize(
        "lat,lng",
        [(None, 9.0), (45.0, None), (-90.1, 9.0), (45.0, 180.1), (float("nan"), 9.0), (True, 9.0)],
    )
    def test_bad_coordinates(self, lat, lng):
        with pytest.raises(CallValidationError):
            validate_report(DESCRIPTION, ADDRESS, lat, lng)

    def test_boundary_coordinates_accepted(self):
        report = validate_report(DESCRIPTION, ADDRESS, -90, 180)
        assert (report.lat, report.lng) == (-90.0, 180.0)

    def test_blank_description_is_missing(self):
        with pytest.raises(CallValidationError) as exc_info:
            validate_report("     ", ADDRESS, 45.0, 9.0)

        assert exc_info.value.errors[0].message == "Field is required"


class TestResolveTriage:
    """Tests for the fallback table."""

    def test_unclassified_uses_fallback(self):
        report = validate_report(DESCRIPTION, ADDRESS, 45.0, 9.0)

        urgency, unit, text = resolve_triage(report, ClassificationResult())

        assert (urgency, unit, text) == (Urgency.GREEN, Unit.POLICE, DESCRIPTION)

    def test_partial_classification(self):
        """Test only the unset field falls back."""
        report = validate_report(DESCRIPTION, ADDRESS, 45.0, 9.0)
        result = ClassificationResult(urgency=Urgency.RED, classified=True)

        urgency, unit, _ = resolve_triage(report, result)

        assert (urgency, unit) == (Urgency.RED, Unit.POLICE)

    def test_too_short_rewrite_discarded(self):
        report = validate_report(DESCRIPTION, ADDRESS, 45.0, 9.0)
        result = ClassificationResult(reformulated_text="Ferito")

        assert resolve_triage(report, result)[2] == DESCRIPTION


class TestIntakeCoordinator:
    """Tests for IntakeCoordinator.intake."""

    @pytest.mark.asyncio
    async def test_intake_classified(self, store, fake_triage, classified_result):
        coordinator = IntakeCoordinator(store, fake_triage, CodeAllocator())

        call = await coordinator.intake(DESCRIPTION, ADDRESS, 45.0, 9.0)

        assert call.id is not None
        assert re.match(r"^[A-Z][0-9]{2}$", call.code)
        assert call.urgency == Urgency.RED
        assert call.unit == Unit.AMBULANCE
        assert call.description == classified_result.reformulated_text
        assert call.status == CallStatus.PENDING
        assert call.created_at is not None
        assert fake_triage.calls == [DESCRIPTION]

    @pytest.mark.asyncio
    async def test_intake_falls_back_when_unclassified(self, store, make_triage):
        """Test intake never fails because classification is down."""
        triage = make_triage(ClassificationResult(classified=False))
        coordinator = IntakeCoordinator(store, triage, CodeAllocator())

        call = await coordinator.intake(DESCRIPTION, ADDRESS, 45.0, 9.0)

        assert call.urgency == Urgency.GREEN
        assert call.unit == Unit.POLICE
        assert call.description == DESCRIPTION

    @pytest.mark.asyncio
    async def test_invalid_input_skips_provider(self, store, fake_triage):
        """Test validation fails fast with no external call and no insert."""
        coordinator = IntakeCoordinator(store, fake_triage, CodeAllocator())

        with pytest.raises(CallValidationError):
            await coordinator.intake(DESCRIPTION, ADDRESS, 45.0, 200.0)

        assert fake_triage.calls == []
        assert await store.scan() == []

    @pytest.mark.asyncio
    async def test_codes_unique_across_intakes(self, store, fake_triage):
        coordinator = IntakeCoordinator(store, fake_triage, CodeAllocator())

        calls = [await coordinator.intake(DESCRIPTION, ADDRESS, 45.0, 9.0) for _ in range(25)]

        assert len({c.code for c in calls}) == 25

    @pytest.mark.asyncio
    async def test_insert_collision_retries_once(self, store, fake_triage, make_call):
        """Test a code taken between check and insert costs exactly one retry."""
        await make_call(code="A11")
        allocator = CodeAllocator()
        # The allocator's check missed the concurrent holder of A11.
        allocator.allocate = AsyncMock(side_effect=["A11", "B22"])
        coordinator = IntakeCoordinator(store, fake_triage, allocator)

        call = await coordinator.intake(DESCRIPTION, ADDRESS, 45.0, 9.0)

        assert call.code == "B22"
        assert allocator.allocate.call_count == 2
        codes = [c.code for c in await store.scan()]
        assert sorted(codes) == ["A11", "B22"]

    @pytest.mark.asyncio
    async def test_repeated_draw_retries_once(self, store, fake_triage, make_call, scripted_allocator):
        """Test a random repeat of a reserved code triggers one redraw, not a duplicate."""
        await make_call(code="A11")
        allocator = scripted_allocator("A11B22")
        coordinator = IntakeCoordinator(store, fake_triage, allocator)

        call = await coordinator.intake(DESCRIPTION, ADDRESS, 45.0, 9.0)

        assert call.code == "B22"
        assert allocator.rng.draws == 6
        assert len(await store.scan()) == 2

    @pytest.mark.asyncio
    async def test_allocation_exhausted(self, store, fake_triage, make_call):
        await make_call(code="A11")
        allocator = CodeAllocator(max_attempts=2)
        allocator.allocate = AsyncMock(return_value="A11")
        coordinator = IntakeCoordinator(store, fake_triage, allocator)

        with pytest.raises(AllocationExhausted):
            await coordinator.intake(DESCRIPTION, ADDRESS, 45.0, 9.0)

        assert len(await store.scan()) == 1
