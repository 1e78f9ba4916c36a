"""Pydantic schemas for emergency calls."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from callcenter.models import UNIT_TRANSLATIONS, CallStatus, Unit, Urgency


class CallCreate(BaseModel):
    """
    Raw intake report.

    Fields are optional here so the intake pipeline can report every missing
    or out-of-range field in a single validation error.
    """

    description: str | None = None
    address: str | None = None
    lat: float | None = None
    lng: float | None = None


class CallUpdate(BaseModel):
    """Partial update. `code` is accepted but always ignored."""

    description: str | None = Field(None, min_length=10, max_length=1000)
    address: str | None = Field(None, min_length=5, max_length=255)
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    unit: Unit | None = None
    urgency: Urgency | None = None
    notes: str | None = Field(None, max_length=2000)
    code: str | None = Field(None, description="Immutable; ignored if present")

    @field_validator("unit", mode="before")
    @classmethod
    def translate_unit(cls, value):
        """Italian unit names map onto the stored English ones."""
        if isinstance(value, str):
            return UNIT_TRANSLATIONS.get(value.strip(), value)
        return value


class StatusUpdate(BaseModel):
    """Lifecycle transition request."""

    status: CallStatus
    assigned_to: str | None = Field(None, description="Required when moving to 'assigned'")


class AssignRequest(BaseModel):
    operator: str = Field(..., min_length=1, max_length=255)


class NoteRequest(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)


class CallOut(BaseModel):
    """Call response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    unit: Unit
    urgency: Urgency
    description: str
    address: str
    lat: float
    lng: float
    status: CallStatus

    created_at: datetime
    updated_at: datetime | None = None
    assigned_to: str | None = None
    notes: str | None = None
    resolved_at: datetime | None = None
    deleted_at: datetime | None = None

    @computed_field
    @property
    def resolution_minutes(self) -> int | None:
        """Whole minutes from creation to resolution."""
        if self.resolved_at is None:
            return None
        resolved = self.resolved_at.replace(tzinfo=None)
        created = self.created_at.replace(tzinfo=None)
        return int((resolved - created).total_seconds() // 60)


class DeleteResponse(BaseModel):
    id: int
    code: str
    deleted_at: datetime
    message: str


class StatsBucketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    urgency: Urgency
    unit: Unit
    status: CallStatus
    count: int


class StatsResponse(BaseModel):
    """Aggregated counts over a time window."""

    model_config = ConfigDict(from_attributes=True)

    total_calls: int
    period_days: int
    since: datetime
    breakdown: list[StatsBucketOut]


class DashboardResponse(BaseModel):
    """Operator dashboard summary."""

    model_config = ConfigDict(from_attributes=True)

    active_calls: int
    urgent_calls: int
    recent_calls: list[CallOut]


class GeocodeResponse(BaseModel):
    address: str
    lat: float
    lng: float


class FieldErrorOut(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    error: str = "Validation error"
    details: list[FieldErrorOut]
