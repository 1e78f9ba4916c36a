"""Call model for triaged emergency reports."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from callcenter.database import Base


class Urgency(enum.StrEnum):
    """Urgency tier. Red is the most severe."""

    RED = "Red"
    YELLOW = "Yellow"
    GREEN = "Green"


class Unit(enum.StrEnum):
    """Responder unit."""

    AMBULANCE = "Ambulance"
    POLICE = "Police"
    FIRE_DEPARTMENT = "Fire Department"

    @classmethod
    def parse(cls, value: str) -> "Unit":
        """Accept the stored English names and the Italian names operators type."""
        if isinstance(value, str) and not isinstance(value, cls):
            value = UNIT_TRANSLATIONS.get(value.strip(), value)
        return cls(value)


# Italian unit names used by operator consoles.
UNIT_TRANSLATIONS = {
    "Ambulanza": "Ambulance",
    "Polizia": "Police",
    "Vigili del Fuoco": "Fire Department",
}


class CallStatus(enum.StrEnum):
    """Lifecycle state of a call."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = frozenset({CallStatus.PENDING, CallStatus.ASSIGNED, CallStatus.IN_PROGRESS})
TERMINAL_STATUSES = frozenset({CallStatus.COMPLETED, CallStatus.CANCELLED})

CODE_PATTERN = r"^[A-Z][0-9]{2}$"


def _enum_column(enum_cls: type[enum.Enum], length: int) -> Enum:
    # Store the human-readable values ("Fire Department"), not member names.
    return Enum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=length,
        validate_strings=True,
    )


class Call(Base):
    """
    Emergency call record produced by intake.

    Codes are unique among live (non-deleted) rows only, so a soft-deleted
    call releases its code for reuse.
    """

    __tablename__ = "calls"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(3), nullable=False)

    # Triage
    unit: Mapped[Unit] = mapped_column(_enum_column(Unit, 20), nullable=False)
    urgency: Mapped[Urgency] = mapped_column(
        _enum_column(Urgency, 10), nullable=False, default=Urgency.GREEN
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Location
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)

    # Lifecycle
    status: Mapped[CallStatus] = mapped_column(
        _enum_column(CallStatus, 20), nullable=False, default=CallStatus.PENDING, index=True
    )
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    __table_args__ = (
        # Live-code uniqueness; the insert path relies on this for atomic reservation
        Index(
            "uq_calls_live_code",
            "code",
            unique=True,
            postgresql_where=deleted_at.is_(None),
            sqlite_where=deleted_at.is_(None),
        ),
        Index("idx_calls_urgency_status", "urgency", "status"),
        Index("idx_calls_created_at", created_at.desc()),
        Index("idx_calls_location", "lat", "lng"),
        CheckConstraint("lat >= -90 AND lat <= 90", name="ck_calls_lat_range"),
        CheckConstraint("lng >= -180 AND lng <= 180", name="ck_calls_lng_range"),
        CheckConstraint(
            "(status = 'completed') = (resolved_at IS NOT NULL)",
            name="ck_calls_resolved_iff_completed",
        ),
    )

    @validates("lat")
    def _validate_lat(self, key: str, value: float) -> float:
        if value is None or not -90 <= value <= 90:
            raise ValueError(f"Latitude out of range: {value}")
        return value

    @validates("lng")
    def _validate_lng(self, key: str, value: float) -> float:
        if value is None or not -180 <= value <= 180:
            raise ValueError(f"Longitude out of range: {value}")
        return value

    @validates("code")
    def _validate_code(self, key: str, value: str) -> str:
        return value.upper()

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self) -> str:
        return f"<Call {self.code}: {self.urgency} {self.unit} ({self.status})>"
