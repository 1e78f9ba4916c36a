"""Call store: persistence, invariants and the call lifecycle."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from callcenter.errors import (
    CallNotFound,
    CallValidationError,
    CodeCollision,
    FieldError,
    InvalidTransition,
    PersistenceFailure,
)
from callcenter.models import Call, CallStatus, Unit, Urgency
from callcenter.services.priority import order_by_priority

logger = logging.getLogger(__name__)

# Allowed lifecycle moves; completed and cancelled are terminal.
TRANSITIONS: dict[CallStatus, frozenset[CallStatus]] = {
    CallStatus.PENDING: frozenset(
        {CallStatus.ASSIGNED, CallStatus.IN_PROGRESS, CallStatus.COMPLETED, CallStatus.CANCELLED}
    ),
    CallStatus.ASSIGNED: frozenset(
        {CallStatus.IN_PROGRESS, CallStatus.COMPLETED, CallStatus.CANCELLED}
    ),
    CallStatus.IN_PROGRESS: frozenset({CallStatus.COMPLETED, CallStatus.CANCELLED}),
    CallStatus.COMPLETED: frozenset(),
    CallStatus.CANCELLED: frozenset(),
}

# Fields a partial update may touch. Anything else (code included) is dropped.
UPDATABLE_FIELDS = frozenset({"description", "address", "lat", "lng", "unit", "urgency"})
IMMUTABLE_FIELDS = frozenset(
    {"id", "code", "status", "created_at", "resolved_at", "deleted_at", "assigned_to"}
)

_FIELD_TYPES = {"unit": Unit.parse, "urgency": Urgency}


def utcnow() -> datetime:
    return datetime.now(UTC)


def format_note(text: str, at: datetime) -> str:
    """Timestamp-prefixed note line."""
    return f"[{at.strftime('%Y-%m-%d %H:%M:%S')} UTC] {text.strip()}"


class CallStore:
    """
    Persistence boundary for calls.

    All writes commit immediately and roll back on failure, so a failed
    insert or update is never partially applied.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise PersistenceFailure(f"Failed to {action}") from e

    # --- Reads --- #

    async def code_in_use(self, code: str) -> bool:
        """Whether a live call currently holds `code`."""
        result = await self.db.execute(
            select(Call.id)
            .where(Call.code == code.upper(), Call.deleted_at.is_(None))
            .limit(1)
        )
        return result.first() is not None

    async def get(self, call_id: int, include_deleted: bool = False) -> Call | None:
        """Fetch a call by id; soft-deleted calls only when asked for."""
        query = select(Call).where(Call.id == call_id)
        if not include_deleted:
            query = query.where(Call.deleted_at.is_(None))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_code(self, code: str, include_deleted: bool = False) -> Call | None:
        """
        Fetch a call by code, case-insensitively.

        Only the live holder is returned by default. With `include_deleted`,
        tombstones match too; the live holder still wins, then the most
        recently created tombstone.
        """
        query = select(Call).where(Call.code == code.strip().upper())
        if not include_deleted:
            query = query.where(Call.deleted_at.is_(None))
        query = query.order_by(
            Call.deleted_at.is_not(None), Call.created_at.desc(), Call.id.desc()
        ).limit(1)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require(self, call_id: int) -> Call:
        """Fetch a live call or raise CallNotFound."""
        call = await self.get(call_id)
        if call is None:
            raise CallNotFound(call_id)
        return call

    async def scan(
        self,
        *conditions: ColumnElement[bool],
        limit: int | None = None,
        offset: int = 0,
        order_by: Sequence[ColumnElement] | None = None,
    ) -> list[Call]:
        """
        Range scan over live calls.

        Results are priority-ordered unless an explicit order is given.
        """
        query = (
            select(Call)
            .where(Call.deleted_at.is_(None), *conditions)
            .order_by(*(order_by if order_by is not None else order_by_priority()))
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # --- Writes --- #

    async def insert(self, call: Call) -> Call:
        """
        Persist a new call.

        Raises CodeCollision when a live call already holds the code; the
        check and the insert are a single atomic step via the unique index.
        """
        self.db.add(call)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if await self.code_in_use(call.code):
                logger.warning(f"Code collision on insert: {call.code}")
                raise CodeCollision(call.code) from e
            logger.error(f"Insert rejected by the database: {e}", exc_info=True)
            raise PersistenceFailure("Failed to insert call") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to insert call: {e}", exc_info=True)
            raise PersistenceFailure("Failed to insert call") from e

        logger.info(f"Inserted call {call.code} (id={call.id}, urgency={call.urgency})")
        return call

    async def update(self, call_id: int, changes: dict[str, Any]) -> Call:
        """
        Apply a partial update.

        Immutable fields (code, id, status, timestamps, assignee) are dropped
        silently. A `notes` value is appended to the log, never replacing it.
        """
        call = await self.require(call_id)
        now = utcnow()

        dropped = sorted(set(changes) & IMMUTABLE_FIELDS)
        if dropped:
            logger.info(f"Ignoring immutable fields on call {call_id}: {', '.join(dropped)}")

        errors: list[FieldError] = []
        for field, value in changes.items():
            if field not in UPDATABLE_FIELDS or value is None:
                continue
            try:
                if field in _FIELD_TYPES:
                    value = _FIELD_TYPES[field](value)
                setattr(call, field, value)
            except ValueError as e:
                errors.append(FieldError(field=field, message=str(e)))

        if errors:
            await self.db.rollback()
            raise CallValidationError(errors)

        note = changes.get("notes")
        if note and note.strip():
            self._append_note(call, note, now)

        call.updated_at = now
        await self._commit(f"update call {call_id}")
        return call

    async def transition(
        self,
        call_id: int,
        target: CallStatus,
        operator: str | None = None,
    ) -> Call:
        """Move a call to `target`, applying the lifecycle side effects."""
        call = await self.require(call_id)
        target = CallStatus(target)
        current = CallStatus(call.status)

        if not call.is_active:
            raise InvalidTransition(current, target, "the call is closed")
        if target not in TRANSITIONS[current]:
            raise InvalidTransition(current, target)

        now = utcnow()
        if target == CallStatus.ASSIGNED:
            if not operator or not operator.strip():
                raise InvalidTransition(current, target, "an operator is required")
            call.assigned_to = operator.strip()
        elif target == CallStatus.COMPLETED:
            call.resolved_at = now

        call.status = target
        call.updated_at = now
        await self._commit(f"move call {call_id} to {target}")
        logger.info(f"Call {call.code} moved from {current} to {target}")
        return call

    async def assign(self, call_id: int, operator: str) -> Call:
        """Assign a pending call to an operator."""
        return await self.transition(call_id, CallStatus.ASSIGNED, operator=operator)

    def _append_note(self, call: Call, text: str, at: datetime) -> None:
        line = format_note(text, at)
        call.notes = f"{call.notes}\n{line}" if call.notes else line

    async def add_note(self, call_id: int, text: str) -> Call:
        """Append a timestamped note."""
        call = await self.require(call_id)
        now = utcnow()
        self._append_note(call, text, now)
        call.updated_at = now
        await self._commit(f"add note to call {call_id}")
        return call

    async def soft_delete(self, call_id: int) -> Call:
        """Mark a call deleted. Its code becomes free for reuse."""
        call = await self.require(call_id)
        now = utcnow()
        call.deleted_at = now
        call.updated_at = now
        await self._commit(f"delete call {call_id}")
        logger.info(f"Soft-deleted call {call.code} (id={call.id})")
        return call
