"""
Append-only, field-level audit trail for attendance facts.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timezone
from typing import Any, NamedTuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuditWriteError, ValidationError
from app.models.attendance import AuditEntry

logger = logging.getLogger(__name__)


class FieldChange(NamedTuple):
    field: str
    old: Any
    new: Any


def stringify(value: Any) -> str:
    """Render a field value the way it is stored in the trail."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, (date, time, datetime)):
        return value.isoformat()
    return str(value)


def differs(old: Any, new: Any) -> bool:
    """True when a change would show up in the trail as two distinct values."""
    return old != new and stringify(old) != stringify(new)


class AuditRecorder:
    def __init__(self, db: AsyncSession, tenant_id: str):
        self._db = db
        self._tenant_id = tenant_id

    async def _next_sequence(self, fact_id: int) -> int:
        result = await self._db.execute(
            select(func.max(AuditEntry.sequence)).where(AuditEntry.attendance_fact_id == fact_id)
        )
        return (result.scalar() or 0) + 1

    async def record(
        self,
        fact_id: int,
        modified_by: str,
        modified_by_role: str,
        reason: str,
        changes: Iterable[FieldChange],
    ) -> list[AuditEntry]:
        """Append one entry per change whose old and new values differ.

        Entries are flushed inside the caller's transaction. If the batch
        cannot be written, ``AuditWriteError`` names every field in it and
        the caller is expected to roll the whole unit back.
        """
        pending = [c for c in changes if differs(c.old, c.new)]
        if not pending:
            return []
        if not reason or not reason.strip():
            raise ValidationError("A reason is required when modifying attendance")

        modified_at = datetime.now(timezone.utc)
        try:
            sequence = await self._next_sequence(fact_id)
            entries = [
                AuditEntry(
                    tenant_id=self._tenant_id,
                    attendance_fact_id=fact_id,
                    sequence=sequence + offset,
                    modified_by=modified_by,
                    modified_by_role=modified_by_role,
                    modified_at=modified_at,
                    field_changed=change.field,
                    old_value=stringify(change.old),
                    new_value=stringify(change.new),
                    reason=reason.strip(),
                )
                for offset, change in enumerate(pending)
            ]
            self._db.add_all(entries)
            await self._db.flush()
        except SQLAlchemyError as exc:
            fields = [c.field for c in pending]
            logger.error("Audit write failed for fact %d fields %s: %s", fact_id, fields, exc)
            raise AuditWriteError(
                f"Could not record audit trail for fields: {', '.join(fields)}", fields
            ) from exc
        return entries

    async def history(self, fact_id: int) -> list[AuditEntry]:
        result = await self._db.execute(
            select(AuditEntry)
            .where(
                AuditEntry.tenant_id == self._tenant_id,
                AuditEntry.attendance_fact_id == fact_id,
            )
            .order_by(AuditEntry.modified_at.desc(), AuditEntry.sequence.desc())
        )
        return list(result.scalars().all())
