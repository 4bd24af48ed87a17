"""AttendanceStore — keyed (employee, date) storage with atomic upsert."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.attendance.models import AttendanceRecord
from hrms.attendance.reconciliation import AttendanceMutation

# Dialects with INSERT … ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Columns an upsert may change; updated_at only moves when one of them does
_MUTABLE_COLUMNS = (
    "check_in",
    "check_out",
    "work_hours",
    "overtime_hours",
    "status",
    "is_regularized",
    "source",
)


class AttendanceStore:
    """One attendance row per (employee_id, date); writes are upserts."""

    def __init__(self, source: str = "regularization") -> None:
        self._source = source

    @staticmethod
    def _insert_for(session: AsyncSession):
        dialect = session.get_bind().dialect.name
        try:
            return _UPSERT_INSERTS[dialect]
        except KeyError:
            raise ValueError(f"Attendance upsert is not supported on dialect '{dialect}'.")

    async def upsert(
        self,
        session: AsyncSession,
        *,
        employee_id: uuid.UUID,
        company_id: uuid.UUID,
        attendance_date: date,
        mutation: AttendanceMutation,
    ) -> AttendanceRecord:
        """Create or overwrite the record for (employee_id, attendance_date).

        Applying the same mutation twice leaves the same row behind,
        ``updated_at`` included: the conflict branch only fires when a
        mutable column actually differs.
        """
        now = datetime.now(timezone.utc)
        insert = self._insert_for(session)

        stmt = insert(AttendanceRecord).values(
            id=uuid.uuid4(),
            employee_id=employee_id,
            company_id=company_id,
            date=attendance_date,
            check_in=mutation.check_in,
            check_out=mutation.check_out,
            work_hours=mutation.work_hours,
            overtime_hours=mutation.overtime_hours,
            status=mutation.status,
            is_regularized=True,
            source=self._source,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["employee_id", "date"],
            set_={
                **{name: stmt.excluded[name] for name in _MUTABLE_COLUMNS},
                "updated_at": stmt.excluded.updated_at,
            },
            where=or_(
                *(
                    AttendanceRecord.__table__.c[name].is_distinct_from(stmt.excluded[name])
                    for name in _MUTABLE_COLUMNS
                )
            ),
        )
        await session.execute(stmt)

        result = await session.execute(self._by_key(employee_id, attendance_date))
        return result.scalars().one()

    @staticmethod
    def _by_key(employee_id: uuid.UUID, attendance_date: date):
        return (
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.date == attendance_date,
            )
            .execution_options(populate_existing=True)
        )

    async def get(
        self,
        session: AsyncSession,
        employee_id: uuid.UUID,
        attendance_date: date,
    ) -> Optional[AttendanceRecord]:
        result = await session.execute(self._by_key(employee_id, attendance_date))
        return result.scalars().first()
