"""RegularizationRequestStore — request rows with compare-and-swap status changes."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import RegularizationStatus, RequestType
from hrms.common.exceptions import NotFoundException, ValidationException
from hrms.regularization.models import RegularizationRequest


class TransitionResult(str, enum.Enum):
    ok = "ok"
    conflict = "conflict"


@dataclass(frozen=True)
class NewRegularizationRequest:
    employee_id: uuid.UUID
    company_id: uuid.UUID
    attendance_date: date
    request_type: Any
    reason: str
    current_check_in: Optional[time] = None
    current_check_out: Optional[time] = None
    requested_check_in: Optional[time] = None
    requested_check_out: Optional[time] = None
    supporting_evidence: Optional[dict[str, Any]] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegularizationRequestStore:
    """Keyed storage of regularization requests.

    Status only moves through ``transition_status``, a single conditional
    UPDATE that succeeds only when the stored status still equals the
    expected one.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    # ── Validation ──────────────────────────────────────────────────

    def validate(self, new: NewRegularizationRequest) -> RequestType:
        """Check submitted fields; return the coerced request type."""
        errors: dict[str, list[str]] = {}

        if not new.reason or not new.reason.strip():
            errors["reason"] = ["Reason is required."]

        if new.attendance_date > self._clock().date():
            errors["attendance_date"] = [
                "Regularization cannot be submitted for a future date."
            ]

        request_type: Optional[RequestType] = None
        try:
            request_type = RequestType(new.request_type)
        except ValueError:
            allowed = ", ".join(t.value for t in RequestType)
            errors["request_type"] = [f"Request type must be one of: {allowed}."]

        if errors:
            raise ValidationException(errors)
        return request_type

    # ── Writes ──────────────────────────────────────────────────────

    async def create(
        self,
        session: AsyncSession,
        new: NewRegularizationRequest,
    ) -> RegularizationRequest:
        """Insert a new pending request and return it (with its id)."""
        request_type = self.validate(new)
        now = self._clock()

        request = RegularizationRequest(
            employee_id=new.employee_id,
            company_id=new.company_id,
            attendance_date=new.attendance_date,
            request_type=request_type,
            current_check_in=new.current_check_in,
            current_check_out=new.current_check_out,
            requested_check_in=new.requested_check_in,
            requested_check_out=new.requested_check_out,
            reason=new.reason.strip(),
            supporting_evidence=new.supporting_evidence,
            status=RegularizationStatus.pending,
            submitted_at=now,
            updated_at=now,
        )
        session.add(request)
        await session.flush()
        return request

    async def transition_status(
        self,
        session: AsyncSession,
        request_id: uuid.UUID,
        from_status: RegularizationStatus,
        to_status: RegularizationStatus,
        reviewer_id: uuid.UUID,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """Move *request_id* from *from_status* to *to_status*, or report a conflict.

        Raises NotFoundException when the id does not exist at all.
        """
        now = self._clock()
        result = await session.execute(
            update(RegularizationRequest)
            .where(
                RegularizationRequest.id == request_id,
                RegularizationRequest.status == from_status,
            )
            .values(
                status=to_status,
                reviewed_by=reviewer_id,
                reviewed_at=now,
                review_notes=notes,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return TransitionResult.ok

        exists = await session.scalar(
            select(RegularizationRequest.id).where(
                RegularizationRequest.id == request_id,
            )
        )
        if exists is None:
            raise NotFoundException("RegularizationRequest", str(request_id))
        return TransitionResult.conflict

    # ── Reads ───────────────────────────────────────────────────────

    async def get(
        self,
        session: AsyncSession,
        request_id: uuid.UUID,
    ) -> RegularizationRequest:
        result = await session.execute(
            select(RegularizationRequest)
            .where(RegularizationRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        request = result.scalars().first()
        if request is None:
            raise NotFoundException("RegularizationRequest", str(request_id))
        return request

    async def list_pending_for(
        self,
        session: AsyncSession,
        employee_id: uuid.UUID,
        attendance_date: date,
    ) -> list[RegularizationRequest]:
        result = await session.execute(
            select(RegularizationRequest)
            .where(
                RegularizationRequest.employee_id == employee_id,
                RegularizationRequest.attendance_date == attendance_date,
                RegularizationRequest.status == RegularizationStatus.pending,
            )
            .order_by(RegularizationRequest.submitted_at)
        )
        return list(result.scalars().all())

    async def list_requests(
        self,
        session: AsyncSession,
        *,
        company_id: uuid.UUID,
        status: Optional[RegularizationStatus] = None,
        employee_id: Optional[uuid.UUID] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[Sequence[RegularizationRequest], int]:
        """Return one page of a company's requests, newest first, plus the total."""
        query = select(RegularizationRequest).where(
            RegularizationRequest.company_id == company_id,
        )
        if status:
            query = query.where(RegularizationRequest.status == status)
        if employee_id:
            query = query.where(RegularizationRequest.employee_id == employee_id)

        count_q = query.with_only_columns(
            func.count(), maintain_column_froms=True,
        ).order_by(None)
        total: int = (await session.execute(count_q)).scalar_one()

        rows = (
            await session.execute(
                query.order_by(RegularizationRequest.submitted_at.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
        ).scalars().all()
        return rows, total
