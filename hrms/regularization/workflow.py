"""Regularization workflow — submit, review, and read regularization requests.

Business logic:
  - Submit: capability check → field validation → one-pending-per-day guard
    → insert → ``submitted`` audit entry
  - Review: capability check → compare-and-swap out of ``pending`` → on
    approval, reconcile and upsert the attendance record → audit entry
  - Reads are scoped to the actor's company; actors who cannot approve only
    see their own requests

Every operation runs in its own transaction: either all of its writes and
its audit entry commit together, or none of them do.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date, time
from typing import Any, AsyncIterator, Optional, Union

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrms.attendance.reconciliation import reconcile
from hrms.attendance.store import AttendanceStore
from hrms.auth.permissions import ActorContext, PermissionGate, require_capability
from hrms.common.constants import (
    CAP_APPROVE,
    CAP_SUBMIT,
    CAP_VIEW,
    DEFAULT_PAGE_SIZE,
    REVIEW_OUTCOMES,
    ActorType,
    AuditAction,
    RegularizationStatus,
    RequestType,
    UserRole,
)
from hrms.common.exceptions import (
    ConflictError,
    ForbiddenException,
    StorageUnavailableException,
    ValidationException,
)
from hrms.common.pagination import PaginatedResponse, build_meta
from hrms.regularization.audit import AuditEntry, AuditTrail
from hrms.regularization.models import RegularizationAuditLog, RegularizationRequest
from hrms.regularization.store import (
    NewRegularizationRequest,
    RegularizationRequestStore,
    TransitionResult,
)

logger = logging.getLogger(__name__)


class RegularizationWorkflow:
    """Orchestrates the regularization state machine over its stores."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        permission_gate: PermissionGate,
        *,
        request_store: Optional[RegularizationRequestStore] = None,
        audit_trail: Optional[AuditTrail] = None,
        attendance_store: Optional[AttendanceStore] = None,
    ) -> None:
        self._session_factory = session_factory
        self._gate = permission_gate
        self._requests = request_store or RegularizationRequestStore()
        self._audit = audit_trail or AuditTrail()
        self._attendance = attendance_store or AttendanceStore()

    # ── Helpers ─────────────────────────────────────────────────────

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """One all-or-nothing unit; database failures become typed errors."""
        try:
            async with self._session_factory.begin() as session:
                yield session
        except IntegrityError as exc:
            logger.info("Regularization write rejected by constraint: %s", exc.orig)
            raise ConflictError(
                "request",
                "The request was modified concurrently. Reload and try again.",
            ) from exc
        except (OperationalError, InterfaceError) as exc:
            logger.warning("Regularization storage unavailable: %s", exc)
            raise StorageUnavailableException() from exc

    @staticmethod
    def _check_tenant(actor: ActorContext, company_id: uuid.UUID) -> None:
        if company_id != actor.company_id:
            raise ForbiddenException(
                detail="You cannot act on another company's regularization requests.",
            )

    async def _can_review(self, actor: ActorContext) -> bool:
        return actor.is_privileged or await self._gate.has_capability(actor, CAP_APPROVE)

    async def _check_read_scope(
        self,
        actor: ActorContext,
        employee_id: uuid.UUID,
    ) -> None:
        if employee_id != actor.actor_id and not await self._can_review(actor):
            raise ForbiddenException(
                detail="You can only view your own regularization requests.",
            )

    # ── Submit ──────────────────────────────────────────────────────

    async def submit(
        self,
        actor: ActorContext,
        *,
        employee_id: uuid.UUID,
        company_id: uuid.UUID,
        attendance_date: date,
        request_type: Union[RequestType, str],
        reason: str,
        current_check_in: Optional[time] = None,
        current_check_out: Optional[time] = None,
        requested_check_in: Optional[time] = None,
        requested_check_out: Optional[time] = None,
        supporting_evidence: Optional[dict[str, Any]] = None,
    ) -> RegularizationRequest:
        """Open a new pending regularization request for one employee-day."""
        await require_capability(self._gate, actor, CAP_SUBMIT)
        self._check_tenant(actor, company_id)
        if actor.role == UserRole.employee and employee_id != actor.actor_id:
            raise ForbiddenException(
                detail="Employees can only submit regularization requests for themselves.",
            )

        new = NewRegularizationRequest(
            employee_id=employee_id,
            company_id=company_id,
            attendance_date=attendance_date,
            request_type=request_type,
            reason=reason,
            current_check_in=current_check_in,
            current_check_out=current_check_out,
            requested_check_in=requested_check_in,
            requested_check_out=requested_check_out,
            supporting_evidence=supporting_evidence,
        )
        self._requests.validate(new)

        async with self._transaction() as session:
            pending = await self._requests.list_pending_for(
                session, employee_id, attendance_date,
            )
            if pending:
                raise ConflictError(
                    "attendance_date",
                    f"A regularization request for {attendance_date.isoformat()} is already pending.",
                )

            request = await self._requests.create(session, new)

            await self._audit.append(
                session,
                AuditEntry(
                    request_id=request.id,
                    action=AuditAction.submitted,
                    actor_id=actor.actor_id,
                    actor_type=ActorType.employee,
                    reason=request.reason,
                    ip_address=actor.ip_address,
                    user_agent=actor.user_agent,
                ),
            )

        logger.info(
            "Regularization %s submitted for employee %s on %s by %s",
            request.id, employee_id, attendance_date, actor.actor_id,
        )
        return request

    # ── Review ──────────────────────────────────────────────────────

    async def review(
        self,
        actor: ActorContext,
        request_id: uuid.UUID,
        action: Union[RegularizationStatus, str],
        *,
        notes: Optional[str] = None,
    ) -> RegularizationRequest:
        """Resolve a pending request as approved, rejected, or more-info-required.

        Approval rewrites the employee's attendance record for that day in the
        same transaction. A request that is no longer pending raises
        ConflictError and nothing is written.
        """
        await require_capability(self._gate, actor, CAP_APPROVE)

        try:
            outcome = RegularizationStatus(action)
        except ValueError:
            outcome = None
        if outcome not in REVIEW_OUTCOMES:
            allowed = ", ".join(s.value for s in REVIEW_OUTCOMES)
            raise ValidationException({"action": [f"Action must be one of: {allowed}."]})

        async with self._transaction() as session:
            request = await self._requests.get(session, request_id)
            self._check_tenant(actor, request.company_id)

            result = await self._requests.transition_status(
                session,
                request_id,
                RegularizationStatus.pending,
                outcome,
                actor.actor_id,
                notes,
            )
            if result is TransitionResult.conflict:
                logger.info(
                    "Review of regularization %s by %s lost: no longer pending",
                    request_id, actor.actor_id,
                )
                raise ConflictError(
                    "status",
                    "Regularization request has already been reviewed.",
                )

            request = await self._requests.get(session, request_id)

            if outcome == RegularizationStatus.approved:
                mutation = reconcile(request)
                await self._attendance.upsert(
                    session,
                    employee_id=request.employee_id,
                    company_id=request.company_id,
                    attendance_date=request.attendance_date,
                    mutation=mutation,
                )

            await self._audit.append(
                session,
                AuditEntry(
                    request_id=request.id,
                    action=REVIEW_OUTCOMES[outcome],
                    actor_id=actor.actor_id,
                    actor_type=ActorType.reviewer,
                    reason=notes,
                    ip_address=actor.ip_address,
                    user_agent=actor.user_agent,
                ),
            )

        logger.info(
            "Regularization %s %s by %s", request_id, outcome.value, actor.actor_id,
        )
        return request

    # ── Reads ───────────────────────────────────────────────────────

    async def get(
        self,
        actor: ActorContext,
        request_id: uuid.UUID,
    ) -> RegularizationRequest:
        await require_capability(self._gate, actor, CAP_VIEW)
        async with self._transaction() as session:
            request = await self._requests.get(session, request_id)
        self._check_tenant(actor, request.company_id)
        await self._check_read_scope(actor, request.employee_id)
        return request

    async def list_pending_for(
        self,
        actor: ActorContext,
        employee_id: uuid.UUID,
        attendance_date: date,
    ) -> list[RegularizationRequest]:
        await require_capability(self._gate, actor, CAP_VIEW)
        await self._check_read_scope(actor, employee_id)
        async with self._transaction() as session:
            requests = await self._requests.list_pending_for(
                session, employee_id, attendance_date,
            )
        return [r for r in requests if r.company_id == actor.company_id]

    async def list_audit_for_request(
        self,
        actor: ActorContext,
        request_id: uuid.UUID,
    ) -> list[RegularizationAuditLog]:
        """Audit entries for one request, oldest first."""
        await require_capability(self._gate, actor, CAP_VIEW)
        async with self._transaction() as session:
            request = await self._requests.get(session, request_id)
            self._check_tenant(actor, request.company_id)
            await self._check_read_scope(actor, request.employee_id)
            return await self._audit.list_for_request(session, request_id)

    async def list_requests(
        self,
        actor: ActorContext,
        *,
        status: Optional[RegularizationStatus] = None,
        employee_id: Optional[uuid.UUID] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> PaginatedResponse:
        """List the actor's company's requests; non-reviewers only see their own."""
        await require_capability(self._gate, actor, CAP_VIEW)
        if not await self._can_review(actor):
            if employee_id is not None and employee_id != actor.actor_id:
                raise ForbiddenException(
                    detail="You can only view your own regularization requests.",
                )
            employee_id = actor.actor_id

        async with self._transaction() as session:
            rows, total = await self._requests.list_requests(
                session,
                company_id=actor.company_id,
                status=status,
                employee_id=employee_id,
                page=page,
                page_size=page_size,
            )

        return PaginatedResponse(
            data=list(rows),
            meta=build_meta(page, page_size, total),
        )

