"""Regularization router — submit, review, list, audit.

All endpoints require a bearer token. Capability checks happen in the workflow.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from hrms.auth.dependencies import get_actor_context
from hrms.auth.permissions import ActorContext, RolePermissionGate
from hrms.common.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, RegularizationStatus
from hrms.database import async_session_factory
from hrms.regularization.schemas import (
    AuditLogResponse,
    RegularizationCreate,
    RegularizationListResponse,
    RegularizationResponse,
    RegularizationReviewRequest,
)
from hrms.regularization.workflow import RegularizationWorkflow

router = APIRouter(prefix="", tags=["regularization"])


def get_workflow() -> RegularizationWorkflow:
    """FastAPI dependency: the workflow bound to the application database."""
    return RegularizationWorkflow(async_session_factory, RolePermissionGate())


# ── POST /requests ──────────────────────────────────────────────────

@router.post("/requests", response_model=RegularizationResponse, status_code=201)
async def submit_regularization(
    body: RegularizationCreate,
    actor: ActorContext = Depends(get_actor_context),
    workflow: RegularizationWorkflow = Depends(get_workflow),
):
    """Submit a regularization request for a past or current day."""
    return await workflow.submit(
        actor,
        employee_id=body.employee_id or actor.actor_id,
        company_id=actor.company_id,
        attendance_date=body.attendance_date,
        request_type=body.request_type,
        current_check_in=body.current_check_in,
        current_check_out=body.current_check_out,
        requested_check_in=body.requested_check_in,
        requested_check_out=body.requested_check_out,
        reason=body.reason,
        supporting_evidence=body.supporting_evidence,
    )


# ── GET /requests ───────────────────────────────────────────────────

@router.get("/requests", response_model=RegularizationListResponse)
async def list_regularizations(
    status: Optional[RegularizationStatus] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    actor: ActorContext = Depends(get_actor_context),
    workflow: RegularizationWorkflow = Depends(get_workflow),
):
    """List regularization requests.

    Employees see their own; reviewers see the whole company, optionally filtered.
    """
    result = await workflow.list_requests(
        actor,
        status=status,
        employee_id=employee_id,
        page=page,
        page_size=page_size,
    )
    return RegularizationListResponse(
        data=[RegularizationResponse.model_validate(r) for r in result.data],
        meta=result.meta,
    )


# ── GET /requests/pending ───────────────────────────────────────────

@router.get("/requests/pending", response_model=list[RegularizationResponse])
async def list_pending_regularizations(
    employee_id: uuid.UUID = Query(...),
    attendance_date: date = Query(..., alias="date"),
    actor: ActorContext = Depends(get_actor_context),
    workflow: RegularizationWorkflow = Depends(get_workflow),
):
    """Pending requests for one employee on one day."""
    return await workflow.list_pending_for(actor, employee_id, attendance_date)


# ── GET /requests/{id} ──────────────────────────────────────────────

@router.get("/requests/{request_id}", response_model=RegularizationResponse)
async def get_regularization(
    request_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor_context),
    workflow: RegularizationWorkflow = Depends(get_workflow),
):
    return await workflow.get(actor, request_id)


# ── PUT /requests/{id}/review ───────────────────────────────────────

@router.put("/requests/{request_id}/review", response_model=RegularizationResponse)
async def review_regularization(
    request_id: uuid.UUID,
    body: RegularizationReviewRequest,
    actor: ActorContext = Depends(get_actor_context),
    workflow: RegularizationWorkflow = Depends(get_workflow),
):
    """Approve, reject, or ask for more information on a pending request."""
    return await workflow.review(actor, request_id, body.action, notes=body.notes)


# ── GET /requests/{id}/audit ────────────────────────────────────────

@router.get("/requests/{request_id}/audit", response_model=list[AuditLogResponse])
async def get_regularization_audit(
    request_id: uuid.UUID,
    actor: ActorContext = Depends(get_actor_context),
    workflow: RegularizationWorkflow = Depends(get_workflow),
):
    """Audit history of a request, oldest entry first."""
    return await workflow.list_audit_for_request(actor, request_id)
