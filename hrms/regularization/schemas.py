"""Regularization Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Response           → response bodies (read)
"""


import uuid
from datetime import date, datetime, time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hrms.common.constants import (
    ActorType,
    AuditAction,
    RegularizationStatus,
    RequestType,
)
from hrms.common.pagination import PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Submit
# ═════════════════════════════════════════════════════════════════════


class RegularizationCreate(BaseModel):
    """Request to regularize one day's attendance."""

    employee_id: Optional[uuid.UUID] = Field(
        None,
        description="Defaults to the caller; only reviewers may file for someone else.",
    )
    attendance_date: date
    request_type: RequestType
    current_check_in: Optional[time] = None
    current_check_out: Optional[time] = None
    requested_check_in: Optional[time] = None
    requested_check_out: Optional[time] = None
    reason: str = Field(..., min_length=1, max_length=1000)
    supporting_evidence: Optional[dict[str, Any]] = Field(
        None,
        description="Reference to an uploaded attachment, e.g. {\"file_id\": \"...\"}",
    )


# ═════════════════════════════════════════════════════════════════════
# Review
# ═════════════════════════════════════════════════════════════════════


class RegularizationReviewRequest(BaseModel):
    """Payload for resolving a pending regularization request."""

    action: RegularizationStatus = Field(
        ...,
        description="approved, rejected, or more_info_required",
    )
    notes: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class RegularizationResponse(BaseModel):
    """Regularization request details."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    company_id: uuid.UUID
    attendance_date: date
    request_type: RequestType
    current_check_in: Optional[time] = None
    current_check_out: Optional[time] = None
    requested_check_in: Optional[time] = None
    requested_check_out: Optional[time] = None
    reason: str
    supporting_evidence: Optional[dict[str, Any]] = None
    status: RegularizationStatus
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    submitted_at: datetime


class RegularizationListResponse(BaseModel):
    """Paginated regularization list."""

    data: list[RegularizationResponse]
    meta: PaginationMeta


class AuditLogResponse(BaseModel):
    """One audit entry for a regularization request."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    request_id: uuid.UUID
    sequence: int
    action: AuditAction
    actor_id: uuid.UUID
    actor_type: ActorType
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    reason: Optional[str] = None
    created_at: datetime

    @field_validator("ip_address", mode="before")
    @classmethod
    def _stringify_ip(cls, value: Any) -> Optional[str]:
        # asyncpg returns INET columns as ipaddress objects
        return str(value) if value is not None else None
