"""Regularization ORM models: RegularizationRequest, RegularizationAuditLog."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from hrms.common.constants import (
    ActorType,
    AuditAction,
    RegularizationStatus,
    RequestType,
)
from hrms.database import Base

_PENDING_ONLY = sa.text("status = 'pending'")


class RegularizationRequest(Base):
    __tablename__ = "attendance_regularization_requests"
    __table_args__ = (
        sa.Index(
            "ix_regularization_employee_date", "employee_id", "attendance_date"
        ),
        sa.Index("ix_regularization_company_status", "company_id", "status"),
        # At most one pending request per employee per day
        sa.Index(
            "uq_regularization_pending_per_day",
            "employee_id",
            "attendance_date",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False
    )
    attendance_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    request_type: Mapped[RequestType] = mapped_column(
        sa.Enum(RequestType, name="regularization_request_type"),
        nullable=False,
    )
    current_check_in: Mapped[Optional[time]] = mapped_column(sa.Time)
    current_check_out: Mapped[Optional[time]] = mapped_column(sa.Time)
    requested_check_in: Mapped[Optional[time]] = mapped_column(sa.Time)
    requested_check_out: Mapped[Optional[time]] = mapped_column(sa.Time)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    supporting_evidence: Mapped[Optional[dict]] = mapped_column(JSONB)
    status: Mapped[RegularizationStatus] = mapped_column(
        sa.Enum(RegularizationStatus, name="regularization_status"),
        nullable=False,
        default=RegularizationStatus.pending,
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True)
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )
    review_notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    submitted_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class RegularizationAuditLog(Base):
    """Append-only; rows are never updated or deleted."""

    __tablename__ = "attendance_regularization_audit_logs"
    __table_args__ = (
        sa.UniqueConstraint(
            "request_id", "sequence", name="uq_regularization_audit_seq"
        ),
        sa.Index("ix_regularization_audit_created_at", "created_at"),
        sa.Index("ix_regularization_audit_actor_id", "actor_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey(
            "attendance_regularization_requests.id", ondelete="RESTRICT"
        ),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    action: Mapped[AuditAction] = mapped_column(
        sa.Enum(AuditAction, name="regularization_audit_action"),
        nullable=False,
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False
    )
    actor_type: Mapped[ActorType] = mapped_column(
        sa.Enum(ActorType, name="regularization_actor_type"),
        nullable=False,
    )
    ip_address: Mapped[Optional[str]] = mapped_column(INET)
    user_agent: Mapped[Optional[str]] = mapped_column(sa.Text)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
