"""Enums and constants for attendance regularization — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    hr_admin = "hr_admin"
    super_admin = "super_admin"


# ── Attendance ──────────────────────────────────────────────────────

class AttendanceStatus(str, enum.Enum):
    present = "present"
    absent = "absent"
    late = "late"
    partial = "partial"


# ── Regularization ──────────────────────────────────────────────────

class RequestType(str, enum.Enum):
    check_in = "check_in"
    check_out = "check_out"
    full_day = "full_day"


class RegularizationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    more_info_required = "more_info_required"


class AuditAction(str, enum.Enum):
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"
    more_info_requested = "more_info_requested"


class ActorType(str, enum.Enum):
    employee = "employee"
    reviewer = "reviewer"


# Review outcome → audit action written for it
REVIEW_OUTCOMES: dict[RegularizationStatus, AuditAction] = {
    RegularizationStatus.approved: AuditAction.approved,
    RegularizationStatus.rejected: AuditAction.rejected,
    RegularizationStatus.more_info_required: AuditAction.more_info_requested,
}

# Status a request must hold after each audit action
STATUS_FOR_ACTION: dict[AuditAction, RegularizationStatus] = {
    AuditAction.submitted: RegularizationStatus.pending,
    **{action: status for status, action in REVIEW_OUTCOMES.items()},
}


# ── Capabilities ────────────────────────────────────────────────────

CAP_SUBMIT = "regularization.submit"
CAP_APPROVE = "regularization.approve"
CAP_VIEW = "regularization.view"

# Holders of this role skip every capability check
BYPASS_ROLE = UserRole.super_admin

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.employee: [
        CAP_SUBMIT,
        CAP_VIEW,
    ],
    UserRole.manager: [
        CAP_SUBMIT,
        CAP_VIEW,
        CAP_APPROVE,
    ],
    UserRole.hr_admin: [
        CAP_SUBMIT,
        CAP_VIEW,
        CAP_APPROVE,
    ],
    UserRole.super_admin: [],
}

# ── Misc constants ──────────────────────────────────────────────────

STANDARD_WORK_HOURS = 8.0
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
