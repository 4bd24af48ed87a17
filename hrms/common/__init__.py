"""Common module — shared utilities for the regularization service."""

from hrms.common.constants import (
    BYPASS_ROLE,
    CAP_APPROVE,
    CAP_SUBMIT,
    CAP_VIEW,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    REVIEW_OUTCOMES,
    STANDARD_WORK_HOURS,
    STATUS_FOR_ACTION,
    ActorType,
    AttendanceStatus,
    AuditAction,
    RegularizationStatus,
    RequestType,
    UserRole,
)
from hrms.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    StorageUnavailableException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.pagination import PaginatedResponse, PaginationMeta, build_meta

__all__ = [
    # Constants / Enums
    "ActorType",
    "AttendanceStatus",
    "AuditAction",
    "RegularizationStatus",
    "RequestType",
    "UserRole",
    "PERMISSIONS",
    "REVIEW_OUTCOMES",
    "STATUS_FOR_ACTION",
    "BYPASS_ROLE",
    "CAP_APPROVE",
    "CAP_SUBMIT",
    "CAP_VIEW",
    "STANDARD_WORK_HOURS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "StorageUnavailableException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "build_meta",
]
