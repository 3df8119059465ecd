"""Common module: shared utilities for the leave service."""

from hr_leave.common.audit import AuditTrail, create_audit_entry
from hr_leave.common.constants import (
    DATE_FORMAT,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    OPEN_PROBATION_STATUSES,
    HalfDayPeriod,
    LeavePriority,
    LeaveStatus,
    NotificationType,
    OverlapMode,
    ProbationStatus,
    UserRole,
)
from hr_leave.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    ServiceError,
    ValidationException,
    register_exception_handlers,
)
from hr_leave.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "HalfDayPeriod",
    "LeavePriority",
    "LeaveStatus",
    "NotificationType",
    "OverlapMode",
    "ProbationStatus",
    "UserRole",
    "OPEN_PROBATION_STATUSES",
    "DATE_FORMAT",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "ServiceError",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
