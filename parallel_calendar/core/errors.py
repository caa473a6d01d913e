"""Error Hierarchy — typed, categorized exceptions for all scheduling failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) are recoverable by correcting input; infrastructure errors (5xx)
      are critical and never retried by the core
    - to_response() produces the REST envelope including the identifiers needed
      by the caller (conflicting slot ids, resource id, owning user)
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with CalendarError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ValidationError is an intermediate base: callers can catch every structural
      failure with one except clause
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone
from uuid import UUID


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: UUID | None = None
    resource_id: UUID | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class CalendarError(Exception):
    """Base exception for all scheduling errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def details(self) -> dict:
        """Error-specific payload; subclasses add the identifiers they carry."""
        return {}

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "details": self.details(),
                "context": {
                    "user_id": _str_or_none(self.context.user_id),
                    "resource_id": _str_or_none(self.context.resource_id),
                    "operation": self.context.operation,
                },
            }
        }


def _str_or_none(value: object) -> str | None:
    return str(value) if value is not None else None


# ─── Validation Errors (400) ────────────────────────────────────

class ValidationError(CalendarError):
    """Structural, single-entity validation failed."""
    def __init__(
        self, message: str, code: str, field: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field

    def details(self) -> dict:
        return {"field": self.field}


class TitleRequiredError(ValidationError):
    """Task title is empty."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__("Task title is required", "TITLE_REQUIRED", "title", context)


class NameRequiredError(ValidationError):
    """User display name is empty."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__("User name is required", "NAME_REQUIRED", "name", context)


class InvalidTimeRangeError(ValidationError):
    """Time slot window has zero or negative duration."""
    def __init__(
        self, start_at: datetime, end_at: datetime,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"start_at ({start_at.isoformat()}) must be before end_at ({end_at.isoformat()})",
            "INVALID_TIME_RANGE", "end_at", context,
        )
        self.start_at = start_at
        self.end_at = end_at

    def details(self) -> dict:
        return {
            "field": self.field,
            "start_at": self.start_at.isoformat(),
            "end_at": self.end_at.isoformat(),
        }


class UnknownAllocationError(ValidationError):
    """Allocation is outside the configured vocabulary."""
    def __init__(
        self, allocation: str, allowed: frozenset[str],
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Unknown allocation '{allocation}'",
            "UNKNOWN_ALLOCATION", "allocation", context,
        )
        self.allocation = allocation
        self.allowed = allowed

    def details(self) -> dict:
        return {"field": self.field, "allowed": sorted(self.allowed)}


# ─── Business Rule Errors ───────────────────────────────────────

class SchedulingConflictError(CalendarError):
    """Candidate window intersects existing slots of the same user."""
    def __init__(
        self, conflicting_ids: list[UUID], context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Time slot overlaps {len(conflicting_ids)} existing slot(s)",
            "SCHEDULING_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.conflicting_ids = conflicting_ids

    def details(self) -> dict:
        return {"conflicting_ids": [str(i) for i in self.conflicting_ids]}


class TaskOwnershipMismatchError(CalendarError):
    """Slot references a task owned by another user."""
    def __init__(
        self, task_id: UUID, task_owner_id: UUID, slot_owner_id: UUID,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Task '{task_id}' does not belong to user '{slot_owner_id}'",
            "TASK_OWNERSHIP_MISMATCH", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 422,
        )
        self.task_id = task_id
        self.task_owner_id = task_owner_id
        self.slot_owner_id = slot_owner_id

    def details(self) -> dict:
        return {"task_id": str(self.task_id), "user_id": str(self.slot_owner_id)}


class ResourceNotFoundError(CalendarError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: UUID,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id

    def details(self) -> dict:
        return {"resource_type": self.resource_type, "resource_id": str(self.resource_id)}


# ─── Infrastructure Errors ──────────────────────────────────────

class MalformedMetadataError(CalendarError):
    """Persisted extension data could not be decoded."""
    def __init__(
        self, time_slot_id: UUID, reason: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Extension data of time slot '{time_slot_id}' is malformed: {reason}",
            "MALFORMED_METADATA", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.time_slot_id = time_slot_id

    def details(self) -> dict:
        return {"time_slot_id": str(self.time_slot_id)}


class StorageUnavailableError(CalendarError):
    """Transient storage failure — the caller decides on retry/backoff."""

    retryable = True

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_UNAVAILABLE", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class IntegrityViolationError(CalendarError):
    """Store rejected a write on a constraint (duplicate id, check constraint)."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Integrity constraint violated during {operation}",
            "INTEGRITY_VIOLATION", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.operation = operation
