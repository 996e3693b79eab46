"""
Domain exceptions

Services raise these; the API layer renders them through a single
exception handler using each class's status_code and error_code.
"""

from typing import Any, Optional


class AllocatorException(Exception):
    """Base class for every domain error"""
    status_code = 400
    error_code = "ERROR"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


# ============ Validation ============

class ValidationFailed(AllocatorException):
    """Malformed body, bad email shape, empty/duplicate/unknown rankings"""
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None, details: Any = None):
        self.field = field
        if details is None and field:
            details = {"field": field}
        super().__init__(message, details)


# ============ Authorization ============

class Unauthenticated(AllocatorException):
    """No admin credential supplied"""
    status_code = 401
    error_code = "UNAUTHENTICATED"
    default_message = "Admin token required"


class Forbidden(AllocatorException):
    """Wrong admin credential, or an unverified participant submitting"""
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Invalid token"


# ============ Lookup ============

class NotFound(AllocatorException):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", message: Optional[str] = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class Conflict(AllocatorException):
    """Duplicate email for an event, or email already verified"""
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Conflict"


# ============ State ============

class InvalidEventState(AllocatorException):
    """Operation not allowed in the event's current status"""
    error_code = "INVALID_STATE"
    default_message = "Operation not allowed in the current event status"


class InvalidStateTransition(InvalidEventState):
    """Illegal status change, including any change out of allocated"""
    default_message = "Cannot change status after allocation"


class VerificationFailed(AllocatorException):
    """Verification code expired or incorrect"""
    error_code = "VERIFICATION_FAILED"


class RateLimited(AllocatorException):
    status_code = 429
    error_code = "RATE_LIMITED"
    default_message = "Rate limit exceeded. Please try again later."


# ============ Persistence ============

class PersistenceError(AllocatorException):
    """Storage read/write failure; not retried here"""
    status_code = 500
    error_code = "PERSISTENCE_ERROR"
    default_message = "Storage operation failed"


class AllocationStatusPending(PersistenceError):
    """Allocation rows are stored but the event never reached allocated"""
    error_code = "ALLOCATION_STATUS_PENDING"
    default_message = "Allocations saved but failed to update event status"


class DuplicateRecord(PersistenceError):
    """A storage uniqueness constraint rejected an insert"""
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Record already exists"

    def __init__(self, constraint: str = "", message: Optional[str] = None):
        self.constraint = constraint
        super().__init__(message)
