class DomainError(Exception):
    """Base exception for business rule violations.

    Every error carries a stable ``kind`` identifier and a human-readable
    ``reason``. ``category`` groups kinds for callers that only need to know
    how to react (the HTTP adapter maps it to a status code).
    """

    kind = "domain-error"
    category = "domain"
    default_reason = "Business rule violated"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.reason}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation"
    category = "validation"
    default_reason = "Invalid input"


class OutsideGeofence(ValidationError):
    kind = "outside-geofence"
    default_reason = "Location is outside every active zone of the workplace"


# -------- not found --------
class NotFoundError(DomainError):
    kind = "not-found"
    category = "not-found"


class UnknownWorkplace(NotFoundError):
    kind = "unknown-workplace"
    default_reason = "Workplace does not exist or is inactive"


class UnknownEmployee(NotFoundError):
    kind = "unknown-employee"
    default_reason = "Employee does not exist or is inactive"


class SessionNotFound(NotFoundError):
    kind = "session-not-found"
    default_reason = "Attendance session does not exist"


class RequestNotFound(NotFoundError):
    kind = "request-not-found"
    default_reason = "Request does not exist"


class UnknownLeaveType(NotFoundError):
    kind = "unknown-leave-type"
    default_reason = "Leave type does not exist or is inactive"


class BalanceNotFound(NotFoundError):
    kind = "balance-not-found"
    default_reason = "No leave balance for this employee, leave type and year"


# -------- conflicts --------
class ConflictError(DomainError):
    """Current state does not allow the operation; safe to retry after adjusting."""

    kind = "conflict"
    category = "conflict"


class DuplicateSession(ConflictError):
    kind = "duplicate-session"
    default_reason = "Already punched in today"


class NoActiveSession(ConflictError):
    kind = "no-active-session"
    default_reason = "No active attendance session"


class BreakAlreadyOpen(ConflictError):
    kind = "break-already-open"
    default_reason = "A break is already in progress"


class NoOpenBreak(ConflictError):
    kind = "no-open-break"
    default_reason = "No break is in progress"


class DuplicatePendingRequest(ConflictError):
    kind = "duplicate-pending-request"
    default_reason = "A request of this kind is already pending for the session"


class AlreadyResolved(ConflictError):
    kind = "already-resolved"
    default_reason = "Request has already been resolved"


class AlreadyExists(ConflictError):
    kind = "already-exists"
    default_reason = "Record already exists"


# -------- invariant protection --------
class InvariantError(DomainError):
    """Operation blocked to keep a core invariant; resolve the condition first."""

    kind = "invariant"
    category = "invariant"


class InsufficientBalance(InvariantError):
    kind = "insufficient-balance"
    default_reason = "Leave balance is too low for this request"


class OpenBreakPending(InvariantError):
    kind = "open-break-pending"
    default_reason = "End the current break before punching out"


# -------- authorization --------
class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "unauthorized"
    category = "unauthorized"
    default_reason = "Not allowed to perform this action"


class Unauthorized(AuthorizationError):
    pass


# -------- infrastructure --------
class StoreUnavailable(DomainError):
    """Backing store timed out or is unreachable. Callers retry with backoff."""

    kind = "store-unavailable"
    category = "infrastructure"
    default_reason = "Attendance store is unavailable"
