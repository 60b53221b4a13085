from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Employee role used for approval scope."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"

    @property
    def is_privileged(self) -> bool:
        return self in {Role.ADMIN, Role.MANAGER}


class SessionState(str, Enum):
    """Tagged state of one attendance session.

    "No session" is the absence of a row, not a state.
    """

    ACTIVE = "ACTIVE"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    ON_BREAK = "ON_BREAK"
    COMPLETED = "COMPLETED"

    @property
    def is_open(self) -> bool:
        return self is not SessionState.COMPLETED


class VerificationStatus(str, Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    REJECTED = "rejected"
    NEEDS_REVIEW = "needs_review"


class PunchMethod(str, Enum):
    MOBILE = "mobile"
    WEB = "web"
    BIOMETRIC = "biometric"
    MANUAL = "manual"


class BreakType(str, Enum):
    MEAL = "meal"
    SHORT = "short"
    REST = "rest"
    OTHER = "other"


class ExceptionKind(str, Enum):
    LATE = "late"
    EARLY_LEAVE = "early-leave"
    OVERTIME = "overtime"
    BREAK_EXTENSION = "break-extension"

    @property
    def affects_verification(self) -> bool:
        return self is not ExceptionKind.BREAK_EXTENSION


class RequestStatus(str, Enum):
    """Approval status shared by exception and leave requests."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def status(self) -> RequestStatus:
        return RequestStatus.APPROVED if self is Decision.APPROVE else RequestStatus.REJECTED
