from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import ExceptionKind, RequestStatus, VerificationStatus


@dataclass(frozen=True)
class ExceptionRequest:
    request_id: int
    session_id: int
    kind: ExceptionKind
    reason: str
    status: RequestStatus
    requester_id: int
    created_at: datetime
    approver_id: Optional[int] = None
    notes: Optional[str] = None
    resolved_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewExceptionRequest:
    session_id: int
    kind: ExceptionKind
    reason: str
    requester_id: int
    created_at: datetime


@dataclass(frozen=True)
class ApprovalStats:
    """Counters behind the approval dashboard.

    ``approval_rate`` is the percentage of resolved requests that were
    approved (cancelled ones excluded); zero when nothing is resolved yet.
    """

    total: int
    pending: int
    approved: int
    rejected: int
    approval_rate: float
    average_response_hours: float


def verification_effect(kind: ExceptionKind, status: RequestStatus) -> Optional[VerificationStatus]:
    """Session verification status a resolved request leaves behind, if any."""

    if not kind.affects_verification:
        return None
    if status is RequestStatus.APPROVED:
        return VerificationStatus.VERIFIED
    if status is RequestStatus.REJECTED:
        return VerificationStatus.REJECTED
    return None


def resolved_verification(current: VerificationStatus, effect: VerificationStatus) -> VerificationStatus:
    """A clock-skew review flag outlives exception decisions."""

    if current is VerificationStatus.NEEDS_REVIEW:
        return current
    return effect
