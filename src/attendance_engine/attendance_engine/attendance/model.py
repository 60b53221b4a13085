from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from ..core.constants import BREAK_ALLOWANCES
from ..core.enums import BreakType, PunchMethod, SessionState, VerificationStatus
from ..geofence.model import GeoPoint
from ..worktime.calculator.base import ZERO, WorkDurations


@dataclass(frozen=True)
class Break:
    """Break interval inside one attendance session."""

    break_id: int
    session_id: int
    break_type: BreakType
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration: timedelta = ZERO
    exceeded: bool = False

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def close(self, ended_at: datetime) -> "Break":
        duration = max(ended_at - self.started_at, ZERO)
        return replace(
            self,
            ended_at=ended_at,
            duration=duration,
            exceeded=duration > BREAK_ALLOWANCES[self.break_type.value],
        )


@dataclass(frozen=True)
class AttendanceSession:
    """One employee's attendance record for one calendar date."""

    session_id: int
    employee_id: int
    workplace_id: int
    work_date: date
    punch_in_time: datetime
    punch_in_point: GeoPoint
    punch_in_method: PunchMethod
    geofence_in_compliant: bool
    state: SessionState
    punch_out_time: Optional[datetime] = None
    punch_out_point: Optional[GeoPoint] = None
    punch_out_method: Optional[PunchMethod] = None
    geofence_out_compliant: Optional[bool] = None
    breaks: Tuple[Break, ...] = field(default_factory=tuple)
    durations: WorkDurations = field(default_factory=lambda: WorkDurations(ZERO, ZERO, ZERO, ZERO))
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    @property
    def working_state(self) -> SessionState:
        """State to return to when a break ends."""
        return SessionState.ACTIVE if self.geofence_in_compliant else SessionState.OUT_OF_RANGE

    @property
    def open_break(self) -> Optional[Break]:
        for b in self.breaks:
            if b.is_open:
                return b
        return None

    @property
    def needs_review(self) -> bool:
        return self.verification_status == VerificationStatus.NEEDS_REVIEW


@dataclass(frozen=True)
class NewSession:
    """Values for a session row that does not exist yet."""

    employee_id: int
    workplace_id: int
    work_date: date
    punch_in_time: datetime
    punch_in_point: GeoPoint
    punch_in_method: PunchMethod
    geofence_in_compliant: bool
    state: SessionState


@dataclass(frozen=True)
class SessionChange:
    """Result of one state-machine step, written back in the same transaction.

    ``new_break`` is inserted; ``closed_break`` replaces the stored open break.
    """

    session: AttendanceSession
    new_break: Optional[Break] = None
    closed_break: Optional[Break] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only projection served by current_status."""

    session_id: int
    employee_id: int
    workplace_id: int
    work_date: date
    state: SessionState
    punch_in_time: datetime
    punch_out_time: Optional[datetime]
    geofence_in_compliant: bool
    on_break_since: Optional[datetime]
    durations: WorkDurations
    provisional: bool

    @property
    def is_active(self) -> bool:
        return self.state.is_open
