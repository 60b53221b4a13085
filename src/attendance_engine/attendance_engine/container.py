from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass, replace
from typing import Optional

from .approvals.mysql_exception_repository import MySQLExceptionRequestRepository
from .approvals.repository import ExceptionRequestRepository
from .approvals.service import ExceptionApprovalService
from .attendance.factory import SessionStateFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.settings import EngineSettings
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .events.publisher import EventPublisher
from .geofence.mysql_workplace_repository import MySQLWorkplaceRepository
from .geofence.repository import WorkplaceRepository
from .geofence.validator import GeofenceValidator
from .leave.ledger import LeaveLedger
from .leave.mysql_accrual_run_repository import MySQLAccrualRunRepository
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.repository import LeaveRepository
from .leave.service import LeaveRequestService
from .worktime.service import AttendanceStatsService


@dataclass(frozen=True)
class Container:
    settings: EngineSettings
    publisher: EventPublisher

    workplaces_repo: WorkplaceRepository
    employees_repo: EmployeeRepository
    attendance_repo: AttendanceRepository
    exceptions_repo: ExceptionRequestRepository
    leave_repo: LeaveRepository

    geofence: GeofenceValidator
    attendance_service: AttendanceService
    approval_service: ExceptionApprovalService
    leave_ledger: LeaveLedger
    leave_service: LeaveRequestService
    stats_service: AttendanceStatsService

    conn: Optional[DatabaseConnection] = None
    accrual_runs_repo: Optional[MySQLAccrualRunRepository] = None


def wire_services(
    *,
    workplaces_repo: WorkplaceRepository,
    employees_repo: EmployeeRepository,
    attendance_repo: AttendanceRepository,
    exceptions_repo: ExceptionRequestRepository,
    leave_repo: LeaveRepository,
    settings: EngineSettings,
    publisher: EventPublisher,
) -> Container:
    """Build the services on top of any repository implementations."""

    geofence = GeofenceValidator(workplaces_repo)
    attendance_service = AttendanceService(
        attendance_repo,
        employees_repo,
        geofence,
        state_factory=SessionStateFactory(),
        publisher=publisher,
        settings=settings,
    )
    approval_service = ExceptionApprovalService(
        exceptions_repo,
        attendance_repo,
        employees_repo,
        publisher=publisher,
        settings=settings,
    )
    leave_ledger = LeaveLedger(leave_repo, publisher=publisher)
    leave_service = LeaveRequestService(leave_repo, employees_repo, leave_ledger)
    stats_service = AttendanceStatsService(attendance_repo)

    return Container(
        settings=settings,
        publisher=publisher,
        workplaces_repo=workplaces_repo,
        employees_repo=employees_repo,
        attendance_repo=attendance_repo,
        exceptions_repo=exceptions_repo,
        leave_repo=leave_repo,
        geofence=geofence,
        attendance_service=attendance_service,
        approval_service=approval_service,
        leave_ledger=leave_ledger,
        leave_service=leave_service,
        stats_service=stats_service,
    )


def build_container(
    *,
    db_config: dict,
    settings: EngineSettings | None = None,
    executor: Executor | None = None,
) -> Container:
    settings = settings or EngineSettings()
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        timeout_seconds=int(settings.store_timeout_seconds),
    )
    conn = DatabaseConnection.get_instance(config)

    container = wire_services(
        workplaces_repo=MySQLWorkplaceRepository(conn),
        employees_repo=MySQLEmployeeRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        exceptions_repo=MySQLExceptionRequestRepository(conn),
        leave_repo=MySQLLeaveRepository(conn),
        settings=settings,
        publisher=EventPublisher(max_retries=settings.event_max_retries, executor=executor),
    )
    return replace(container, conn=conn, accrual_runs_repo=MySQLAccrualRunRepository(conn))
