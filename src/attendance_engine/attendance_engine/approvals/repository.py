from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RequestStatus
from .model import ExceptionRequest, NewExceptionRequest


class ExceptionRequestRepository(Protocol):
    def get_by_id(self, request_id: int) -> Optional[ExceptionRequest]:
        raise NotImplementedError

    def create(self, new: NewExceptionRequest, *, approve_as: int | None = None) -> ExceptionRequest:
        """Insert a request.

        With ``approve_as`` the request is stored already APPROVED by that
        employee and the session verification is applied in the same
        transaction. Raises DuplicatePendingRequest when a PENDING request of
        the same kind exists for the session.
        """

        raise NotImplementedError

    def resolve(
        self,
        request_id: int,
        *,
        status: RequestStatus,
        approver_id: int,
        notes: Optional[str],
        at: datetime,
    ) -> ExceptionRequest:
        """PENDING -> ``status`` under a row lock, plus the session verification update.

        Raises RequestNotFound, or AlreadyResolved when the request is no longer PENDING.
        """

        raise NotImplementedError

    def list_pending_for_session(self, session_id: int) -> Sequence[ExceptionRequest]:
        raise NotImplementedError

    def count_by_status(self) -> dict[RequestStatus, int]:
        raise NotImplementedError

    def average_response_seconds(self) -> Optional[float]:
        raise NotImplementedError
