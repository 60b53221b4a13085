from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any, Optional

from blinker import Namespace

from ..core.constants import DEFAULT_EVENT_MAX_RETRIES

logger = logging.getLogger(__name__)

signals = Namespace()

SESSION_PUNCHED_IN = "session.punched-in"
SESSION_BREAK_STARTED = "session.break-started"
SESSION_BREAK_ENDED = "session.break-ended"
SESSION_PUNCHED_OUT = "session.punched-out"
EXCEPTION_REQUESTED = "exception.requested"
EXCEPTION_RESOLVED = "exception.resolved"
LEAVE_REQUEST_APPROVED = "leave.request-approved"


class EventPublisher:
    """Fire-and-forget delivery of committed domain events.

    Observers subscribe with ``signals.signal(name).connect(receiver)``.
    Each receiver gets ``max_retries`` extra attempts; after that the event is
    dropped for that receiver and a warning is logged. Nothing raised here
    ever reaches the caller, the transaction is already committed.
    """

    def __init__(self, *, max_retries: int = DEFAULT_EVENT_MAX_RETRIES, executor: Optional[Executor] = None):
        self._max_retries = max(0, int(max_retries))
        self._executor = executor

    def emit(self, name: str, payload: dict[str, Any]) -> None:
        if self._executor is not None:
            try:
                self._executor.submit(self._deliver, name, dict(payload))
            except Exception as exc:
                logger.warning("event %s dropped, executor unavailable: %s", name, exc)
        else:
            self._deliver(name, dict(payload))

    def _deliver(self, name: str, payload: dict[str, Any]) -> None:
        signal = signals.signal(name)
        for receiver in list(signal.receivers_for(self)):
            self._deliver_one(receiver, name, payload)

    def _deliver_one(self, receiver, name: str, payload: dict[str, Any]) -> None:
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                receiver(self, **payload)
                return
            except Exception as exc:
                if attempt < attempts:
                    logger.debug("event %s delivery failed (attempt %d/%d): %s", name, attempt, attempts, exc)
                    continue
                logger.warning("event %s dropped after %d attempts: %s", name, attempts, exc)

