from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import SessionState
from .states.base import SessionStateHandler
from .states.completed_state import CompletedStateHandler
from .states.on_break_state import OnBreakStateHandler
from .states.working_state import WorkingStateHandler


@dataclass
class SessionStateFactory:
    """Factory Pattern: one handler per tagged session state."""

    def for_state(self, state: SessionState) -> SessionStateHandler:
        if state in {SessionState.ACTIVE, SessionState.OUT_OF_RANGE}:
            return WorkingStateHandler()
        if state is SessionState.ON_BREAK:
            return OnBreakStateHandler()
        return CompletedStateHandler()
