from __future__ import annotations

from .base import SessionStateHandler


class CompletedStateHandler(SessionStateHandler):
    """COMPLETED: terminal, every transition is rejected."""
