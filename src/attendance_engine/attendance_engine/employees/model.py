from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Employee:
    """Plain domain object: who punches and who approves."""

    employee_id: int
    full_name: str
    role: Role
    workplace_id: Optional[int]
    manager_id: Optional[int] = None
    is_active: bool = True

    def manages(self, other: "Employee") -> bool:
        return other.manager_id is not None and other.manager_id == self.employee_id

    def oversees(self, other: "Employee") -> bool:
        """Admins oversee everyone; managers their workplace and direct reports."""

        if not self.is_active:
            return False
        if self.role == Role.ADMIN:
            return True
        if self.role == Role.MANAGER:
            if self.workplace_id is not None and self.workplace_id == other.workplace_id:
                return True
            return self.manages(other)
        return False
