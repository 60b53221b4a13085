from __future__ import annotations

import mysql.connector

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, is_duplicate_key


class MySQLAccrualRunRepository:
    """Once-per-period guard for the accrual job (``accrual_runs`` primary key)."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def claim(self, period: str) -> bool:
        """Return False when another run already claimed ``period`` (YYYY-MM)."""

        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("INSERT INTO accrual_runs(period) VALUES(%s)", (period,))
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                return False
            raise
        return True

    def finish(self, period: str, balances_updated: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE accrual_runs SET balances_updated=%s WHERE period=%s",
                (int(balances_updated), period),
            )

    def release(self, period: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM accrual_runs WHERE period=%s AND balances_updated IS NULL", (period,))
