from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import StoreUnavailable
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

# Lock wait timeout, statement time limit, deadlock victim.
_TIMEOUT_ERRNOS = {
    errorcode.ER_LOCK_WAIT_TIMEOUT,
    errorcode.ER_QUERY_TIMEOUT,
    errorcode.ER_LOCK_DEADLOCK,
}


def is_duplicate_key(err: Exception) -> bool:
    return isinstance(err, mysql.connector.IntegrityError) and getattr(err, "errno", None) == errorcode.ER_DUP_ENTRY


def _is_unavailable(err: Exception) -> bool:
    if isinstance(err, (mysql.connector.InterfaceError, mysql.connector.OperationalError)):
        return True
    return isinstance(err, mysql.connector.DatabaseError) and getattr(err, "errno", None) in _TIMEOUT_ERRNOS


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One transaction: commit when the block finishes, roll back on any error.

    Connector timeouts and connection failures are re-raised as
    ``StoreUnavailable``; integrity errors propagate so the repository can map
    them to a domain conflict.
    """

    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as err:
        logger.error("Store connection failed: %s", err)
        raise StoreUnavailable(str(err)) from err

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as err:
        conn.rollback()
        if _is_unavailable(err):
            logger.warning("Store call aborted: %s", err)
            raise StoreUnavailable(str(err)) from err
        raise
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def seconds_to_timedelta(value: Any) -> timedelta:
    return timedelta(seconds=int(value or 0))


def to_decimal(value: Any) -> Decimal:
    """Normalize DECIMAL columns across connector implementations."""

    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)
