from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
        finally:
            cur.close()
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def as_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Moodle ids and timestamps are BIGINT; the connector may hand back
    int, Decimal, bytes or str depending on the column and driver."""

    if value is None:
        return default
    if isinstance(value, bytes):
        value = value.decode("ascii")
    return int(value)


def as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def in_clause(values: Sequence[Any]) -> Tuple[str, Tuple[Any, ...]]:
    """Placeholders for an ``IN (...)`` filter; callers must not pass an empty list."""

    if not values:
        raise ValueError("in_clause needs at least one value")
    return ", ".join(["%s"] * len(values)), tuple(values)
