from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield ``(conn, cur)``; commit on success, roll back on error, always close."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
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


def build_set_clause(fields: Dict[str, Any], allowed: frozenset) -> tuple[str, list]:
    """``{"a": 1, "b": None}`` -> ``("a=%s, b=%s", [1, None])``.

    Column names are checked against ``allowed``; values are always bound.
    """
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown columns: {sorted(unknown)}")
    names = list(fields)
    return ", ".join(f"{name}=%s" for name in names), [fields[name] for name in names]
