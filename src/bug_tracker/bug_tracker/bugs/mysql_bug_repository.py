from __future__ import annotations

import json
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import BugPriority, BugStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_set_clause, db_cursor, fetchall, fetchone
from .model import BUG_MUTABLE_FIELDS, Bug, BugStatusChange
from .repository import BugRepository

_SELECT_BUG = """
    SELECT b.bug_id, b.title, b.description, b.status, b.priority,
           b.created_by, b.assigned_to, b.project, b.due_date, b.labels,
           b.created_at, b.updated_at,
           cu.name AS created_by_name, au.name AS assigned_to_name
    FROM bugs b
    JOIN users cu ON cu.user_id = b.created_by
    LEFT JOIN users au ON au.user_id = b.assigned_to
"""


def _row_to_bug(r: dict) -> Bug:
    return Bug(
        bug_id=int(r["bug_id"]),
        title=r["title"],
        description=r["description"],
        status=BugStatus(r["status"]),
        priority=BugPriority(r["priority"]),
        created_by=int(r["created_by"]),
        assigned_to=r.get("assigned_to"),
        project=r.get("project"),
        due_date=r.get("due_date"),
        labels=tuple(json.loads(r["labels"])) if r.get("labels") else (),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        created_by_name=r.get("created_by_name"),
        assigned_to_name=r.get("assigned_to_name"),
    )


def _to_column(name: str, value):
    if name in {"status", "priority"}:
        return value.value
    if name == "labels":
        return json.dumps(list(value or []))
    return value


class MySQLBugRepository(BugRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, bug_id: int) -> Optional[Bug]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT_BUG} WHERE b.bug_id=%s", (int(bug_id),))
            row = fetchone(cur)
            return _row_to_bug(row) if row else None

    def list_bugs(
        self,
        *,
        status: Optional[BugStatus] = None,
        priority: Optional[BugPriority] = None,
        project: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[Bug]:
        clauses = ["1=1"]
        params: list[object] = []

        if status is not None:
            clauses.append("b.status=%s")
            params.append(status.value)
        if priority is not None:
            clauses.append("b.priority=%s")
            params.append(priority.value)
        if project:
            clauses.append("b.project=%s")
            params.append(project)
        if search:
            clauses.append("(b.title LIKE %s OR b.description LIKE %s)")
            like = f"%{search}%"
            params.extend([like, like])

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT_BUG} WHERE {where} ORDER BY b.created_at DESC, b.bug_id DESC", tuple(params))
            return [_row_to_bug(r) for r in fetchall(cur)]

    def create_bug(
        self,
        *,
        title: str,
        description: str,
        status: BugStatus,
        priority: BugPriority,
        created_by: int,
        assigned_to: Optional[int],
        project: Optional[str],
        due_date: Optional[datetime],
        labels: Sequence[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO bugs(title, description, status, priority, created_by, assigned_to, project, due_date, labels)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    title,
                    description,
                    status.value,
                    priority.value,
                    int(created_by),
                    assigned_to,
                    project,
                    due_date,
                    json.dumps(list(labels)),
                ),
            )
            return int(cur.lastrowid)

    def update_bug(self, bug_id: int, fields: dict, *, status_change: Optional[BugStatusChange] = None) -> bool:
        if not fields and status_change is None:
            return False
        columns = {name: _to_column(name, value) for name, value in fields.items()}
        with db_cursor(self._conn_factory) as (_, cur):
            ok = True
            if columns:
                set_clause, params = build_set_clause(columns, BUG_MUTABLE_FIELDS)
                cur.execute(f"UPDATE bugs SET {set_clause} WHERE bug_id=%s", tuple(params + [int(bug_id)]))
                ok = cur.rowcount > 0
            if status_change is not None:
                cur.execute(
                    """
                    INSERT INTO bug_status_history(bug_id, from_status, to_status, changed_by, changed_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (
                        int(status_change.bug_id),
                        status_change.from_status.value,
                        status_change.to_status.value,
                        status_change.changed_by,
                        status_change.changed_at,
                    ),
                )
            return ok

    def delete_bug(self, bug_id: int) -> bool:
        # comments, likes, flags and history go with it (ON DELETE CASCADE)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM bugs WHERE bug_id=%s", (int(bug_id),))
            return cur.rowcount > 0

    def list_status_history(self, bug_id: int) -> Sequence[BugStatusChange]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT bug_id, from_status, to_status, changed_by, changed_at
                FROM bug_status_history
                WHERE bug_id=%s
                ORDER BY changed_at, history_id
                """,
                (int(bug_id),),
            )
            return [
                BugStatusChange(
                    bug_id=int(r["bug_id"]),
                    from_status=BugStatus(r["from_status"]),
                    to_status=BugStatus(r["to_status"]),
                    changed_by=r.get("changed_by"),
                    changed_at=r["changed_at"],
                )
                for r in fetchall(cur)
            ]

    def count_by_status(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT status, COUNT(*) AS count FROM bugs GROUP BY status ORDER BY status")
            return [{"status": r["status"], "count": int(r["count"])} for r in fetchall(cur)]
