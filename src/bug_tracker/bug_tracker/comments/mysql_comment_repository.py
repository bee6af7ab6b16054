from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Optional, Sequence

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Comment, CommentFlag, CommentLike
from .repository import CommentRepository

_SELECT_COMMENT = """
    SELECT c.comment_id, c.bug_id, c.user_id, c.text, c.edited, c.edited_at,
           c.hidden, c.created_at, u.name AS user_name
    FROM comments c
    JOIN users u ON u.user_id = c.user_id
"""


class MySQLCommentRepository(CommentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load(self, cur, where: str, params: tuple, order: str = "") -> list[Comment]:
        cur.execute(f"{_SELECT_COMMENT} WHERE {where} {order}", params)
        rows = fetchall(cur)
        if not rows:
            return []

        ids = [int(r["comment_id"]) for r in rows]
        marks = ",".join(["%s"] * len(ids))

        likes: dict[int, list[CommentLike]] = defaultdict(list)
        cur.execute(
            f"SELECT comment_id, user_id, created_at FROM comment_likes WHERE comment_id IN ({marks}) ORDER BY created_at DESC",
            tuple(ids),
        )
        for r in fetchall(cur):
            likes[int(r["comment_id"])].append(CommentLike(user_id=int(r["user_id"]), created_at=r["created_at"]))

        flags: dict[int, list[CommentFlag]] = defaultdict(list)
        cur.execute(
            f"SELECT comment_id, user_id, reason, created_at FROM comment_flags WHERE comment_id IN ({marks}) ORDER BY created_at",
            tuple(ids),
        )
        for r in fetchall(cur):
            flags[int(r["comment_id"])].append(
                CommentFlag(user_id=int(r["user_id"]), reason=r["reason"], created_at=r["created_at"])
            )

        return [
            Comment(
                comment_id=int(r["comment_id"]),
                bug_id=int(r["bug_id"]),
                user_id=int(r["user_id"]),
                text=r["text"],
                edited=bool(r.get("edited")),
                edited_at=r.get("edited_at"),
                hidden=bool(r.get("hidden")),
                created_at=r.get("created_at"),
                likes=tuple(likes[int(r["comment_id"])]),
                flags=tuple(flags[int(r["comment_id"])]),
                user_name=r.get("user_name"),
            )
            for r in rows
        ]

    def get_by_id(self, comment_id: int) -> Optional[Comment]:
        with db_cursor(self._conn_factory) as (_, cur):
            found = self._load(cur, "c.comment_id=%s", (int(comment_id),))
            return found[0] if found else None

    def get_for_bug_and_user(self, bug_id: int, user_id: int) -> Optional[Comment]:
        with db_cursor(self._conn_factory) as (_, cur):
            found = self._load(cur, "c.bug_id=%s AND c.user_id=%s", (int(bug_id), int(user_id)))
            return found[0] if found else None

    def list_for_bug(self, bug_id: int, *, include_hidden: bool) -> Sequence[Comment]:
        where = "c.bug_id=%s" if include_hidden else "c.bug_id=%s AND c.hidden=0"
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load(cur, where, (int(bug_id),), "ORDER BY c.created_at DESC, c.comment_id DESC")

    def create_comment(self, *, bug_id: int, user_id: int, text: str, created_at: datetime) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO comments(bug_id, user_id, text, created_at) VALUES(%s,%s,%s,%s)",
                    (int(bug_id), int(user_id), text, created_at),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ValidationError("You have already commented on this bug")
            raise

    def update_text(self, comment_id: int, *, text: str, edited_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE comments SET text=%s, edited=1, edited_at=%s WHERE comment_id=%s",
                (text, edited_at, int(comment_id)),
            )
            return cur.rowcount > 0

    def delete_comment(self, comment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM comments WHERE comment_id=%s", (int(comment_id),))
            return cur.rowcount > 0

    def add_like(self, comment_id: int, *, user_id: int, created_at: datetime) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO comment_likes(comment_id, user_id, created_at) VALUES(%s,%s,%s)",
                    (int(comment_id), int(user_id), created_at),
                )
                return True
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ValidationError("Comment already liked")
            raise

    def remove_like(self, comment_id: int, *, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM comment_likes WHERE comment_id=%s AND user_id=%s",
                (int(comment_id), int(user_id)),
            )
            return cur.rowcount > 0

    def add_flag(self, comment_id: int, *, user_id: int, reason: str, created_at: datetime, hide: bool) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO comment_flags(comment_id, user_id, reason, created_at) VALUES(%s,%s,%s,%s)",
                    (int(comment_id), int(user_id), reason, created_at),
                )
                if hide:
                    cur.execute("UPDATE comments SET hidden=1 WHERE comment_id=%s", (int(comment_id),))
                return True
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise ValidationError("Comment already flagged by this user")
            raise
