from __future__ import annotations

from datetime import datetime
from typing import Optional

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..core.enums import Role, TokenKind
from ..core.exceptions import DuplicateEmailError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_set_clause, db_cursor, fetchone
from .model import TOKEN_HASH_COLUMNS, USER_MUTABLE_FIELDS, User
from .repository import UserRepository

_USER_COLUMNS = """
    user_id, name, email, password_hash, role, is_email_confirmed,
    confirm_email_token_hash, confirm_email_expires_at,
    reset_password_token_hash, reset_password_expires_at,
    two_factor_enabled, two_factor_code_hash, two_factor_code_expires_at,
    created_at
"""


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        is_email_confirmed=bool(row.get("is_email_confirmed")),
        confirm_email_token_hash=row.get("confirm_email_token_hash"),
        confirm_email_expires_at=row.get("confirm_email_expires_at"),
        reset_password_token_hash=row.get("reset_password_token_hash"),
        reset_password_expires_at=row.get("reset_password_expires_at"),
        two_factor_enabled=bool(row.get("two_factor_enabled")),
        two_factor_code_hash=row.get("two_factor_code_hash"),
        two_factor_code_expires_at=row.get("two_factor_code_expires_at"),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, params: tuple) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE {where}", params)
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("user_id=%s", (int(user_id),))

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email=%s", (email,))

    def find_by_token(self, kind: TokenKind, token_hash: str) -> Optional[User]:
        column = TOKEN_HASH_COLUMNS[kind]
        return self._get_one(f"{column}=%s", (token_hash,))

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        confirm_email_token_hash: Optional[str] = None,
        confirm_email_expires_at: Optional[datetime] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(
                        name, email, password_hash, role, is_email_confirmed,
                        confirm_email_token_hash, confirm_email_expires_at
                    )
                    VALUES(%s,%s,%s,%s,0,%s,%s)
                    """,
                    (name, email, password_hash, role.value, confirm_email_token_hash, confirm_email_expires_at),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateEmailError("Email is already registered")
            raise

    def update_fields(self, user_id: int, **fields) -> bool:
        if not fields:
            return False
        set_clause, params = build_set_clause(fields, USER_MUTABLE_FIELDS)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(f"UPDATE users SET {set_clause} WHERE user_id=%s", tuple(params + [int(user_id)]))
                return cur.rowcount > 0
        except IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise DuplicateEmailError("Email is already registered")
            raise
