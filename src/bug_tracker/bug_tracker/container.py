from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .bugs.mysql_bug_repository import MySQLBugRepository
from .bugs.repository import BugRepository
from .bugs.service import BugService
from .comments.mysql_comment_repository import MySQLCommentRepository
from .comments.repository import CommentRepository
from .comments.service import CommentService
from .core.constants import DEFAULT_CONFIRM_EMAIL_TTL_HOURS, DEFAULT_SESSION_DAYS
from .database.connection import DBConfig, DatabaseConnection
from .mail.mailer import Mailer, build_mailer
from .security.sessions import SessionIssuer
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    bugs_repo: BugRepository
    comments_repo: CommentRepository

    session_issuer: SessionIssuer
    mailer: Mailer

    auth_service: AuthService
    user_service: UserService
    bug_service: BugService
    comment_service: CommentService


def build_services(
    *,
    users_repo: UserRepository,
    bugs_repo: BugRepository,
    comments_repo: CommentRepository,
    mailer: Mailer,
    session_issuer: SessionIssuer,
    confirm_email_ttl: Optional[timedelta] = timedelta(hours=DEFAULT_CONFIRM_EMAIL_TTL_HOURS),
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given repositories (MySQL ones or in-memory fakes)."""
    return Container(
        conn=conn,
        users_repo=users_repo,
        bugs_repo=bugs_repo,
        comments_repo=comments_repo,
        session_issuer=session_issuer,
        mailer=mailer,
        auth_service=AuthService(users_repo, mailer, session_issuer, confirm_email_ttl=confirm_email_ttl),
        user_service=UserService(users_repo),
        bug_service=BugService(bugs_repo, users_repo),
        comment_service=CommentService(comments_repo, bugs_repo),
    )


def build_container(*, db_config: dict, settings) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    ttl_hours = getattr(settings, "CONFIRM_EMAIL_TTL_HOURS", DEFAULT_CONFIRM_EMAIL_TTL_HOURS)
    session_issuer = SessionIssuer(
        str(getattr(settings, "JWT_SECRET")),
        ttl=timedelta(days=int(getattr(settings, "JWT_EXPIRE_DAYS", DEFAULT_SESSION_DAYS))),
    )

    return build_services(
        users_repo=MySQLUserRepository(conn),
        bugs_repo=MySQLBugRepository(conn),
        comments_repo=MySQLCommentRepository(conn),
        mailer=build_mailer(settings),
        session_issuer=session_issuer,
        # 0 disables expiry of confirmation links
        confirm_email_ttl=timedelta(hours=int(ttl_hours)) if ttl_hours else None,
        conn=conn,
    )
