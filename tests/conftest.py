from __future__ import annotations

import re
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest

from src.bug_tracker.bug_tracker.bugs.model import Bug, BugStatusChange
from src.bug_tracker.bug_tracker.comments.model import Comment, CommentFlag, CommentLike
from src.bug_tracker.bug_tracker.container import build_services
from src.bug_tracker.bug_tracker.core.enums import Role, TokenKind
from src.bug_tracker.bug_tracker.core.exceptions import DuplicateEmailError, ValidationError
from src.bug_tracker.bug_tracker.main import create_app
from src.bug_tracker.bug_tracker.security.passwords import hash_password
from src.bug_tracker.bug_tracker.security.sessions import SessionIssuer
from src.bug_tracker.bug_tracker.users.model import TOKEN_HASH_COLUMNS, USER_MUTABLE_FIELDS, User


class InMemoryUsers:
    def __init__(self):
        self._by_id: dict[int, User] = {}
        self._next_id = 1
        # every update_fields call, in order: (user_id, fields)
        self.updates: list[tuple[int, dict]] = []

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._by_id.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        for user in self._by_id.values():
            if user.email == email:
                return user
        return None

    def find_by_token(self, kind: TokenKind, token_hash: str) -> Optional[User]:
        column = TOKEN_HASH_COLUMNS[kind]
        for user in self._by_id.values():
            if getattr(user, column) == token_hash:
                return user
        return None

    def create_user(self, *, name, email, password_hash, role, confirm_email_token_hash=None, confirm_email_expires_at=None) -> int:
        if self.get_by_email(email):
            raise DuplicateEmailError("Email is already registered")
        user_id = self._next_id
        self._next_id += 1
        self._by_id[user_id] = User(
            user_id=user_id,
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            confirm_email_token_hash=confirm_email_token_hash,
            confirm_email_expires_at=confirm_email_expires_at,
            created_at=datetime(2026, 1, 1, 8, 0, 0),
        )
        return user_id

    def update_fields(self, user_id: int, **fields) -> bool:
        unknown = set(fields) - USER_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown columns: {sorted(unknown)}")
        user = self._by_id.get(int(user_id))
        if not user:
            return False
        self.updates.append((user.user_id, dict(fields)))
        self._by_id[user.user_id] = replace(user, **fields)
        return True

    def add(self, *, name="Test User", email="user@example.com", password="secret123", role=Role.USER, confirmed=True, two_factor=False) -> User:
        user_id = self.create_user(name=name, email=email, password_hash=hash_password(password), role=role)
        self.update_fields(user_id, is_email_confirmed=confirmed, two_factor_enabled=two_factor)
        self.updates.clear()
        return self._by_id[user_id]


class RecordingMailer:
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False
        self.explode = False

    def send(self, to: str, subject: str, body: str) -> bool:
        if self.explode:
            raise ConnectionError("smtp down")
        if self.fail:
            return False
        self.sent.append((to, subject, body))
        return True

    @property
    def last_body(self) -> str:
        assert self.sent, "no mail was sent"
        return self.sent[-1][2]

    def last_confirm_token(self) -> str:
        return re.search(r"confirmemail\?token=([0-9a-f]+)", self.last_body).group(1)

    def last_reset_token(self) -> str:
        return re.search(r"resetpassword/([0-9a-f]+)", self.last_body).group(1)

    def last_code(self) -> str:
        return re.search(r"2FA code is: (\d{6})", self.last_body).group(1)


class InMemoryBugs:
    def __init__(self, users: InMemoryUsers):
        self._users = users
        self._by_id: dict[int, Bug] = {}
        self._history: list[BugStatusChange] = []
        self._next_id = 1

    def _with_names(self, bug: Bug) -> Bug:
        creator = self._users.get_by_id(bug.created_by)
        assignee = self._users.get_by_id(bug.assigned_to) if bug.assigned_to is not None else None
        return replace(
            bug,
            created_by_name=creator.name if creator else None,
            assigned_to_name=assignee.name if assignee else None,
        )

    def get_by_id(self, bug_id: int) -> Optional[Bug]:
        bug = self._by_id.get(int(bug_id))
        return self._with_names(bug) if bug else None

    def list_bugs(self, *, status=None, priority=None, project=None, search=None):
        items = list(self._by_id.values())
        if status:
            items = [b for b in items if b.status == status]
        if priority:
            items = [b for b in items if b.priority == priority]
        if project:
            items = [b for b in items if b.project == project]
        if search:
            needle = search.lower()
            items = [b for b in items if needle in b.title.lower() or needle in b.description.lower()]
        items.sort(key=lambda b: b.bug_id, reverse=True)
        return [self._with_names(b) for b in items]

    def create_bug(self, *, title, description, status, priority, created_by, assigned_to, project, due_date, labels) -> int:
        bug_id = self._next_id
        self._next_id += 1
        stamp = datetime(2026, 1, 1, 8, 0, 0) + timedelta(minutes=bug_id)
        self._by_id[bug_id] = Bug(
            bug_id=bug_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            created_by=created_by,
            assigned_to=assigned_to,
            project=project,
            due_date=due_date,
            labels=tuple(labels),
            created_at=stamp,
            updated_at=stamp,
        )
        return bug_id

    def update_bug(self, bug_id: int, fields: dict, *, status_change=None) -> bool:
        bug = self._by_id.get(int(bug_id))
        if not bug:
            return False
        self._by_id[bug.bug_id] = replace(bug, **fields)
        if status_change:
            self._history.append(status_change)
        return True

    def delete_bug(self, bug_id: int) -> bool:
        self._history = [h for h in self._history if h.bug_id != int(bug_id)]
        return self._by_id.pop(int(bug_id), None) is not None

    def list_status_history(self, bug_id: int):
        return [h for h in self._history if h.bug_id == int(bug_id)]

    def count_by_status(self):
        counts: dict[str, int] = {}
        for bug in self._by_id.values():
            counts[bug.status.value] = counts.get(bug.status.value, 0) + 1
        return [{"status": status, "count": n} for status, n in sorted(counts.items())]


class InMemoryComments:
    def __init__(self, users: InMemoryUsers):
        self._users = users
        self._by_id: dict[int, Comment] = {}
        self._next_id = 1

    def _with_name(self, comment: Comment) -> Comment:
        author = self._users.get_by_id(comment.user_id)
        return replace(comment, user_name=author.name if author else None)

    def get_by_id(self, comment_id: int) -> Optional[Comment]:
        comment = self._by_id.get(int(comment_id))
        return self._with_name(comment) if comment else None

    def get_for_bug_and_user(self, bug_id: int, user_id: int) -> Optional[Comment]:
        for c in self._by_id.values():
            if c.bug_id == int(bug_id) and c.user_id == int(user_id):
                return c
        return None

    def list_for_bug(self, bug_id: int, *, include_hidden: bool):
        items = [c for c in self._by_id.values() if c.bug_id == int(bug_id) and (include_hidden or not c.hidden)]
        items.sort(key=lambda c: c.comment_id, reverse=True)
        return [self._with_name(c) for c in items]

    def create_comment(self, *, bug_id, user_id, text, created_at) -> int:
        if self.get_for_bug_and_user(bug_id, user_id):
            raise ValidationError("You have already commented on this bug")
        comment_id = self._next_id
        self._next_id += 1
        self._by_id[comment_id] = Comment(
            comment_id=comment_id, bug_id=int(bug_id), user_id=int(user_id), text=text, created_at=created_at
        )
        return comment_id

    def update_text(self, comment_id: int, *, text, edited_at) -> bool:
        c = self._by_id[int(comment_id)]
        self._by_id[c.comment_id] = replace(c, text=text, edited=True, edited_at=edited_at)
        return True

    def delete_comment(self, comment_id: int) -> bool:
        return self._by_id.pop(int(comment_id), None) is not None

    def add_like(self, comment_id: int, *, user_id, created_at) -> bool:
        c = self._by_id[int(comment_id)]
        self._by_id[c.comment_id] = replace(c, likes=(CommentLike(user_id, created_at),) + c.likes)
        return True

    def remove_like(self, comment_id: int, *, user_id) -> bool:
        c = self._by_id[int(comment_id)]
        self._by_id[c.comment_id] = replace(c, likes=tuple(like for like in c.likes if like.user_id != user_id))
        return True

    def add_flag(self, comment_id: int, *, user_id, reason, created_at, hide) -> bool:
        c = self._by_id[int(comment_id)]
        flags = c.flags + (CommentFlag(user_id, reason, created_at),)
        self._by_id[c.comment_id] = replace(c, flags=flags, hidden=c.hidden or hide)
        return True


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def users_repo() -> InMemoryUsers:
    return InMemoryUsers()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def sessions() -> SessionIssuer:
    return SessionIssuer("test-session-signing-key-0123456789abcdef")


@pytest.fixture
def container(users_repo, mailer, sessions):
    return build_services(
        users_repo=users_repo,
        bugs_repo=InMemoryBugs(users_repo),
        comments_repo=InMemoryComments(users_repo),
        mailer=mailer,
        session_issuer=sessions,
    )


@pytest.fixture
def auth_service(container):
    return container.auth_service


@pytest.fixture
def app(container):
    app = create_app(container=container, settings_module="config.testing")
    app.config.update(TESTING=True)
    return app


@pytest.fixture
def client(app):
    # Bearer headers only; cookie handling is tested with its own client
    return app.test_client(use_cookies=False)
