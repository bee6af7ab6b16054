from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.validators import parse_enum, require_max_length, require_non_empty
from ..core.constants import BUG_DESCRIPTION_MAX_LENGTH, BUG_MAX_LABELS, BUG_TITLE_MAX_LENGTH
from ..core.enums import BugPriority, BugStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .model import BUG_MUTABLE_FIELDS, Bug, BugStatusChange
from .repository import BugRepository

logger = logging.getLogger(__name__)

PROJECT_MAX_LENGTH = 100


class BugService:
    """Use case: report, browse and maintain bugs.

    Only the reporter or an admin may read a single bug in detail, change it
    or delete it; the list and the status counts are open to any signed-in
    user.
    """

    def __init__(self, bugs: BugRepository, users: UserRepository):
        self._bugs = bugs
        self._users = users

    # -------- validation --------
    @staticmethod
    def _clean_title(value) -> str:
        return require_max_length(require_non_empty(value, "title"), "title", BUG_TITLE_MAX_LENGTH)

    @staticmethod
    def _clean_description(value) -> str:
        return require_max_length(require_non_empty(value, "description"), "description", BUG_DESCRIPTION_MAX_LENGTH)

    @staticmethod
    def _clean_project(value) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        return require_max_length(str(value).strip(), "project", PROJECT_MAX_LENGTH)

    @staticmethod
    def _clean_labels(value) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str) or not isinstance(value, Iterable):
            raise ValidationError("Labels must be a list of strings")
        labels = tuple(str(v).strip() for v in value if v is not None and str(v).strip())
        if len(labels) > BUG_MAX_LABELS:
            raise ValidationError(f"Cannot have more than {BUG_MAX_LABELS} labels")
        return labels

    @staticmethod
    def _clean_due_date(value, now: datetime) -> Optional[datetime]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            due = value
        else:
            try:
                due = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
            except ValueError:
                raise ValidationError("Due date must be an ISO 8601 date")
        if due.tzinfo is not None:
            due = due.astimezone(timezone.utc).replace(tzinfo=None)
        if due <= now:
            raise ValidationError("Due date must be in the future")
        return due

    def _clean_assignee(self, value) -> Optional[int]:
        if value is None or value == "":
            return None
        try:
            user_id = int(value)
        except (TypeError, ValueError):
            raise ValidationError("assignedTo must be a user id")
        if not self._users.get_by_id(user_id):
            raise ValidationError(f"No user with the id of {user_id}")
        return user_id

    # -------- access --------
    def _require_bug(self, bug_id: int) -> Bug:
        bug = self._bugs.get_by_id(int(bug_id))
        if not bug:
            raise NotFoundError(f"Bug not found with id of {bug_id}")
        return bug

    @staticmethod
    def _require_owner_or_admin(bug: Bug, actor: User, action: str) -> None:
        if bug.created_by != actor.user_id and not actor.is_admin:
            raise AuthorizationError(f"User {actor.user_id} is not authorized to {action} this bug")

    # -------- queries --------
    def list_bugs(
        self,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        project: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[Bug]:
        return self._bugs.list_bugs(
            status=parse_enum(BugStatus, status, "status") if status else None,
            priority=parse_enum(BugPriority, priority, "priority") if priority else None,
            project=(project or "").strip() or None,
            search=(search or "").strip() or None,
        )

    def get_bug(self, bug_id: int, actor: User) -> Bug:
        bug = self._require_bug(bug_id)
        self._require_owner_or_admin(bug, actor, "access")
        return bug

    def status_stats(self) -> Sequence[dict]:
        return self._bugs.count_by_status()

    def status_history(self, bug_id: int, actor: User) -> Sequence[BugStatusChange]:
        self.get_bug(bug_id, actor)
        return self._bugs.list_status_history(int(bug_id))

    # -------- commands --------
    def create_bug(
        self,
        actor: User,
        *,
        title: str,
        description: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to=None,
        project: Optional[str] = None,
        due_date=None,
        labels=None,
        now: Optional[datetime] = None,
    ) -> Bug:
        now = now or utc_now()
        bug_id = self._bugs.create_bug(
            title=self._clean_title(title),
            description=self._clean_description(description),
            status=parse_enum(BugStatus, status or BugStatus.OPEN.value, "status"),
            priority=parse_enum(BugPriority, priority or BugPriority.MEDIUM.value, "priority"),
            created_by=actor.user_id,
            assigned_to=self._clean_assignee(assigned_to),
            project=self._clean_project(project),
            due_date=self._clean_due_date(due_date, now),
            labels=self._clean_labels(labels),
        )
        logger.info("Bug id=%s created by user id=%s", bug_id, actor.user_id)
        return self._require_bug(bug_id)

    def update_bug(self, bug_id: int, actor: User, changes: dict, *, now: Optional[datetime] = None) -> Bug:
        now = now or utc_now()
        bug = self._require_bug(bug_id)
        self._require_owner_or_admin(bug, actor, "update")

        unknown = set(changes) - BUG_MUTABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        fields: dict = {}
        status_change: Optional[BugStatusChange] = None
        for name, value in changes.items():
            if name == "title":
                fields[name] = self._clean_title(value)
            elif name == "description":
                fields[name] = self._clean_description(value)
            elif name == "priority":
                fields[name] = parse_enum(BugPriority, value, "priority")
            elif name == "assigned_to":
                fields[name] = self._clean_assignee(value)
            elif name == "project":
                fields[name] = self._clean_project(value)
            elif name == "due_date":
                fields[name] = self._clean_due_date(value, now)
            elif name == "labels":
                fields[name] = self._clean_labels(value)
            elif name == "status":
                new_status = parse_enum(BugStatus, value, "status")
                if new_status != bug.status:
                    fields[name] = new_status
                    status_change = BugStatusChange(
                        bug_id=bug.bug_id,
                        from_status=bug.status,
                        to_status=new_status,
                        changed_by=actor.user_id,
                        changed_at=now,
                    )

        if fields or status_change:
            self._bugs.update_bug(bug.bug_id, fields, status_change=status_change)
            if status_change:
                logger.info(
                    "Bug id=%s status %s -> %s by user id=%s",
                    bug.bug_id,
                    status_change.from_status.value,
                    status_change.to_status.value,
                    actor.user_id,
                )
        return self._require_bug(bug.bug_id)

    def delete_bug(self, bug_id: int, actor: User) -> None:
        bug = self._require_bug(bug_id)
        self._require_owner_or_admin(bug, actor, "delete")
        self._bugs.delete_bug(bug.bug_id)
        logger.info("Bug id=%s deleted by user id=%s", bug.bug_id, actor.user_id)
