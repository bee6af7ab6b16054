from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..common.datetime_utils import isoformat
from ..core.enums import BugPriority, BugStatus

BUG_MUTABLE_FIELDS = frozenset(
    {"title", "description", "status", "priority", "assigned_to", "project", "due_date", "labels"}
)


@dataclass(frozen=True)
class Bug:
    bug_id: int
    title: str
    description: str
    status: BugStatus
    priority: BugPriority
    created_by: int
    assigned_to: Optional[int] = None
    project: Optional[str] = None
    due_date: Optional[datetime] = None
    labels: Tuple[str, ...] = field(default_factory=tuple)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Filled by repositories that join the users table
    created_by_name: Optional[str] = None
    assigned_to_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.bug_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "createdBy": {"id": self.created_by, "name": self.created_by_name},
            "assignedTo": (
                {"id": self.assigned_to, "name": self.assigned_to_name} if self.assigned_to is not None else None
            ),
            "project": self.project,
            "dueDate": isoformat(self.due_date),
            "labels": list(self.labels),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class BugStatusChange:
    bug_id: int
    from_status: BugStatus
    to_status: BugStatus
    changed_by: Optional[int]
    changed_at: datetime

    def to_dict(self) -> dict:
        return {
            "from": self.from_status.value,
            "to": self.to_status.value,
            "changedBy": self.changed_by,
            "changedAt": isoformat(self.changed_at),
        }
