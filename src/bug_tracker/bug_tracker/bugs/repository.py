from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import BugPriority, BugStatus
from .model import Bug, BugStatusChange


class BugRepository(Protocol):
    def get_by_id(self, bug_id: int) -> Optional[Bug]:
        raise NotImplementedError

    def list_bugs(
        self,
        *,
        status: Optional[BugStatus] = None,
        priority: Optional[BugPriority] = None,
        project: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[Bug]:
        """Newest first."""
        raise NotImplementedError

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
        raise NotImplementedError

    def update_bug(self, bug_id: int, fields: dict, *, status_change: Optional[BugStatusChange] = None) -> bool:
        """Apply ``fields`` and record ``status_change`` in one transaction."""
        raise NotImplementedError

    def delete_bug(self, bug_id: int) -> bool:
        """Delete the bug together with its comments and history."""
        raise NotImplementedError

    def list_status_history(self, bug_id: int) -> Sequence[BugStatusChange]:
        raise NotImplementedError

    def count_by_status(self) -> Sequence[dict]:
        raise NotImplementedError
