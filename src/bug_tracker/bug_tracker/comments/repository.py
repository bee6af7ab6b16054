from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Comment


class CommentRepository(Protocol):
    def get_by_id(self, comment_id: int) -> Optional[Comment]:
        raise NotImplementedError

    def get_for_bug_and_user(self, bug_id: int, user_id: int) -> Optional[Comment]:
        raise NotImplementedError

    def list_for_bug(self, bug_id: int, *, include_hidden: bool) -> Sequence[Comment]:
        """Newest first."""
        raise NotImplementedError

    def create_comment(self, *, bug_id: int, user_id: int, text: str, created_at: datetime) -> int:
        raise NotImplementedError

    def update_text(self, comment_id: int, *, text: str, edited_at: datetime) -> bool:
        raise NotImplementedError

    def delete_comment(self, comment_id: int) -> bool:
        raise NotImplementedError

    def add_like(self, comment_id: int, *, user_id: int, created_at: datetime) -> bool:
        raise NotImplementedError

    def remove_like(self, comment_id: int, *, user_id: int) -> bool:
        raise NotImplementedError

    def add_flag(self, comment_id: int, *, user_id: int, reason: str, created_at: datetime, hide: bool) -> bool:
        """Insert the flag and, when ``hide`` is set, hide the comment, in one transaction."""
        raise NotImplementedError
