from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from ..bugs.repository import BugRepository
from ..common.datetime_utils import utc_now
from ..common.validators import require_max_length, require_non_empty
from ..core.constants import (
    COMMENT_TEXT_MAX_LENGTH,
    DEFAULT_FLAG_REASON,
    FLAG_REASON_MAX_LENGTH,
    FLAGS_TO_HIDE_COMMENT,
)
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import User
from .model import Comment, CommentFlag, CommentLike
from .repository import CommentRepository

logger = logging.getLogger(__name__)


class CommentService:
    """Use case: discuss a bug.

    Each user may leave one comment per bug. Comments collect likes and
    flags; once enough distinct users flag a comment it is hidden from
    everyone except admins.
    """

    def __init__(self, comments: CommentRepository, bugs: BugRepository):
        self._comments = comments
        self._bugs = bugs

    @staticmethod
    def _clean_text(value) -> str:
        return require_max_length(require_non_empty(value, "text"), "text", COMMENT_TEXT_MAX_LENGTH)

    def _require_bug(self, bug_id: int) -> None:
        if not self._bugs.get_by_id(int(bug_id)):
            raise NotFoundError(f"Bug not found with id of {bug_id}")

    def _require_comment(self, bug_id: int, comment_id: int) -> Comment:
        comment = self._comments.get_by_id(int(comment_id))
        if not comment or comment.bug_id != int(bug_id):
            raise NotFoundError(f"Comment not found with id of {comment_id}")
        return comment

    @staticmethod
    def _require_owner_or_admin(comment: Comment, actor: User, action: str) -> None:
        if comment.user_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError(f"User {actor.user_id} is not authorized to {action} this comment")

    # -------- queries --------
    def list_comments(self, bug_id: int, actor: Optional[User] = None) -> Sequence[Comment]:
        self._require_bug(bug_id)
        include_hidden = bool(actor and actor.is_admin)
        return self._comments.list_for_bug(int(bug_id), include_hidden=include_hidden)

    def get_comment(self, bug_id: int, comment_id: int) -> Comment:
        return self._require_comment(bug_id, comment_id)

    # -------- commands --------
    def add_comment(self, bug_id: int, actor: User, text, *, now: Optional[datetime] = None) -> Comment:
        now = now or utc_now()
        self._require_bug(bug_id)
        text = self._clean_text(text)
        if self._comments.get_for_bug_and_user(int(bug_id), actor.user_id):
            raise ValidationError("You have already commented on this bug")

        comment_id = self._comments.create_comment(
            bug_id=int(bug_id), user_id=actor.user_id, text=text, created_at=now
        )
        logger.info("Comment id=%s added to bug id=%s by user id=%s", comment_id, bug_id, actor.user_id)
        return self._require_comment(bug_id, comment_id)

    def update_comment(
        self, bug_id: int, comment_id: int, actor: User, text=None, *, now: Optional[datetime] = None
    ) -> Comment:
        now = now or utc_now()
        comment = self._require_comment(bug_id, comment_id)
        self._require_owner_or_admin(comment, actor, "update")
        if text is not None:
            self._comments.update_text(comment.comment_id, text=self._clean_text(text), edited_at=now)
        return self._require_comment(bug_id, comment_id)

    def delete_comment(self, bug_id: int, comment_id: int, actor: User) -> None:
        comment = self._require_comment(bug_id, comment_id)
        self._require_owner_or_admin(comment, actor, "delete")
        self._comments.delete_comment(comment.comment_id)
        logger.info("Comment id=%s deleted by user id=%s", comment.comment_id, actor.user_id)

    def like(self, bug_id: int, comment_id: int, actor: User, *, now: Optional[datetime] = None) -> Sequence[CommentLike]:
        now = now or utc_now()
        comment = self._require_comment(bug_id, comment_id)
        if comment.liked_by(actor.user_id):
            raise ValidationError("Comment already liked")
        self._comments.add_like(comment.comment_id, user_id=actor.user_id, created_at=now)
        return self._require_comment(bug_id, comment_id).likes

    def unlike(self, bug_id: int, comment_id: int, actor: User) -> Sequence[CommentLike]:
        comment = self._require_comment(bug_id, comment_id)
        if not comment.liked_by(actor.user_id):
            raise ValidationError("Comment has not yet been liked")
        self._comments.remove_like(comment.comment_id, user_id=actor.user_id)
        return self._require_comment(bug_id, comment_id).likes

    def flag(
        self,
        bug_id: int,
        comment_id: int,
        actor: User,
        reason: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Sequence[CommentFlag]:
        now = now or utc_now()
        comment = self._require_comment(bug_id, comment_id)
        if comment.flagged_by(actor.user_id):
            raise ValidationError("Comment already flagged by this user")

        reason = (str(reason).strip() if reason is not None else "") or DEFAULT_FLAG_REASON
        reason = require_max_length(reason, "reason", FLAG_REASON_MAX_LENGTH)
        hide = not comment.hidden and len(comment.flags) + 1 >= FLAGS_TO_HIDE_COMMENT

        self._comments.add_flag(
            comment.comment_id, user_id=actor.user_id, reason=reason, created_at=now, hide=hide
        )
        if hide:
            logger.warning("Comment id=%s hidden after %s flags", comment.comment_id, FLAGS_TO_HIDE_COMMENT)
        return self._require_comment(bug_id, comment_id).flags
