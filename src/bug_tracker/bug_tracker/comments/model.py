from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..common.datetime_utils import isoformat


@dataclass(frozen=True)
class CommentLike:
    user_id: int
    created_at: datetime

    def to_dict(self) -> dict:
        return {"user": self.user_id, "createdAt": isoformat(self.created_at)}


@dataclass(frozen=True)
class CommentFlag:
    user_id: int
    reason: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {"user": self.user_id, "reason": self.reason, "createdAt": isoformat(self.created_at)}


@dataclass(frozen=True)
class Comment:
    comment_id: int
    bug_id: int
    user_id: int
    text: str
    edited: bool = False
    edited_at: Optional[datetime] = None
    hidden: bool = False
    created_at: Optional[datetime] = None
    likes: Tuple[CommentLike, ...] = field(default_factory=tuple)
    flags: Tuple[CommentFlag, ...] = field(default_factory=tuple)
    user_name: Optional[str] = None

    def liked_by(self, user_id: int) -> bool:
        return any(like.user_id == user_id for like in self.likes)

    def flagged_by(self, user_id: int) -> bool:
        return any(flag.user_id == user_id for flag in self.flags)

    def to_dict(self) -> dict:
        return {
            "id": self.comment_id,
            "bug": self.bug_id,
            "user": {"id": self.user_id, "name": self.user_name},
            "text": self.text,
            "edited": self.edited,
            "editedAt": isoformat(self.edited_at),
            "hidden": self.hidden,
            "createdAt": isoformat(self.created_at),
            "likes": [like.to_dict() for like in self.likes],
            "flagCount": len(self.flags),
        }
