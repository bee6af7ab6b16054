from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..core.enums import Role, TokenKind
from .model import User


class UserRepository(Protocol):
    """Repository interface for User (the credential store).

    Note (DIP): the service layer depends on this interface, not on a concrete DB.
    ``update_fields`` must apply all given fields in one atomic write.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def find_by_token(self, kind: TokenKind, token_hash: str) -> Optional[User]:
        raise NotImplementedError

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
        raise NotImplementedError

    def update_fields(self, user_id: int, **fields) -> bool:
        raise NotImplementedError
