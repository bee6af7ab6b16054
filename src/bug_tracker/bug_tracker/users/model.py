from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat
from ..core.enums import Role, TokenKind

# Columns a service may change through UserRepository.update_fields
USER_MUTABLE_FIELDS = frozenset(
    {
        "name",
        "email",
        "password_hash",
        "is_email_confirmed",
        "confirm_email_token_hash",
        "confirm_email_expires_at",
        "reset_password_token_hash",
        "reset_password_expires_at",
        "two_factor_enabled",
        "two_factor_code_hash",
        "two_factor_code_expires_at",
    }
)

TOKEN_HASH_COLUMNS = {
    TokenKind.CONFIRM_EMAIL: "confirm_email_token_hash",
    TokenKind.RESET_PASSWORD: "reset_password_token_hash",
    TokenKind.TWO_FACTOR: "two_factor_code_hash",
}


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Plain data object (no DB access). Secrets are stored only as hashes;
    ``to_public_dict`` is the only shape that leaves the service layer.
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role = Role.USER
    is_email_confirmed: bool = False
    confirm_email_token_hash: Optional[str] = None
    confirm_email_expires_at: Optional[datetime] = None
    reset_password_token_hash: Optional[str] = None
    reset_password_expires_at: Optional[datetime] = None
    two_factor_enabled: bool = False
    two_factor_code_hash: Optional[str] = None
    two_factor_code_expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_public_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "isEmailConfirmed": self.is_email_confirmed,
            "twoFactorEnabled": self.two_factor_enabled,
            "createdAt": isoformat(self.created_at),
        }
