from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    USER = "user"
    ADMIN = "admin"
    DEVELOPER = "developer"


class TokenKind(str, Enum):
    """One-time secrets whose hashes are stored on the user record."""

    CONFIRM_EMAIL = "confirm_email"
    RESET_PASSWORD = "reset_password"
    TWO_FACTOR = "two_factor"


class BugStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class BugPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
