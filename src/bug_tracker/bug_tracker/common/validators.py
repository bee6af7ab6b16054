from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Type, TypeVar

from ..core.constants import EMAIL_MAX_LENGTH
from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)

# No nested quantifiers: a failed match stays cheap on hostile input
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]{2,}$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"Please add a {field_name}")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name.capitalize()} must be a string")
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name.capitalize()} must be at least {min_len} characters")
    return value


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if len(value) > max_len:
        raise ValidationError(f"{field_name.capitalize()} cannot be more than {max_len} characters")
    return value


def normalize_email(value: Optional[str]) -> str:
    email = require_max_length(require_non_empty(value, "email").lower(), "email", EMAIL_MAX_LENGTH)
    if not EMAIL_RE.match(email):
        raise ValidationError("Please add a valid email")
    return email


def parse_enum(enum_cls: Type[E], value, field_name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name} (allowed: {allowed})")
