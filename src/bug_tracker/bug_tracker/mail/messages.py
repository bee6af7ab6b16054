"""Subjects and bodies of the account emails."""
from __future__ import annotations

from typing import Tuple


def confirm_email(confirm_url: str) -> Tuple[str, str]:
    return (
        "Email confirmation token",
        "You are receiving this email because you need to confirm your email address. "
        f"Please make a GET request to: \n\n {confirm_url}",
    )


def reset_password(reset_url: str) -> Tuple[str, str]:
    return (
        "Password reset token",
        "You are receiving this email because you (or someone else) has requested the reset of a password. "
        f"Please make a PUT request to: \n\n {reset_url}",
    )


def two_factor_code(code: str, ttl_minutes: int) -> Tuple[str, str]:
    return (
        "Your 2FA code",
        f"Your 2FA code is: {code}\n\nIt expires in {ttl_minutes} minutes.",
    )
