"""One-time secrets (confirmation links, reset links, 2FA codes).

Only the SHA-256 hex digest of a secret is ever stored; the plaintext goes
out by email and is hashed again when presented.
"""
from __future__ import annotations

import hashlib
import hmac
import secrets

from ..core.constants import TWO_FACTOR_CODE_DIGITS


def generate_secret(nbytes: int = 20) -> str:
    return secrets.token_hex(nbytes)


def generate_numeric_code(digits: int = TWO_FACTOR_CODE_DIGITS) -> str:
    """Uniform code in [10**(digits-1), 10**digits), i.e. no leading zero."""
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_token(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def token_matches(secret: str, token_hash: str) -> bool:
    if not secret or not token_hash:
        return False
    return hmac.compare_digest(hash_token(secret), token_hash)
