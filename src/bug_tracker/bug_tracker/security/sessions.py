from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..core.constants import DEFAULT_SESSION_DAYS
from ..core.exceptions import AuthenticationError


class SessionIssuer:
    """Mints and verifies signed, time-limited session tokens (JWT)."""

    def __init__(self, secret: str, *, ttl: timedelta = timedelta(days=DEFAULT_SESSION_DAYS), algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Session secret must not be empty")
        self._secret = secret
        self._ttl = ttl
        self._algorithm = algorithm

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user_id: int, *, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> int:
        """Return the user id bound to ``token`` or raise AuthenticationError."""
        if not token:
            raise AuthenticationError("Not authorized to access this route")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Session expired, please log in again")
        except jwt.PyJWTError:
            raise AuthenticationError("Not authorized to access this route")

        sub = payload.get("sub")
        if not sub or not str(sub).isdigit():
            raise AuthenticationError("Not authorized to access this route")
        return int(sub)
