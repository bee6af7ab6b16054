from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..common.datetime_utils import utc_now
from ..common.validators import (
    normalize_email,
    parse_enum,
    require_max_length,
    require_min_length,
    require_non_empty,
)
from ..core.constants import (
    DEFAULT_CONFIRM_EMAIL_TTL_HOURS,
    NAME_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    RESET_PASSWORD_TTL_MINUTES,
    TWO_FACTOR_CODE_TTL_MINUTES,
)
from ..core.enums import Role, TokenKind
from ..core.exceptions import (
    AuthenticationError,
    BadRequestError,
    DeliveryError,
    DuplicateEmailError,
    EmailNotConfirmedError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    InvalidOrExpiredCodeError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from ..mail import messages
from ..mail.mailer import Mailer
from ..security.passwords import hash_password, verify_password
from ..security.sessions import SessionIssuer
from ..security.tokens import generate_numeric_code, generate_secret, hash_token, token_matches
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_CONFIRM_TOKEN = "Invalid token or email already confirmed"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of a workflow step.

    ``token`` is None exactly when no session was issued (2FA pending).
    """

    user: User
    token: Optional[str] = None
    two_factor_required: bool = False
    message: str = ""


class AuthService:
    """Use case: account security workflow.

    Registration -> email confirmation -> login (optionally via an emailed
    2FA code) -> session. Password reset runs alongside: a reset request
    stores a 10 minute secret, using it sets the new password.

    Every emailed secret is stored only as a hash. If the mail cannot be
    delivered, the hash (and its expiry) is cleared in the same update so no
    undeliverable secret stays valid.
    """

    def __init__(
        self,
        users: UserRepository,
        mailer: Mailer,
        sessions: SessionIssuer,
        *,
        confirm_email_ttl: Optional[timedelta] = timedelta(hours=DEFAULT_CONFIRM_EMAIL_TTL_HOURS),
        reset_password_ttl: timedelta = timedelta(minutes=RESET_PASSWORD_TTL_MINUTES),
        two_factor_ttl: timedelta = timedelta(minutes=TWO_FACTOR_CODE_TTL_MINUTES),
    ):
        self._users = users
        self._mailer = mailer
        self._sessions = sessions
        self._confirm_email_ttl = confirm_email_ttl
        self._reset_password_ttl = reset_password_ttl
        self._two_factor_ttl = two_factor_ttl
        self._timing_dummy_hash: Optional[str] = None

    # -------- helpers --------
    @staticmethod
    def _is_live(expires_at: Optional[datetime], now: datetime) -> bool:
        return expires_at is not None and expires_at > now

    def _deliver(self, to: str, subject: str, body: str) -> bool:
        try:
            return bool(self._mailer.send(to, subject, body))
        except Exception:
            logger.exception("Mailer raised while sending %r to %s", subject, to)
            return False

    def _reload(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise AuthenticationError("User no longer exists")
        return user

    def _session(self, user_id: int, message: str = "") -> AuthResult:
        user = self._reload(user_id)
        return AuthResult(user=user, token=self._sessions.issue(user.user_id), message=message)

    def _burn_password_check(self, password: str) -> None:
        # Unknown emails still pay for one hash check, so response time does
        # not tell them apart from wrong passwords.
        if self._timing_dummy_hash is None:
            self._timing_dummy_hash = hash_password(generate_secret())
        verify_password(self._timing_dummy_hash, password)

    @staticmethod
    def _validate_new_password(password: Optional[str]) -> str:
        return require_min_length(password, "password", PASSWORD_MIN_LENGTH)

    @staticmethod
    def _link(base_url: str, path: str) -> str:
        return f"{base_url.rstrip('/')}{path}"

    # -------- registration / confirmation --------
    def register(
        self,
        *,
        name: str,
        email: str,
        password: str,
        role: Optional[str] = None,
        base_url: str,
        now: Optional[datetime] = None,
    ) -> AuthResult:
        now = now or utc_now()
        name = require_max_length(require_non_empty(name, "name"), "name", NAME_MAX_LENGTH)
        email = normalize_email(email)
        self._validate_new_password(password)
        user_role = parse_enum(Role, role or Role.USER.value, "role")
        if user_role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be self-registered")

        if self._users.get_by_email(email):
            raise DuplicateEmailError("Email is already registered")

        secret = generate_secret()
        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=user_role,
            confirm_email_token_hash=hash_token(secret),
            confirm_email_expires_at=(now + self._confirm_email_ttl) if self._confirm_email_ttl else None,
        )
        logger.info("Registered user id=%s role=%s", user_id, user_role.value)

        subject, body = messages.confirm_email(self._link(base_url, f"/api/v1/auth/confirmemail?token={secret}"))
        if not self._deliver(email, subject, body):
            self._users.update_fields(user_id, confirm_email_token_hash=None, confirm_email_expires_at=None)
            logger.warning("Confirmation email for user id=%s not delivered; token cleared", user_id)
            raise DeliveryError("Email could not be sent")

        return self._session(user_id, message="Email sent successfully")

    def confirm_email(self, token: Optional[str], *, now: Optional[datetime] = None) -> AuthResult:
        now = now or utc_now()
        if not token:
            raise InvalidTokenError(INVALID_CONFIRM_TOKEN)

        user = self._users.find_by_token(TokenKind.CONFIRM_EMAIL, hash_token(token))
        if not user or user.is_email_confirmed:
            raise InvalidTokenError(INVALID_CONFIRM_TOKEN)
        # A NULL expiry means the token was issued while expiry was disabled
        if user.confirm_email_expires_at is not None and not self._is_live(user.confirm_email_expires_at, now):
            raise InvalidTokenError(INVALID_CONFIRM_TOKEN)

        self._users.update_fields(
            user.user_id,
            confirm_email_token_hash=None,
            confirm_email_expires_at=None,
            is_email_confirmed=True,
        )
        logger.info("Email confirmed for user id=%s", user.user_id)
        return self._session(user.user_id)

    def resend_confirmation(self, email: Optional[str], *, base_url: str, now: Optional[datetime] = None) -> None:
        """Issue a fresh confirmation link.

        Answers the same way for unknown and already confirmed addresses.
        """
        now = now or utc_now()
        if not email:
            raise BadRequestError("Please provide an email")
        user = self._users.get_by_email(normalize_email(email))
        if not user or user.is_email_confirmed:
            logger.info("Confirmation resend ignored (no unconfirmed account)")
            return

        secret = generate_secret()
        self._users.update_fields(
            user.user_id,
            confirm_email_token_hash=hash_token(secret),
            confirm_email_expires_at=(now + self._confirm_email_ttl) if self._confirm_email_ttl else None,
        )
        subject, body = messages.confirm_email(self._link(base_url, f"/api/v1/auth/confirmemail?token={secret}"))
        if not self._deliver(user.email, subject, body):
            self._users.update_fields(user.user_id, confirm_email_token_hash=None, confirm_email_expires_at=None)
            raise DeliveryError("Email could not be sent")

    # -------- login / 2FA --------
    def login(self, email: Optional[str], password: Optional[str], *, now: Optional[datetime] = None) -> AuthResult:
        now = now or utc_now()
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            raise BadRequestError("Please provide an email and password")

        user = self._users.get_by_email(str(email).strip().lower())
        if not user:
            self._burn_password_check(password)
            raise InvalidCredentialsError(INVALID_CREDENTIALS)
        if not verify_password(user.password_hash, password):
            raise InvalidCredentialsError(INVALID_CREDENTIALS)

        if not user.is_email_confirmed:
            raise EmailNotConfirmedError("Please confirm your email to login")

        if user.two_factor_enabled:
            code = generate_numeric_code()
            self._users.update_fields(
                user.user_id,
                two_factor_code_hash=hash_token(code),
                two_factor_code_expires_at=now + self._two_factor_ttl,
            )
            ttl_minutes = int(self._two_factor_ttl.total_seconds() // 60)
            subject, body = messages.two_factor_code(code, ttl_minutes)
            if not self._deliver(user.email, subject, body):
                self._users.update_fields(user.user_id, two_factor_code_hash=None, two_factor_code_expires_at=None)
                raise DeliveryError("2FA code could not be sent")
            logger.info("2FA code issued for user id=%s", user.user_id)
            return AuthResult(user=user, two_factor_required=True, message="2FA code sent to email")

        logger.info("User id=%s logged in", user.user_id)
        return self._session(user.user_id)

    def verify_two_factor(self, email: Optional[str], code: Optional[str], *, now: Optional[datetime] = None) -> AuthResult:
        now = now or utc_now()
        if not email or not code:
            raise BadRequestError("Please provide email and 2FA code")

        user = self._users.get_by_email(str(email).strip().lower())
        if (
            not user
            or not self._is_live(user.two_factor_code_expires_at, now)
            or not token_matches(str(code).strip(), user.two_factor_code_hash)
        ):
            raise InvalidOrExpiredCodeError("Invalid or expired 2FA code")

        self._users.update_fields(user.user_id, two_factor_code_hash=None, two_factor_code_expires_at=None)
        logger.info("User id=%s passed 2FA", user.user_id)
        return self._session(user.user_id)

    def toggle_two_factor(self, user_id: int) -> bool:
        user = self._reload(user_id)
        enabled = not user.two_factor_enabled
        fields = {"two_factor_enabled": enabled}
        if not enabled:
            # Turning 2FA off invalidates a code that is still pending
            fields.update(two_factor_code_hash=None, two_factor_code_expires_at=None)
        self._users.update_fields(user.user_id, **fields)
        logger.info("2FA %s for user id=%s", "enabled" if enabled else "disabled", user.user_id)
        return enabled

    # -------- passwords --------
    def forgot_password(self, email: Optional[str], *, base_url: str, now: Optional[datetime] = None) -> None:
        """Email a reset link.

        An unknown address gets the same (silent) success as a known one.
        """
        now = now or utc_now()
        if not email:
            raise BadRequestError("Please provide an email")

        user = self._users.get_by_email(normalize_email(email))
        if not user:
            logger.info("Password reset requested for an unknown email")
            return

        secret = generate_secret()
        self._users.update_fields(
            user.user_id,
            reset_password_token_hash=hash_token(secret),
            reset_password_expires_at=now + self._reset_password_ttl,
        )
        subject, body = messages.reset_password(self._link(base_url, f"/api/v1/auth/resetpassword/{secret}"))
        if not self._deliver(user.email, subject, body):
            self._users.update_fields(user.user_id, reset_password_token_hash=None, reset_password_expires_at=None)
            raise DeliveryError("Email could not be sent")
        logger.info("Password reset issued for user id=%s", user.user_id)

    def reset_password(self, token: Optional[str], password: Optional[str], *, now: Optional[datetime] = None) -> AuthResult:
        now = now or utc_now()
        if not token:
            raise InvalidTokenError("Invalid token")
        self._validate_new_password(password)

        user = self._users.find_by_token(TokenKind.RESET_PASSWORD, hash_token(token))
        if not user or not self._is_live(user.reset_password_expires_at, now):
            raise InvalidTokenError("Invalid token")

        self._users.update_fields(
            user.user_id,
            password_hash=hash_password(password),
            reset_password_token_hash=None,
            reset_password_expires_at=None,
        )
        logger.info("Password reset completed for user id=%s", user.user_id)
        return self._session(user.user_id)

    def update_password(self, user_id: int, current_password: Optional[str], new_password: Optional[str]) -> AuthResult:
        user = self._reload(user_id)
        if not current_password or not verify_password(user.password_hash, current_password):
            raise IncorrectPasswordError("Password is incorrect")
        self._validate_new_password(new_password)

        self._users.update_fields(user.user_id, password_hash=hash_password(new_password))
        logger.info("Password changed for user id=%s", user.user_id)
        return self._session(user.user_id)

    # -------- sessions --------
    def resolve_session(self, token: Optional[str]) -> User:
        """Return the user a session token belongs to."""
        user_id = self._sessions.verify(token)
        user = self._users.get_by_id(user_id)
        if not user:
            raise AuthenticationError("Not authorized to access this route")
        return user


class UserService:
    """Use case: the signed-in user's own account."""

    def __init__(self, users: UserRepository):
        self._users = users

    def get_me(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_details(self, user_id: int, *, name: Optional[str] = None, email: Optional[str] = None) -> User:
        user = self.get_me(user_id)
        fields: dict = {}

        if name is not None:
            fields["name"] = require_max_length(require_non_empty(name, "name"), "name", NAME_MAX_LENGTH)

        if email is not None:
            new_email = normalize_email(email)
            if new_email != user.email:
                other = self._users.get_by_email(new_email)
                if other and other.user_id != user.user_id:
                    raise DuplicateEmailError("Email is already registered")
                fields["email"] = new_email

        if fields:
            self._users.update_fields(user.user_id, **fields)
        return self.get_me(user.user_id)
