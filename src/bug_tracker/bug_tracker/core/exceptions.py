class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is a stable machine-readable classification and ``status_code``
    the HTTP status the API layer answers with.
    """

    code = "domain_error"
    status_code = 500


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"
    status_code = 400


class BadRequestError(ValidationError):
    """Raised when required request fields are missing."""

    code = "bad_request"


class DuplicateEmailError(ValidationError):
    """Raised when an email is already registered."""

    code = "duplicate_email"


class AuthenticationError(DomainError):
    """Raised when the caller is not (or can no longer be) authenticated."""

    code = "not_authenticated"
    status_code = 401


class InvalidCredentialsError(AuthenticationError):
    """Raised for unknown email and wrong password alike."""

    code = "invalid_credentials"


class EmailNotConfirmedError(AuthenticationError):
    code = "email_not_confirmed"


class IncorrectPasswordError(AuthenticationError):
    code = "incorrect_password"


class InvalidTokenError(AuthenticationError):
    """Raised when a confirmation/reset/session token does not match."""

    code = "invalid_token"
    status_code = 400


class InvalidOrExpiredCodeError(AuthenticationError):
    code = "invalid_or_expired_code"
    status_code = 400


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "forbidden"
    status_code = 403


class NotFoundError(DomainError):
    code = "not_found"
    status_code = 404


class DeliveryError(DomainError):
    """Raised when an email could not be sent.

    Token state tied to the undelivered message is always cleared first.
    """

    code = "delivery_error"
    status_code = 500
