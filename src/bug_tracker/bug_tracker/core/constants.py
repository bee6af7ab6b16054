"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

PASSWORD_MIN_LENGTH = 6
NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255

RESET_PASSWORD_TTL_MINUTES = 10
TWO_FACTOR_CODE_TTL_MINUTES = 10
TWO_FACTOR_CODE_DIGITS = 6
DEFAULT_CONFIRM_EMAIL_TTL_HOURS = 24

DEFAULT_SESSION_DAYS = 30
SESSION_COOKIE_NAME = "token"
LOGOUT_COOKIE_SECONDS = 10

BUG_TITLE_MAX_LENGTH = 100
BUG_DESCRIPTION_MAX_LENGTH = 1000
BUG_MAX_LABELS = 5

COMMENT_TEXT_MAX_LENGTH = 1000
FLAG_REASON_MAX_LENGTH = 500
DEFAULT_FLAG_REASON = "Inappropriate content"
FLAGS_TO_HIDE_COMMENT = 3
