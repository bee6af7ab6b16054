import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "bug_tracker_test"),
}

JWT_SECRET = "test-jwt-secret"
JWT_EXPIRE_DAYS = 1
JWT_COOKIE_EXPIRE_DAYS = 1
SESSION_COOKIE_SECURE = False

MAIL_BACKEND = "console"
MAIL_FROM = "noreply@bugtracker.test"
SMTP_CONFIG = {
    "server": "localhost",
    "port": 25,
    "user": "",
    "password": "",
    "use_tls": False,
}

CONFIRM_EMAIL_TTL_HOURS = 24

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
