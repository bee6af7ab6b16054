import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "bug_tracker"),
}

# Session tokens (JWT) and the cookie that carries them
JWT_SECRET = os.getenv("JWT_SECRET", "dev-change-me")
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "30"))
JWT_COOKIE_EXPIRE_DAYS = int(os.getenv("JWT_COOKIE_EXPIRE_DAYS", "30"))
SESSION_COOKIE_SECURE = False

# "console" logs outgoing mail instead of sending it
MAIL_BACKEND = os.getenv("MAIL_BACKEND", "console")
MAIL_FROM = os.getenv("MAIL_FROM", "noreply@bugtracker.local")
SMTP_CONFIG = {
    "server": os.getenv("SMTP_HOST", "localhost"),
    "port": int(os.getenv("SMTP_PORT", "587")),
    "user": os.getenv("SMTP_USER", ""),
    "password": os.getenv("SMTP_PASSWORD", ""),
    "use_tls": bool(int(os.getenv("SMTP_TLS", "1"))),
}

CONFIRM_EMAIL_TTL_HOURS = int(os.getenv("CONFIRM_EMAIL_TTL_HOURS", "24"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed the demo admin on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
