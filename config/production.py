import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "bug_tracker"),
}

JWT_SECRET = os.getenv("JWT_SECRET", "please-set-JWT_SECRET")
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "30"))
JWT_COOKIE_EXPIRE_DAYS = int(os.getenv("JWT_COOKIE_EXPIRE_DAYS", "30"))
SESSION_COOKIE_SECURE = True

MAIL_BACKEND = os.getenv("MAIL_BACKEND", "smtp")
MAIL_FROM = os.getenv("MAIL_FROM", "noreply@bugtracker.local")
SMTP_CONFIG = {
    "server": os.getenv("SMTP_HOST", "localhost"),
    "port": int(os.getenv("SMTP_PORT", "587")),
    "user": os.getenv("SMTP_USER", ""),
    "password": os.getenv("SMTP_PASSWORD", ""),
    "use_tls": bool(int(os.getenv("SMTP_TLS", "1"))),
}

CONFIRM_EMAIL_TTL_HOURS = int(os.getenv("CONFIRM_EMAIL_TTL_HOURS", "24"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
