from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Protocol

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    """Delivers a plain-text message.

    ``send`` returns False when the message could not be handed over, so
    callers can roll back whatever secret the message was carrying.
    """

    def send(self, to: str, subject: str, body: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class SMTPSettings:
    server: str
    port: int
    user: str
    password: str
    from_email: str
    use_tls: bool = True
    timeout: float = 10.0


class SMTPMailer(Mailer):
    def __init__(self, settings: SMTPSettings):
        self._settings = settings

    def send(self, to: str, subject: str, body: str) -> bool:
        s = self._settings
        msg = MIMEText(body)
        msg["Subject"] = subject
        msg["From"] = s.from_email
        msg["To"] = to

        try:
            with smtplib.SMTP(s.server, s.port, timeout=s.timeout) as server:
                if s.use_tls:
                    server.starttls()
                if s.user:
                    server.login(s.user, s.password)
                server.sendmail(s.from_email, [to], msg.as_string())
        except (smtplib.SMTPException, OSError):
            logger.exception("SMTP delivery to %s failed (subject=%r)", to, subject)
            return False

        logger.info("Mail sent to %s (subject=%r)", to, subject)
        return True


class ConsoleMailer(Mailer):
    """Development mailer: writes the message to the log instead of sending it."""

    def send(self, to: str, subject: str, body: str) -> bool:
        logger.info("[MOCK EMAIL] To: %s | Subject: %s\n%s", to, subject, body)
        return True


def build_mailer(settings) -> Mailer:
    backend = str(getattr(settings, "MAIL_BACKEND", "console")).lower()
    if backend == "console":
        return ConsoleMailer()
    if backend == "smtp":
        smtp = getattr(settings, "SMTP_CONFIG")
        return SMTPMailer(
            SMTPSettings(
                server=str(smtp["server"]),
                port=int(smtp.get("port", 587)),
                user=str(smtp.get("user", "")),
                password=str(smtp.get("password", "")),
                from_email=str(getattr(settings, "MAIL_FROM")),
                use_tls=bool(smtp.get("use_tls", True)),
            )
        )
    raise ValueError(f"Unknown MAIL_BACKEND: {backend!r}")
