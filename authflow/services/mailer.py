"""Outgoing mail transports."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from authflow.config import Settings

logger = logging.getLogger("authflow")


class Mailer:
    """Delivers a single HTML message. Raises on delivery failure."""

    def send(self, to_email: str, subject: str, html: str) -> None:
        raise NotImplementedError


class SMTPMailer(Mailer):
    """Sends mail through an SMTP relay, with STARTTLS when enabled."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        from_address: str = "",
        from_name: str = "",
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address
        self.from_name = from_name

    def send(self, to_email: str, subject: str, html: str) -> None:
        message = MIMEMultipart("alternative")
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = to_email
        message["Subject"] = subject
        message.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.host, self.port) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(message)

        logger.info("Email '%s' sent to %s", subject, to_email)


class ConsoleMailer(Mailer):
    """Writes messages to the log instead of delivering them."""

    def send(self, to_email: str, subject: str, html: str) -> None:
        logger.info("EMAIL to=%s subject=%s\n%s", to_email, subject, html)


def build_mailer(settings: Settings) -> Mailer:
    """Pick the SMTP transport when a host is configured, the log otherwise."""
    if not settings.SMTP_HOST:
        return ConsoleMailer()
    return SMTPMailer(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        from_address=settings.MAIL_FROM_ADDRESS,
        from_name=settings.MAIL_FROM_NAME,
    )
