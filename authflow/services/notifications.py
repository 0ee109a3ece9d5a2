"""Transactional emails for the auth workflow."""

import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from authflow.services.mailer import Mailer

logger = logging.getLogger("authflow")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class NotificationService:
    """Renders and sends the verification, welcome and password emails.

    Sends never raise: a failed delivery is logged and dropped so that it
    cannot change the outcome of the request that triggered it.
    """

    def __init__(self, mailer: Mailer, app_name: str = "Authflow") -> None:
        self.mailer = mailer
        self.app_name = app_name
        self.templates = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, template_name: str, **context) -> str:
        template = self.templates.get_template(template_name)
        return template.render(app_name=self.app_name, **context)

    def send_verification_email(self, email: str, verification_code: str) -> bool:
        return self._deliver(
            "verification",
            email,
            "Verify your email",
            "verification.html",
            verification_code=verification_code,
        )

    def send_welcome_email(self, email: str, name: str) -> bool:
        return self._deliver("welcome", email, f"Welcome to {self.app_name}", "welcome.html", name=name)

    def send_password_reset_email(self, email: str, reset_url: str) -> bool:
        return self._deliver("password reset", email, "Reset your password", "password_reset.html", reset_url=reset_url)

    def send_reset_success_email(self, email: str) -> bool:
        return self._deliver("reset success", email, "Password reset successful", "reset_success.html")

    def _deliver(self, kind: str, email: str, subject: str, template_name: str, **context) -> bool:
        try:
            html = self.render(template_name, **context)
            self.mailer.send(email, subject, html)
        except Exception:
            logger.exception("Error sending %s email to %s", kind, email)
            return False
        return True
