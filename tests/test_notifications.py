"""Tests for mail transports and notification rendering."""

import logging
from unittest.mock import MagicMock, patch

from authflow.config import Settings
from authflow.services.mailer import ConsoleMailer, SMTPMailer, build_mailer
from authflow.services.notifications import NotificationService


class TestNotificationService:
    """Tests for the transactional emails."""

    def test_verification_email_contains_code(self, mailer):
        service = NotificationService(mailer, app_name="Authflow")

        assert service.send_verification_email("a@x.com", "482913") is True

        message = mailer.sent[0]
        assert message["to"] == "a@x.com"
        assert message["subject"] == "Verify your email"
        assert "482913" in message["html"]
        assert "24 hours" in message["html"]

    def test_welcome_email_greets_user(self, mailer):
        service = NotificationService(mailer, app_name="Acme")

        service.send_welcome_email("a@x.com", "Ada")

        assert mailer.sent[0]["subject"] == "Welcome to Acme"
        assert "Hello Ada" in mailer.sent[0]["html"]

    def test_welcome_email_escapes_name(self, mailer):
        service = NotificationService(mailer)

        service.send_welcome_email("a@x.com", "<script>alert(1)</script>")

        assert "<script>" not in mailer.sent[0]["html"]
        assert "&lt;script&gt;" in mailer.sent[0]["html"]

    def test_password_reset_email_contains_link(self, mailer):
        service = NotificationService(mailer)
        url = "http://client.test/reset-password/abc123"

        service.send_password_reset_email("a@x.com", url)

        assert mailer.sent[0]["subject"] == "Reset your password"
        assert f'href="{url}"' in mailer.sent[0]["html"]

    def test_reset_success_email(self, mailer):
        service = NotificationService(mailer)

        service.send_reset_success_email("a@x.com")

        assert mailer.sent[0]["subject"] == "Password reset successful"

    def test_delivery_failure_is_logged_not_raised(self, mailer, caplog):
        service = NotificationService(mailer)

        with patch.object(mailer, "send", side_effect=ConnectionError("smtp down")):
            with caplog.at_level(logging.ERROR, logger="authflow"):
                assert service.send_welcome_email("a@x.com", "Ada") is False

        assert "Error sending welcome email to a@x.com" in caplog.text


class TestMailers:
    """Tests for mail transports."""

    def test_build_mailer_without_host_logs(self):
        settings = Settings()
        settings.SMTP_HOST = ""

        assert isinstance(build_mailer(settings), ConsoleMailer)

    def test_build_mailer_with_host(self):
        settings = Settings()
        settings.SMTP_HOST = "smtp.example.com"
        settings.SMTP_PORT = 2525
        settings.MAIL_FROM_ADDRESS = "auth@example.com"

        mailer = build_mailer(settings)

        assert isinstance(mailer, SMTPMailer)
        assert mailer.host == "smtp.example.com"
        assert mailer.port == 2525
        assert mailer.from_address == "auth@example.com"

    def test_console_mailer_logs_message(self, caplog):
        with caplog.at_level(logging.INFO, logger="authflow"):
            ConsoleMailer().send("a@x.com", "Hello", "<p>Body</p>")

        assert "a@x.com" in caplog.text
        assert "<p>Body</p>" in caplog.text

    def test_smtp_mailer_sends_with_tls_and_login(self):
        mailer = SMTPMailer(
            host="smtp.example.com",
            port=587,
            username="user",
            password="secret",
            from_address="auth@example.com",
            from_name="Authflow",
        )
        server = MagicMock()

        with patch("authflow.services.mailer.smtplib.SMTP") as smtp:
            smtp.return_value.__enter__.return_value = server
            mailer.send("a@x.com", "Subject", "<p>Hi</p>")

        smtp.assert_called_once_with("smtp.example.com", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("user", "secret")
        message = server.send_message.call_args[0][0]
        assert message["To"] == "a@x.com"
        assert message["Subject"] == "Subject"
        assert message["From"] == "Authflow <auth@example.com>"

    def test_smtp_mailer_without_credentials_or_tls(self):
        mailer = SMTPMailer(host="localhost", port=25, use_tls=False, from_address="auth@example.com")
        server = MagicMock()

        with patch("authflow.services.mailer.smtplib.SMTP") as smtp:
            smtp.return_value.__enter__.return_value = server
            mailer.send("a@x.com", "Subject", "<p>Hi</p>")

        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()
