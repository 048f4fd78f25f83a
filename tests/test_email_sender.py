"""Tests for email senders."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from weatherflow.core.exceptions import EmailDeliveryError, InvalidRecipientError, InvalidSubjectError
from weatherflow.integrations.email import InMemoryEmailSender, SMTPEmailSender


class TestInMemoryEmailSender:

    def test_captures_messages(self):
        sender = InMemoryEmailSender()
        payload = sender.send("alice@example.com", "Weather Alert", "It is hot")

        sent = sender.get_sent_emails()
        assert sent == [payload]
        assert payload.timestamp.tzinfo is not None

    def test_clear(self):
        sender = InMemoryEmailSender()
        sender.send("alice@example.com", "Weather Alert", "It is hot")
        sender.clear_sent_emails()
        assert sender.get_sent_emails() == []

    def test_rejects_empty_recipient(self):
        sender = InMemoryEmailSender()
        with pytest.raises(InvalidRecipientError, match="recipient email is required"):
            sender.send("  ", "Weather Alert", "body")
        assert sender.get_sent_emails() == []

    def test_rejects_empty_subject(self):
        with pytest.raises(InvalidSubjectError, match="email subject is required"):
            InMemoryEmailSender().send("alice@example.com", "", "body")


class TestSMTPEmailSender:

    def _sender(self, **overrides):
        options = dict(host="smtp.example.com", port=587, sender="alerts@example.com")
        options.update(overrides)
        return SMTPEmailSender(**options)

    @patch("weatherflow.integrations.email.smtplib.SMTP")
    def test_starttls_and_login(self, smtp_class):
        smtp = MagicMock()
        smtp_class.return_value = smtp

        self._sender(username="user", password="secret").send("alice@example.com", "Weather Alert", "Hot")

        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user", "secret")
        message = smtp.send_message.call_args[0][0]
        assert message["To"] == "alice@example.com"
        assert message["From"] == "alerts@example.com"
        assert message["Subject"] == "Weather Alert"
        smtp.quit.assert_called_once()

    @patch("weatherflow.integrations.email.smtplib.SMTP_SSL")
    def test_ssl_connection(self, smtp_ssl_class):
        smtp = MagicMock()
        smtp_ssl_class.return_value = smtp

        self._sender(port=465, use_ssl=True, use_tls=False).send("alice@example.com", "Alert", "Hot")

        smtp_ssl_class.assert_called_once_with("smtp.example.com", 465, timeout=10.0)
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()

    @patch("weatherflow.integrations.email.smtplib.SMTP")
    def test_transport_failure(self, smtp_class):
        smtp = MagicMock()
        smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({"alice@example.com": (550, b"no")})
        smtp_class.return_value = smtp

        with pytest.raises(EmailDeliveryError) as exc_info:
            self._sender().send("alice@example.com", "Alert", "Hot")
        assert exc_info.value.message.startswith("failed to send email:")
        smtp.quit.assert_called_once()

    @patch("weatherflow.integrations.email.smtplib.SMTP")
    def test_failed_starttls_closes_connection(self, smtp_class):
        smtp = MagicMock()
        smtp.starttls.side_effect = smtplib.SMTPNotSupportedError("STARTTLS extension not supported")
        smtp_class.return_value = smtp

        with pytest.raises(EmailDeliveryError):
            self._sender().send("alice@example.com", "Alert", "Hot")
        smtp.close.assert_called_once()
        smtp.send_message.assert_not_called()

    @patch("weatherflow.integrations.email.smtplib.SMTP")
    def test_failed_login_closes_connection(self, smtp_class):
        smtp = MagicMock()
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        smtp_class.return_value = smtp

        with pytest.raises(EmailDeliveryError):
            self._sender(username="user", password="wrong").send("alice@example.com", "Alert", "Hot")
        smtp.close.assert_called_once()

    @patch("weatherflow.integrations.email.smtplib.SMTP")
    def test_connection_refused(self, smtp_class):
        smtp_class.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(EmailDeliveryError, match="failed to send email: refused"):
            self._sender().send("alice@example.com", "Alert", "Hot")
