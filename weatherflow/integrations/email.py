"""Email senders: in-memory capture and SMTP delivery."""

import smtplib
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from email.mime.text import MIMEText
from typing import List, Optional

from ..core.exceptions import EmailDeliveryError, InvalidRecipientError, InvalidSubjectError
from ..core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class EmailPayload:
    """A composed message as handed to a sender."""
    to: str
    subject: str
    body: str
    timestamp: datetime


class EmailSender(ABC):
    """Base class for email senders. Sends either fully succeed or raise."""

    def send(self, to: str, subject: str, body: str) -> EmailPayload:
        """
        Validate and deliver a message.

        Raises:
            InvalidRecipientError: If the recipient is empty
            InvalidSubjectError: If the subject is empty
            EmailDeliveryError: If the transport fails
        """
        if not to or not to.strip():
            raise InvalidRecipientError()
        if not subject or not subject.strip():
            raise InvalidSubjectError()

        payload = EmailPayload(
            to=to,
            subject=subject,
            body=body,
            timestamp=datetime.now(timezone.utc),
        )
        self._deliver(payload)
        return payload

    @abstractmethod
    def _deliver(self, payload: EmailPayload) -> None:
        """Hand a validated payload to the transport."""


class InMemoryEmailSender(EmailSender):
    """Captures sent messages for inspection."""

    def __init__(self):
        self._sent: List[EmailPayload] = []
        self._lock = threading.Lock()

    def _deliver(self, payload: EmailPayload) -> None:
        with self._lock:
            self._sent.append(payload)
        logger.info(f"Captured email to {payload.to}: {payload.subject}")

    def get_sent_emails(self) -> List[EmailPayload]:
        with self._lock:
            return list(self._sent)

    def clear_sent_emails(self) -> None:
        with self._lock:
            self._sent.clear()


class SMTPEmailSender(EmailSender):
    """Delivers messages through an SMTP server, one connection per send."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: float = 10.0
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.timeout = timeout

    def _create_connection(self) -> smtplib.SMTP:
        if self.use_ssl:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

        try:
            if self.use_tls and not self.use_ssl:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
        except Exception:
            smtp.close()
            raise
        return smtp

    def _build_message(self, payload: EmailPayload) -> MIMEText:
        msg = MIMEText(payload.body, "plain", "utf-8")
        msg["Subject"] = payload.subject
        msg["From"] = self.sender
        msg["To"] = payload.to
        return msg

    def _deliver(self, payload: EmailPayload) -> None:
        msg = self._build_message(payload)
        try:
            smtp = self._create_connection()
            try:
                smtp.send_message(msg, from_addr=self.sender, to_addrs=[payload.to])
            finally:
                smtp.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {payload.to}: {e}")
            raise EmailDeliveryError(f"failed to send email: {e}", recipient=payload.to) from e

        logger.info(f"Email sent successfully to {payload.to}")
