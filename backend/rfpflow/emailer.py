# emailer.py
# Outbound RFP delivery. One mailer is built at startup and passed to whoever
# sends; open()/close() bracket the process lifetime.

import json
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import List, Optional

from .config import Settings
from .correlation import CorrelationStrategy, SubjectRfpReference
from .errors import EmailDispatchError
from .models import RFP, Parsed, Vendor, read_requirements
from .storage import Storage

logger = logging.getLogger(__name__)


def render_rfp(rfp: RFP) -> str:
    """Plain-text body for an RFP email."""
    requirements = read_requirements(rfp.structured_requirements)
    lines = [rfp.title, ""]
    if isinstance(requirements, Parsed):
        req = requirements.value
        if req.summary:
            lines += [req.summary, ""]
        for heading, items in (("Deliverables", req.deliverables),
                               ("Constraints", req.constraints),
                               ("Success criteria", req.success_criteria)):
            if items:
                lines.append(f"{heading}:")
                lines += [f"  - {item}" for item in items]
                lines.append("")
        if req.timeline:
            lines.append(f"Timeline: {req.timeline}")
        if req.budget:
            lines.append(f"Budget: {req.budget}")
    elif rfp.structured_requirements is not None:
        lines.append(json.dumps(rfp.structured_requirements, indent=2))
    else:
        lines.append(rfp.raw_requirements)
    lines += ["", "Please reply to this email with your proposal, keeping the subject line unchanged."]
    return "\n".join(lines)


class Mailer(ABC):
    def __init__(self, strategy: Optional[CorrelationStrategy] = None):
        self.strategy = strategy or SubjectRfpReference()

    def open(self):
        pass

    def close(self):
        pass

    @abstractmethod
    def send(self, to: str, subject: str, body: str):
        """Deliver one message or raise."""

    def subject_for(self, rfp: RFP) -> str:
        return f"{self.strategy.reference(rfp.id)}: {rfp.title}"

    def send_rfp(self, vendors: List[Vendor], rfp: RFP) -> int:
        """Send the RFP to each vendor in turn; the first failure aborts the batch."""
        subject = self.subject_for(rfp)
        body = render_rfp(rfp)
        logger.info("Sending RFP %d (%s) to %d vendors", rfp.id, rfp.title, len(vendors))
        for vendor in vendors:
            logger.info("Sending RFP %d to %s", rfp.id, vendor.email)
            try:
                self.send(vendor.email, subject, body)
            except Exception as exc:
                logger.error("Sending RFP %d to %s failed: %s", rfp.id, vendor.email, exc, exc_info=True)
                raise EmailDispatchError(f"Failed to send RFP to {vendor.email}: {exc}") from exc
        return len(vendors)


class OutboxMailer(Mailer):
    """Writes messages to the outbox table instead of sending them."""

    def __init__(self, storage: Storage, sender: str, strategy: Optional[CorrelationStrategy] = None):
        super().__init__(strategy)
        self.storage = storage
        self.sender = sender

    def send(self, to: str, subject: str, body: str):
        self.storage.append_outbox({"from": self.sender, "to": to, "subject": subject, "body": body})


class SmtpMailer(Mailer):
    def __init__(self, host: str, port: int = 587, username: Optional[str] = None,
                 password: Optional[str] = None, use_tls: bool = True,
                 sender: str = "procurement@rfpflow.local",
                 strategy: Optional[CorrelationStrategy] = None):
        super().__init__(strategy)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self._smtp = None

    def open(self):
        smtp = smtplib.SMTP(self.host, self.port)
        if self.use_tls:
            smtp.starttls()
        if self.username:
            smtp.login(self.username, self.password or "")
        self._smtp = smtp
        logger.info("SMTP connection to %s:%d opened", self.host, self.port)

    def close(self):
        if self._smtp is not None:
            try:
                self._smtp.quit()
            except smtplib.SMTPException as exc:
                logger.warning("Error closing SMTP connection: %s", exc)
            self._smtp = None

    def send(self, to: str, subject: str, body: str):
        if self._smtp is None:
            raise EmailDispatchError("SMTP mailer used before open()")
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        self._smtp.send_message(msg)


def build_mailer(settings: Settings, storage: Storage,
                 strategy: Optional[CorrelationStrategy] = None) -> Mailer:
    if settings.smtp_host:
        return SmtpMailer(settings.smtp_host, settings.smtp_port, settings.smtp_username,
                          settings.smtp_password, settings.smtp_use_tls, settings.mail_from, strategy)
    return OutboxMailer(storage, settings.mail_from, strategy)
