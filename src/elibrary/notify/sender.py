"""Outbound reminder delivery.

The notifier only knows the ``ReminderSender`` protocol. ``SmtpReminderSender``
delivers real email; ``LoggingReminderSender`` writes reminders to the log
when no mail server is configured.
"""

import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import Optional, Protocol

from ..config import Config
from ..logging import get_logger
from .schemas import Recipient

logger = get_logger(__name__)


class ReminderSender(Protocol):
    """Anything that can deliver a due-date reminder."""

    def send_reminder(
        self,
        contact: Recipient,
        book_title: str,
        book_author: str,
        due_date: datetime,
        days_left: int,
    ) -> None:
        ...


def _plural_days(days: int) -> str:
    return f"{days} day{'s' if days != 1 else ''}"


def render_reminder(
    contact: Recipient,
    book_title: str,
    book_author: str,
    due_date: datetime,
    days_left: int,
    fine_per_day: int = 5,
) -> tuple[str, str, str]:
    """Build the subject, plain-text body and HTML body of a reminder."""
    remaining = _plural_days(days_left)
    due_text = due_date.strftime("%B %d, %Y")
    subject = f"Return Reminder: {book_title} is due in {remaining}"

    text = (
        f"Dear {contact.name},\n\n"
        "This is a reminder that your borrowed book is due soon:\n\n"
        f"  Book: {book_title}\n"
        f"  Author: {book_author}\n"
        f"  Due Date: {due_text}\n"
        f"  Time Remaining: {remaining}\n\n"
        f"Please return the book on time to avoid a late fee of {fine_per_day} per day.\n"
    )
    html = f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #1a365d;">Book Return Reminder</h2>
  <p>Dear {contact.name},</p>
  <p>This is a reminder that your borrowed book is due soon:</p>
  <div style="background-color: #f8f9fa; padding: 15px; border-radius: 5px; margin: 15px 0;">
    <p><strong>Book:</strong> {book_title}</p>
    <p><strong>Author:</strong> {book_author}</p>
    <p><strong>Due Date:</strong> {due_text}</p>
    <p><strong>Time Remaining:</strong> {remaining}</p>
  </div>
  <p>Please return the book on time to avoid a late fee of {fine_per_day} per day.</p>
  <p style="color: #666; font-size: 12px;">This is an automated message. Please do not reply.</p>
</div>
"""
    return subject, text, html


class SmtpReminderSender:
    """Send reminders as email over SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        mail_from: str = "noreply@elibrary.local",
        fine_per_day: int = 5,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.mail_from = mail_from
        self.fine_per_day = fine_per_day
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> "SmtpReminderSender":
        """Create a sender from application config."""
        return cls(
            host=config.smtp_host or "localhost",
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            mail_from=config.mail_from,
            fine_per_day=config.fine_per_day,
        )

    def build_message(
        self,
        contact: Recipient,
        book_title: str,
        book_author: str,
        due_date: datetime,
        days_left: int,
    ) -> EmailMessage:
        """Assemble the email without sending it."""
        subject, text, html = render_reminder(
            contact, book_title, book_author, due_date, days_left, self.fine_per_day
        )
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.mail_from
        message["To"] = contact.email
        message.set_content(text)
        message.add_alternative(html, subtype="html")
        return message

    def send_reminder(
        self,
        contact: Recipient,
        book_title: str,
        book_author: str,
        due_date: datetime,
        days_left: int,
    ) -> None:
        """Deliver one reminder. Transport errors propagate to the caller."""
        message = self.build_message(contact, book_title, book_author, due_date, days_left)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
        logger.info("Reminder sent to %s for book %s", contact.email, book_title)


class LoggingReminderSender:
    """Write reminders to the log instead of sending them."""

    def send_reminder(
        self,
        contact: Recipient,
        book_title: str,
        book_author: str,
        due_date: datetime,
        days_left: int,
    ) -> None:
        logger.info(
            "Reminder for %s <%s>: %s by %s due %s (%s left)",
            contact.name,
            contact.email,
            book_title,
            book_author,
            due_date.isoformat(),
            _plural_days(days_left),
        )


def build_sender(config: Config) -> ReminderSender:
    """Pick the sender that matches the configuration."""
    if config.has_smtp_config():
        return SmtpReminderSender.from_config(config)
    logger.warning("SMTP_HOST not set; reminders will only be logged")
    return LoggingReminderSender()
