"""
Templated email delivery for borrower reminders and the staff overdue digest.
"""

import html
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Optional, Tuple

from . import config
from ..util.logging import logger

SYSTEM_NAME = "Borrowdesk IMS"


class DispatchFailure(Exception):
    """Mail could not be delivered for one recipient."""
    pass


TEMPLATES = {
    "overdue": {
        "subject": "Overdue Item Reminder - {system}",
        "body": (
            "Hello {borrower_name},\n\n"
            "Our records show that the following item is overdue by {days_overdue} day(s):\n\n"
            "  Item: {item_name}\n"
            "  Quantity: {quantity}\n"
            "  Borrowed on: {borrow_date}\n"
            "  Expected return: {expected_return_date}\n"
            "  Transaction: {transaction_id}\n\n"
            "Please return it as soon as possible.\n"
        ),
    },
    "due_today": {
        "subject": "Item Due Today Reminder - {system}",
        "body": (
            "Hello {borrower_name},\n\n"
            "This is a reminder that the following item is due for return today:\n\n"
            "  Item: {item_name}\n"
            "  Quantity: {quantity}\n"
            "  Borrowed on: {borrow_date}\n"
            "  Expected return: {expected_return_date}\n"
            "  Transaction: {transaction_id}\n"
        ),
    },
    "due_soon": {
        "subject": "Item Due Tomorrow Reminder - {system}",
        "body": (
            "Hello {borrower_name},\n\n"
            "The following item is due for return tomorrow:\n\n"
            "  Item: {item_name}\n"
            "  Quantity: {quantity}\n"
            "  Borrowed on: {borrow_date}\n"
            "  Expected return: {expected_return_date}\n"
            "  Transaction: {transaction_id}\n"
        ),
    },
    "overdue_digest": {
        "subject": "Overdue Items Report ({overdue_count}) - {system}",
        "body": (
            "Overdue transactions: {overdue_count}\n"
            "Total items out: {total_items}\n"
            "Average days overdue: {average_days_overdue}\n\n"
            "{item_lines}\n"
        ),
    },
}


def _digest_lines(items) -> str:
    lines = []
    for item in items:
        lines.append(
            "- {transaction_id}: {item_name} x{quantity} - {borrower_name} <{borrower_email}> "
            "due {expected_return_date} ({days_overdue} day(s) overdue)".format(**item)
        )
    return "\n".join(lines)


def render(kind: str, data: Dict[str, Any]) -> Tuple[str, str, str]:
    """
    Render a template.

    Returns:
        (subject, plain text body, html body)

    Raises:
        KeyError: unknown template kind or missing template field
    """
    template = TEMPLATES[kind]
    values = dict(data)
    values.setdefault("system", SYSTEM_NAME)
    if kind == "overdue_digest":
        values["item_lines"] = _digest_lines(values.get("items", []))

    subject = template["subject"].format(**values)
    text = template["body"].format(**values)
    html_body = "<html><body><pre>{}</pre></body></html>".format(html.escape(text))
    return subject, text, html_body


class SmtpMailer:
    """Synchronous SMTP mailer."""

    def __init__(self, host: str = None, port: int = None, user: Optional[str] = None,
                 password: Optional[str] = None, use_tls: bool = None, enabled: bool = None):
        self.host = host or config.SMTP_HOST
        self.port = port or config.SMTP_PORT
        self.user = user if user is not None else config.SMTP_USER
        self.password = password if password is not None else config.SMTP_PASSWORD
        self.use_tls = config.SMTP_USE_TLS if use_tls is None else use_tls
        self.enabled = config.is_mail_enabled() if enabled is None else enabled
        self.from_address = f"{config.MAIL_FROM_NAME} <{config.MAIL_FROM}>"

    def build_message(self, recipient: str, kind: str, data: Dict[str, Any]) -> EmailMessage:
        subject, text, html_body = render(kind, data)
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = recipient
        msg.set_content(text)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def send(self, recipient: str, kind: str, data: Dict[str, Any]) -> bool:
        """
        Send one templated email.

        Returns False when mail delivery is disabled; raises DispatchFailure
        when the SMTP conversation fails.
        """
        if not self.enabled:
            logger.warning(f"Mail disabled (MAIL_ENABLED=false); not sending '{kind}' to {recipient}")
            return False

        msg = self.build_message(recipient, kind, data)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchFailure(f"Failed to send '{kind}' to {recipient}: {e}") from e

        logger.info(f"Email sent to {recipient} subject={msg['Subject']}")
        return True


def get_mailer() -> SmtpMailer:
    """Get the configured mailer."""
    return SmtpMailer()
