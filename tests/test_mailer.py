"""
Email templates and SMTP delivery.
"""

import smtplib
from datetime import timedelta
from unittest.mock import patch

import pytest

from borrowdesk.core.mailer import DispatchFailure, SmtpMailer, render
from borrowdesk.core.overdue import build_digest

from conftest import TODAY, make_loan


@pytest.fixture
def loan_data():
    return make_loan(1, expected=TODAY - timedelta(days=3), quantity=2).to_template_data(TODAY)


@pytest.fixture
def mailer():
    return SmtpMailer(host="smtp.example.edu", port=2525, user="desk", password="hunter2",
                      use_tls=True, enabled=True)


class TestRender:

    def test_overdue_template(self, loan_data):
        subject, text, html_body = render("overdue", loan_data)

        assert subject == "Overdue Item Reminder - Borrowdesk IMS"
        assert "Hello Alice Reyes" in text
        assert "overdue by 3 day(s)" in text
        assert "Expected return: March 07, 2026" in text
        assert "BRW-0001" in html_body

    @pytest.mark.parametrize("kind,subject", [
        ("due_today", "Item Due Today Reminder - Borrowdesk IMS"),
        ("due_soon", "Item Due Tomorrow Reminder - Borrowdesk IMS"),
    ])
    def test_reminder_subjects(self, loan_data, kind, subject):
        assert render(kind, loan_data)[0] == subject

    def test_digest_template(self):
        loans = [make_loan(1, expected=TODAY - timedelta(days=2), borrower_name="Alice <A&B>")]
        subject, text, html_body = render("overdue_digest", build_digest(loans, TODAY))

        assert subject == "Overdue Items Report (1) - Borrowdesk IMS"
        assert "Average days overdue: 2.0" in text
        assert "- BRW-0001: Epson Projector x1" in text
        assert "Alice &lt;A&amp;B&gt;" in html_body

    def test_unknown_kind(self, loan_data):
        with pytest.raises(KeyError):
            render("weekly_summary", loan_data)


class TestSmtpMailer:

    def test_disabled_mailer_does_not_connect(self, loan_data):
        mailer = SmtpMailer(enabled=False)
        with patch("borrowdesk.core.mailer.smtplib.SMTP") as mock_smtp:
            assert mailer.send("alice@example.edu", "overdue", loan_data) is False
        mock_smtp.assert_not_called()

    def test_build_message(self, mailer, loan_data):
        msg = mailer.build_message("alice@example.edu", "due_today", loan_data)

        assert msg["To"] == "alice@example.edu"
        assert msg["Subject"] == "Item Due Today Reminder - Borrowdesk IMS"
        assert msg.get_content_type() == "multipart/alternative"

    def test_send_success(self, mailer, loan_data):
        with patch("borrowdesk.core.mailer.smtplib.SMTP") as mock_smtp:
            assert mailer.send("alice@example.edu", "overdue", loan_data) is True

        mock_smtp.assert_called_once_with("smtp.example.edu", 2525, timeout=30)
        server = mock_smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("desk", "hunter2")
        sent = server.send_message.call_args.args[0]
        assert sent["To"] == "alice@example.edu"

    def test_send_without_credentials_skips_login(self, loan_data):
        mailer = SmtpMailer(host="localhost", port=25, user="", password="", use_tls=False, enabled=True)
        with patch("borrowdesk.core.mailer.smtplib.SMTP") as mock_smtp:
            mailer.send("alice@example.edu", "overdue", loan_data)

        server = mock_smtp.return_value.__enter__.return_value
        server.starttls.assert_not_called()
        server.login.assert_not_called()

    def test_smtp_error_raises_dispatch_failure(self, mailer, loan_data):
        with patch("borrowdesk.core.mailer.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value
            server.send_message.side_effect = smtplib.SMTPDataError(554, b"rejected")

            with pytest.raises(DispatchFailure, match="alice@example.edu"):
                mailer.send("alice@example.edu", "overdue", loan_data)

    def test_connection_error_raises_dispatch_failure(self, mailer, loan_data):
        with patch("borrowdesk.core.mailer.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(DispatchFailure):
                mailer.send("alice@example.edu", "overdue", loan_data)
