"""
Staff overdue digest - marks past-due loans overdue and mails one summary to
every admin / super admin on file.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from . import dao
from .clock import SystemClock
from .mailer import get_mailer
from .schema import LoanRecord, LoanStatus
from ..util.logging import logger


@dataclass
class OverdueDigestReport:
    started_at: datetime
    completed_at: Optional[datetime] = None
    dry_run: bool = False
    marked_overdue: int = 0
    overdue_count: int = 0
    total_items: int = 0
    average_days_overdue: float = 0.0
    recipients: List[str] = field(default_factory=list)
    sent: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "started_at": self.started_at.isoformat(),
            "dry_run": self.dry_run,
            "marked_overdue": self.marked_overdue,
            "overdue_count": self.overdue_count,
            "total_items": self.total_items,
            "average_days_overdue": self.average_days_overdue,
            "recipients": self.recipients,
            "sent": self.sent,
            "errors": self.errors,
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


def build_digest(loans: List[LoanRecord], today) -> Dict[str, Any]:
    """Template data for the digest: item rows, totals and the mean days overdue."""
    items = []
    for loan in loans:
        row = loan.to_template_data(today)
        row["borrower_email"] = loan.borrower_email or "N/A"
        row["borrower_contact"] = loan.borrower_contact or "N/A"
        items.append(row)

    days = [loan.days_overdue(today) for loan in loans]
    return {
        "items": items,
        "overdue_count": len(loans),
        "total_items": sum(loan.quantity for loan in loans),
        "average_days_overdue": round(sum(days) / len(days), 1) if days else 0,
    }


def check_overdue_items(clock=None, mailer=None, dry_run: bool = False) -> OverdueDigestReport:
    """
    Mark borrowed loans past their return date as overdue, then send the digest.

    A dry run reports what would change without writing or sending anything.
    """
    clock = clock or SystemClock()
    mailer = mailer or get_mailer()
    now = clock.now()
    today = now.date()
    report = OverdueDigestReport(started_at=now, dry_run=dry_run)

    open_loans = dao.list_open_loans()
    past_due = [loan for loan in open_loans
                if loan.status == LoanStatus.BORROWED and loan.expected_return_date < today]
    report.marked_overdue = len(past_due)
    if past_due and not dry_run:
        dao.mark_overdue(loan.id for loan in past_due)
    for loan in past_due:
        loan.status = LoanStatus.OVERDUE

    overdue = [loan for loan in open_loans if loan.status == LoanStatus.OVERDUE]
    digest = build_digest(overdue, today)
    report.overdue_count = digest["overdue_count"]
    report.total_items = digest["total_items"]
    report.average_days_overdue = digest["average_days_overdue"]

    if not overdue:
        logger.log_operation("overdue.check", "idle", {"message": "No overdue items found"})
        report.completed_at = clock.now()
        return report

    report.recipients = dao.list_staff_emails()
    if not report.recipients:
        logger.warning("Overdue check: No admin/staff emails found. Skipping email notifications.")
        report.completed_at = clock.now()
        return report

    for recipient in report.recipients:
        if dry_run:
            logger.log_operation("overdue.digest", "dry_run", {"recipient": recipient})
            continue
        try:
            if mailer.send(recipient, "overdue_digest", digest):
                report.sent += 1
                logger.log_operation("overdue.digest", "sent", {
                    "recipient": recipient, "overdue_count": report.overdue_count
                })
            else:
                report.errors.append(f"{recipient}: mailer reported failure")
        except Exception as e:
            report.errors.append(f"{recipient}: {e}")
            logger.error(f"Failed to send overdue digest to {recipient}: {e}")

    report.completed_at = clock.now()
    logger.log_operation("overdue.check", "completed", {
        "overdue_count": report.overdue_count,
        "emails_sent": report.sent,
        "total_staff": len(report.recipients),
    })
    return report
