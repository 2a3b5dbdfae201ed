"""
Borrower reminder policy - decides which loans get an overdue, due-today or
due-tomorrow email and records each successful dispatch on the loan.

Suppression rules:
    overdue    at most once per calendar day, every day until returned
    due_today  at most once per calendar day
    due_soon   once ever; the timestamp never resets

Runs must not overlap: the read-modify-write of the notification timestamps
is not atomic across a batch. A real (non dry) run holds the
``borrower_notifications`` row in ``job_locks``, which every process sharing
the database sees, so the API and the heartbeat exclude each other.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from . import dao
from .clock import SystemClock
from .config import get_notify_lock_ttl
from .mailer import get_mailer
from .schema import LoanRecord, LoanStatus, ReminderKind
from ..util.logging import logger

RUN_LOCK_NAME = "borrower_notifications"


class RunInProgress(Exception):
    """Another process or thread is already sending borrower reminders."""
    pass


@dataclass
class DueNotifications:
    """Loans selected for each reminder kind. A loan appears in at most one list."""
    overdue: List[LoanRecord] = field(default_factory=list)
    due_today: List[LoanRecord] = field(default_factory=list)
    due_soon: List[LoanRecord] = field(default_factory=list)
    transitioned: List[LoanRecord] = field(default_factory=list)

    def for_kind(self, kind: ReminderKind) -> List[LoanRecord]:
        return {
            ReminderKind.OVERDUE: self.overdue,
            ReminderKind.DUE_TODAY: self.due_today,
            ReminderKind.DUE_SOON: self.due_soon,
        }[kind]

    def is_empty(self) -> bool:
        return not (self.overdue or self.due_today or self.due_soon)

    def counts(self) -> Dict[str, int]:
        return {kind.value: len(self.for_kind(kind)) for kind in ReminderKind}

    def to_dict(self) -> Dict[str, Any]:
        data = {kind.value: [loan.to_dict() for loan in self.for_kind(kind)] for kind in ReminderKind}
        data["transitioned"] = [loan.id for loan in self.transitioned]
        return data


@dataclass
class NotificationReport:
    """Outcome of one reminder run."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    dry_run: bool = False
    selected: Dict[str, int] = field(default_factory=dict)
    sent: Dict[str, int] = field(default_factory=lambda: {kind.value: 0 for kind in ReminderKind})
    failures: List[Dict[str, Any]] = field(default_factory=list)
    transitioned: List[int] = field(default_factory=list)

    @property
    def total_sent(self) -> int:
        return sum(self.sent.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        data = {
            "started_at": self.started_at.isoformat(),
            "dry_run": self.dry_run,
            "selected": self.selected,
            "sent": self.sent,
            "failed": len(self.failures),
            "failures": self.failures,
            "transitioned": self.transitioned,
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


def _sent_today(sent_at: Optional[datetime], today: date) -> bool:
    return sent_at is not None and sent_at.date() >= today


def compute_due_notifications(now: datetime, loans: List[LoanRecord]) -> DueNotifications:
    """
    Select loans needing a reminder at ``now``.

    Borrowed loans already past due are moved to overdue (in memory) before
    selection and reported in ``transitioned`` so the caller can persist the
    change. Loans without a borrower email are never selected.
    """
    today = now.date()
    tomorrow = today + timedelta(days=1)
    due = DueNotifications()

    for loan in loans:
        if loan.status == LoanStatus.BORROWED and loan.expected_return_date < today:
            loan.status = LoanStatus.OVERDUE
            due.transitioned.append(loan)

        if not loan.has_email():
            continue

        if loan.status in (LoanStatus.BORROWED, LoanStatus.OVERDUE) and loan.expected_return_date < today:
            if not _sent_today(loan.overdue_notified_at, today):
                due.overdue.append(loan)
        elif loan.status == LoanStatus.BORROWED and loan.expected_return_date == today:
            if not _sent_today(loan.due_today_notified_at, today):
                due.due_today.append(loan)
        elif loan.status == LoanStatus.BORROWED and loan.expected_return_date == tomorrow:
            if loan.due_soon_notified_at is None:
                due.due_soon.append(loan)

    return due


def dispatch_notifications(due: DueNotifications, mailer, now: datetime, dry_run: bool = False) -> NotificationReport:
    """
    Send every selected reminder and stamp the loan on success.

    A failed send (False return or exception) leaves the timestamp untouched
    so the next run retries it; the rest of the batch continues. Errors from
    the record store while stamping propagate.
    """
    report = NotificationReport(started_at=now, dry_run=dry_run, selected=due.counts())
    today = now.date()

    for kind in ReminderKind:
        for loan in due.for_kind(kind):
            recipient = loan.borrower_email.strip()

            if dry_run:
                logger.log_notification(kind.value, loan.id, recipient, "dry_run")
                continue

            try:
                delivered = mailer.send(recipient, kind.value, loan.to_template_data(today))
            except Exception as e:
                delivered = False
                error = str(e)
            else:
                error = None if delivered else "mailer reported failure"

            if not delivered:
                report.failures.append({"loan_id": loan.id, "kind": kind.value, "recipient": recipient, "error": error})
                logger.log_notification(kind.value, loan.id, recipient, "failed", {"error": error})
                continue

            dao.set_notified_at(loan.id, kind, now)
            loan.set_notified_at(kind, now)
            report.sent[kind.value] += 1
            logger.log_notification(kind.value, loan.id, recipient, "sent", {
                "transaction_id": loan.transaction_id,
                "borrower_name": loan.borrower_name,
            })

    return report


def run_borrower_notifications(clock=None, mailer=None, dry_run: bool = False) -> NotificationReport:
    """
    Load open loans, persist overdue transitions, and dispatch due reminders.

    A dry run only reads, so it skips the run lock.

    Raises:
        RunInProgress: another run holds the lock; nothing was read or sent
        StoreUnavailable: the record store failed; nothing further is attempted
    """
    clock = clock or SystemClock()
    mailer = mailer or get_mailer()

    if dry_run:
        return _run(clock, mailer, dry_run=True)

    holder = uuid.uuid4().hex
    if not dao.acquire_job_lock(RUN_LOCK_NAME, holder, clock.now(), get_notify_lock_ttl()):
        logger.log_operation("notification.run", "skipped", {"reason": "another run holds the lock"})
        raise RunInProgress("Borrower notifications already running")
    try:
        return _run(clock, mailer, dry_run=False)
    finally:
        dao.release_job_lock(RUN_LOCK_NAME, holder)


def _run(clock, mailer, dry_run: bool) -> NotificationReport:
    now = clock.now()

    loans = dao.list_open_loans()
    due = compute_due_notifications(now, loans)

    if due.transitioned and not dry_run:
        dao.mark_overdue(loan.id for loan in due.transitioned)

    if due.is_empty():
        logger.log_operation("notification.run", "idle", {"open_loans": len(loans)})

    report = dispatch_notifications(due, mailer, now, dry_run=dry_run)
    report.transitioned = [loan.id for loan in due.transitioned]
    report.completed_at = clock.now()

    logger.log_operation("notification.run", "dry_run" if dry_run else "completed", {
        "selected": report.selected,
        "sent": report.sent,
        "failed": len(report.failures),
        "transitioned": len(report.transitioned),
    })
    return report
