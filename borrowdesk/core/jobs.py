"""
Scheduled jobs and their registration with the heartbeat.
"""

from . import heartbeat
from .archive import auto_delete_archived
from .config import get_task_intervals
from .notifications import RunInProgress, run_borrower_notifications
from .overdue import check_overdue_items
from ..util.logging import logger


def send_borrower_notifications(clock=None, mailer=None):
    """Scheduled reminder run; a run already in progress elsewhere is not an error."""
    try:
        return run_borrower_notifications(clock=clock, mailer=mailer)
    except RunInProgress:
        logger.log_operation("heartbeat.borrower_notifications", "skipped", {"reason": "run in progress"})
        return None


def register_default_tasks(clock=None, mailer=None):
    """Register the borrower reminder, overdue digest and archive sweep tasks."""
    intervals = get_task_intervals()

    heartbeat.register_task(
        "borrower_notifications",
        intervals["borrower_notifications"],
        lambda: send_borrower_notifications(clock=clock, mailer=mailer),
    )
    heartbeat.register_task(
        "overdue_check",
        intervals["overdue_check"],
        lambda: check_overdue_items(clock=clock, mailer=mailer),
    )
    heartbeat.register_task(
        "archive_auto_delete",
        intervals["archive_auto_delete"],
        lambda: auto_delete_archived(clock=clock),
    )
    return heartbeat.list_tasks()
