"""
Core domain: record store, identity resolution, reminder policy and scheduled jobs.
"""

# Package initialization for core module
from .schema import (
    IdentityKind,
    LoanStatus,
    ReminderKind,
    Student,
    Employee,
    GenericUser,
    LoanRecord,
)
from .dao import StoreUnavailable
from .identity import resolve
from .mailer import DispatchFailure
from .notifications import (
    DueNotifications,
    NotificationReport,
    compute_due_notifications,
    dispatch_notifications,
    RunInProgress,
    run_borrower_notifications,
)

__all__ = [
    'IdentityKind',
    'LoanStatus',
    'ReminderKind',
    'Student',
    'Employee',
    'GenericUser',
    'LoanRecord',
    'StoreUnavailable',
    'resolve',
    'DispatchFailure',
    'DueNotifications',
    'NotificationReport',
    'compute_due_notifications',
    'dispatch_notifications',
    'RunInProgress',
    'run_borrower_notifications',
]
