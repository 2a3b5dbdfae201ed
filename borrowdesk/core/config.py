"""
Runtime configuration for the borrowing desk core.
Everything is read from environment variables; defaults suit local development.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/borrowdesk.db")

DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Calendar used for "today" / "tomorrow" in reminder selection
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Manila")

# Outbound mail (default disabled - reminders are logged but not delivered)
MAIL_ENABLED = os.getenv("MAIL_ENABLED", "false").lower() == "true"
SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@borrowdesk.local")
MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Borrowdesk IMS")

# Heartbeat scheduler (default disabled)
HEARTBEAT_ENABLED = os.getenv("HEARTBEAT_ENABLED", "false").lower() == "true"
NOTIFY_INTERVAL_SEC = int(os.getenv("NOTIFY_INTERVAL_SEC", "3600"))
OVERDUE_CHECK_INTERVAL_SEC = int(os.getenv("OVERDUE_CHECK_INTERVAL_SEC", "86400"))
# A reminder run lock older than this is considered abandoned (crashed process)
NOTIFY_LOCK_TTL_SEC = int(os.getenv("NOTIFY_LOCK_TTL_SEC", "1800"))
ARCHIVE_SWEEP_INTERVAL_SEC = int(os.getenv("ARCHIVE_SWEEP_INTERVAL_SEC", "86400"))

# Archived students, employees and inventory items are purged after this many days
ARCHIVE_RETENTION_DAYS = int(os.getenv("ARCHIVE_RETENTION_DAYS", "30"))

VERSION = "1.0.0"


def get_db_path():
    """Current database path. Re-read on every call so tests can redirect it."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def is_heartbeat_enabled():
    """Check if heartbeat system is enabled."""
    return HEARTBEAT_ENABLED


def is_mail_enabled():
    return MAIL_ENABLED


def get_archive_retention_days():
    return ARCHIVE_RETENTION_DAYS


def get_notify_lock_ttl():
    return NOTIFY_LOCK_TTL_SEC


def get_task_intervals():
    """Interval in seconds for each scheduled job."""
    return {
        "borrower_notifications": NOTIFY_INTERVAL_SEC,
        "overdue_check": OVERDUE_CHECK_INTERVAL_SEC,
        "archive_auto_delete": ARCHIVE_SWEEP_INTERVAL_SEC,
    }


def validate_heartbeat_config():
    """Validate scheduler configuration and return any issues."""
    issues = []

    for name, interval in get_task_intervals().items():
        if interval < 1:
            issues.append(f"Interval for {name} must be >= 1 second (got {interval})")

    if NOTIFY_LOCK_TTL_SEC < 1:
        issues.append("NOTIFY_LOCK_TTL_SEC must be >= 1")

    if ARCHIVE_RETENTION_DAYS < 1:
        issues.append("ARCHIVE_RETENTION_DAYS must be >= 1")

    if MAIL_ENABLED and not SMTP_HOST:
        issues.append("MAIL_ENABLED requires SMTP_HOST")

    return issues
