#!/usr/bin/env python3
"""
Send overdue, due-today and due-tomorrow reminders to borrowers.
"""

import argparse
import json
import sys

from borrowdesk.core.dao import StoreUnavailable
from borrowdesk.core.db import init_db
from borrowdesk.core.notifications import NotificationReport, RunInProgress, run_borrower_notifications


def format_report(report: NotificationReport) -> str:
    """Format a reminder run report for display."""
    lines = []
    selected = report.selected

    lines.append(
        f"Found {selected.get('overdue', 0)} overdue item(s), {selected.get('due_today', 0)} item(s) due today, "
        f"and {selected.get('due_soon', 0)} item(s) due tomorrow"
    )
    if report.transitioned:
        lines.append(f"Marked {len(report.transitioned)} transaction(s) as overdue")

    if report.dry_run:
        lines.append("[DRY RUN] No emails were sent and no records were changed")
    else:
        sent = report.sent
        lines.append(
            f"Sent {sent['overdue']} overdue, {sent['due_today']} due today, "
            f"and {sent['due_soon']} due soon notification(s)"
        )

    if report.failures:
        lines.append(f"{len(report.failures)} notification(s) failed to send:")
        for failure in report.failures:
            lines.append(f"  - loan {failure['loan_id']} ({failure['kind']}) to {failure['recipient']}: {failure['error']}")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Send borrower reminder emails")
    parser.add_argument("--dry-run", action="store_true", help="Run without sending emails or writing records")
    parser.add_argument("--json", action="store_true", help="Output the report as JSON")
    args = parser.parse_args()

    try:
        init_db()
        report = run_borrower_notifications(dry_run=args.dry_run)
    except RunInProgress as e:
        print(f"⏳ {e}; try again later", file=sys.stderr)
        return 1
    except StoreUnavailable as e:
        print(f"❌ Error sending borrower notifications: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(format_report(report))

    return 0


if __name__ == "__main__":
    sys.exit(main())
