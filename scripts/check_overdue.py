#!/usr/bin/env python3
"""
Mark past-due loans overdue and mail the overdue digest to staff.
"""

import argparse
import json
import sys

from borrowdesk.core.dao import StoreUnavailable
from borrowdesk.core.db import init_db
from borrowdesk.core.overdue import check_overdue_items


def main():
    parser = argparse.ArgumentParser(description="Check for overdue items and notify admins/staff")
    parser.add_argument("--dry-run", action="store_true", help="Run without sending emails or writing records")
    args = parser.parse_args()

    try:
        init_db()
        report = check_overdue_items(dry_run=args.dry_run)
    except StoreUnavailable as e:
        print(f"❌ Error checking overdue items: {e}", file=sys.stderr)
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 1 if report.errors else 0


if __name__ == "__main__":
    sys.exit(main())
