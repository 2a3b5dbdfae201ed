#!/usr/bin/env python3
"""
Permanently delete archived inventory items, students and employees past their
auto-delete date.
"""

import argparse
import sys

from borrowdesk.core.archive import auto_delete_archived
from borrowdesk.core.dao import StoreUnavailable
from borrowdesk.core.db import init_db


def main():
    parser = argparse.ArgumentParser(description="Auto-delete expired archived records")
    parser.add_argument("--dry-run", action="store_true", help="Run without actually deleting records")
    args = parser.parse_args()

    try:
        init_db()
        report = auto_delete_archived(dry_run=args.dry_run)
    except StoreUnavailable as e:
        print(f"❌ Error during auto-deletion process: {e}", file=sys.stderr)
        return 1

    if report.total_found == 0:
        print("✅ No archived records ready for auto-deletion.")
        return 0

    print(f"📦 Found {report.total_found} archived record(s) ready for permanent deletion.")
    for table, count in report.found.items():
        print(f"   - {table}: {count}")

    if report.dry_run:
        print("🔍 DRY RUN MODE - No records were deleted.")
        return 0

    print(f"✅ Permanently deleted {report.total_deleted} archived record(s).")
    if report.errors:
        print(f"⚠️  {len(report.errors)} record(s) could not be deleted:")
        for error in report.errors:
            print(f"  - {error}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
