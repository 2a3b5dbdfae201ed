#!/usr/bin/env python3
"""
Run the scheduled jobs: borrower reminders, staff overdue digest and the
archive auto-delete sweep.
"""

import sys

from borrowdesk.core.config import is_heartbeat_enabled, validate_heartbeat_config
from borrowdesk.core.db import init_db
from borrowdesk.core.heartbeat import start, stop
from borrowdesk.core.jobs import register_default_tasks


def main():
    """Main entry point for heartbeat script."""
    try:
        if not is_heartbeat_enabled():
            print("❌ Heartbeat requires HEARTBEAT_ENABLED=true")
            sys.exit(1)

        issues = validate_heartbeat_config()
        if issues:
            print(f"❌ Invalid configuration: {issues}")
            sys.exit(1)

        init_db()
        names = register_default_tasks()
        print(f"🏃 Configured tasks: {names}")

        start()

    except KeyboardInterrupt:
        print("\n👋 Shutting down gracefully...")
        stop()
    except Exception as e:
        print(f"💥 Critical error: {e}")
        stop()
        sys.exit(1)


if __name__ == "__main__":
    main()
