#!/usr/bin/env python3
"""
Create the record store schema and report its health.
"""

import sys

from borrowdesk.core.config import get_db_path
from borrowdesk.core.db import health_check, init_db


def main():
    """Initialize the database at DB_PATH."""
    init_db()

    if not health_check():
        print(f"❌ Database at {get_db_path()} is missing required tables")
        return 1

    print(f"✅ Database ready at {get_db_path()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
