"""
SQLite record store: connection handling and schema.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator

from .config import get_db_path, ensure_db_directory

REQUIRED_TABLES = [
    'students',
    'employees',
    'users',
    'inventory_items',
    'borrow_transactions',
    'staff',
    'activity_logs',
    'job_locks',
]


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection with name-addressable rows."""
    ensure_db_directory()
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize the database with required tables."""
    with get_db() as conn:
        cursor = conn.cursor()

        # Identity collections. Codes are unique per table, not across tables.
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS students (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id TEXT NOT NULL UNIQUE,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                email TEXT,
                contact_number TEXT,
                course TEXT,
                year_level TEXT,
                status TEXT DEFAULT 'active',
                qr_code TEXT UNIQUE,
                archived_at TIMESTAMP,
                auto_delete_at TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS employees (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                emp_id TEXT NOT NULL UNIQUE,
                first_name TEXT NOT NULL,
                last_name TEXT NOT NULL,
                email TEXT,
                contact_number TEXT,
                position TEXT,
                department TEXT,
                status TEXT DEFAULT 'active',
                qr_code TEXT UNIQUE,
                archived_at TIMESTAMP,
                auto_delete_at TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                id_number TEXT NOT NULL UNIQUE,
                full_name TEXT NOT NULL,
                email TEXT,
                contact_number TEXT,
                department TEXT,
                status TEXT DEFAULT 'active',
                qr_code TEXT UNIQUE
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS inventory_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                category TEXT,
                quantity INTEGER DEFAULT 0,
                archived_at TIMESTAMP,
                auto_delete_at TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS borrow_transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_id TEXT NOT NULL UNIQUE,
                borrower_type TEXT NOT NULL,  -- 'student', 'employee', 'user'
                borrower_id INTEGER NOT NULL,
                borrower_name TEXT,
                borrower_email TEXT,
                borrower_contact TEXT,
                inventory_item_id INTEGER NOT NULL,
                quantity INTEGER DEFAULT 1,
                borrow_date DATE NOT NULL,
                expected_return_date DATE NOT NULL,
                status TEXT DEFAULT 'borrowed',
                purpose TEXT,
                overdue_notification_sent_at TIMESTAMP,
                due_today_notification_sent_at TIMESTAMP,
                due_soon_notification_sent_at TIMESTAMP
            )
        ''')

        # Admins and super admins that receive the overdue digest
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS staff (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT,
                role TEXT DEFAULT 'admin'
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS activity_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                action TEXT NOT NULL,
                description TEXT,
                category TEXT,
                actor_type TEXT DEFAULT 'system',
                actor_name TEXT,
                metadata TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        # One row per running job; shared by every process using this database
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS job_locks (
                name TEXT PRIMARY KEY,
                holder TEXT NOT NULL,
                acquired_at TIMESTAMP NOT NULL
            )
        ''')

        # Create indexes for the scheduler queries
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_borrow_status_due ON borrow_transactions(status, expected_return_date)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_borrow_borrower ON borrow_transactions(borrower_type, borrower_id)')

        conn.commit()


def health_check():
    """Check database health."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table';")
            table_names = [row[0] for row in cursor.fetchall()]

            return all(table in table_names for table in REQUIRED_TABLES)
    except Exception:
        return False
