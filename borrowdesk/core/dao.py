"""
Record store access for identities, borrow transactions, staff and activity logs.

Every function raises StoreUnavailable when SQLite cannot serve the request;
callers decide whether that aborts their invocation.
"""

import json
import sqlite3
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from .db import get_db
from .schema import (
    Employee,
    GenericUser,
    IdentityKind,
    LoanRecord,
    LoanStatus,
    ReminderKind,
    Student,
)
from ..util.logging import logger

ARCHIVABLE_TABLES = ("inventory_items", "students", "employees")

LOAN_COLUMNS = '''
    t.id, t.transaction_id, t.borrower_type, t.borrower_id, t.borrower_name,
    t.borrower_email, t.borrower_contact, t.inventory_item_id, t.quantity,
    t.borrow_date, t.expected_return_date, t.status, t.purpose,
    t.overdue_notification_sent_at, t.due_today_notification_sent_at,
    t.due_soon_notification_sent_at, i.name AS item_name
'''


class StoreUnavailable(Exception):
    """The record store could not be reached or rejected the query."""
    pass


def _fetch(sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, tuple(params))
            return cursor.fetchall()
    except sqlite3.Error as e:
        logger.error(f"Record store query failed: {e}")
        raise StoreUnavailable(str(e)) from e


def _fetch_one(sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
    rows = _fetch(sql, params)
    return rows[0] if rows else None


def _execute(sql: str, params: Iterable[Any] = ()) -> int:
    """Run a write statement; returns lastrowid for inserts, rowcount otherwise."""
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, tuple(params))
            conn.commit()
            return cursor.lastrowid if sql.lstrip().upper().startswith("INSERT") else cursor.rowcount
    except sqlite3.Error as e:
        logger.error(f"Record store write failed: {e}")
        raise StoreUnavailable(str(e)) from e


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(sep=" ") if value else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _parse_date(value: str) -> date:
    # Accept both plain dates and full timestamps
    return date.fromisoformat(value[:10])


# --- identity rows -------------------------------------------------------

def _student_from_row(row: sqlite3.Row) -> Student:
    return Student(
        internal_id=row["id"],
        name=f"{row['first_name']} {row['last_name']}".strip(),
        email=row["email"] or "",
        contact=row["contact_number"] or "",
        status=row["status"] or "active",
        student_code=row["student_id"],
        course=row["course"] or "",
        year_level=row["year_level"] or "",
    )


def _employee_from_row(row: sqlite3.Row) -> Employee:
    return Employee(
        internal_id=row["id"],
        name=f"{row['first_name']} {row['last_name']}".strip(),
        email=row["email"] or "",
        contact=row["contact_number"] or "",
        status=row["status"] or "active",
        employee_code=row["emp_id"],
        position=row["position"] or "",
        department=row["department"] or "",
    )


def _user_from_row(row: sqlite3.Row) -> GenericUser:
    return GenericUser(
        internal_id=row["id"],
        name=row["full_name"],
        email=row["email"] or "",
        contact=row["contact_number"] or "",
        status=row["status"] or "active",
        id_number=row["id_number"],
        department=row["department"] or "",
    )


def find_student_by_code(student_code: str) -> Optional[Student]:
    row = _fetch_one("SELECT * FROM students WHERE student_id = ?", (student_code,))
    return _student_from_row(row) if row else None


def find_employee_by_code(employee_code: str) -> Optional[Employee]:
    row = _fetch_one("SELECT * FROM employees WHERE emp_id = ?", (employee_code,))
    return _employee_from_row(row) if row else None


def find_user_by_id_number(id_number: str) -> Optional[GenericUser]:
    row = _fetch_one("SELECT * FROM users WHERE id_number = ?", (id_number,))
    return _user_from_row(row) if row else None


def find_student_by_qr(qr_code: str) -> Optional[Student]:
    row = _fetch_one("SELECT * FROM students WHERE qr_code = ?", (qr_code,))
    return _student_from_row(row) if row else None


def find_employee_by_qr(qr_code: str) -> Optional[Employee]:
    row = _fetch_one("SELECT * FROM employees WHERE qr_code = ?", (qr_code,))
    return _employee_from_row(row) if row else None


def find_user_by_qr(qr_code: str) -> Optional[GenericUser]:
    row = _fetch_one("SELECT * FROM users WHERE qr_code = ?", (qr_code,))
    return _user_from_row(row) if row else None


def add_student(student_id: str, first_name: str, last_name: str, email: str = None,
                contact_number: str = None, qr_code: str = None, status: str = "active",
                course: str = None, year_level: str = None) -> int:
    return _execute(
        "INSERT INTO students (student_id, first_name, last_name, email, contact_number, qr_code, status, course, year_level) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (student_id, first_name, last_name, email, contact_number, qr_code, status, course, year_level)
    )


def add_employee(emp_id: str, first_name: str, last_name: str, email: str = None,
                 contact_number: str = None, qr_code: str = None, status: str = "active",
                 position: str = None, department: str = None) -> int:
    return _execute(
        "INSERT INTO employees (emp_id, first_name, last_name, email, contact_number, qr_code, status, position, department) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (emp_id, first_name, last_name, email, contact_number, qr_code, status, position, department)
    )


def add_user(id_number: str, full_name: str, email: str = None, contact_number: str = None,
             qr_code: str = None, status: str = "active", department: str = None) -> int:
    return _execute(
        "INSERT INTO users (id_number, full_name, email, contact_number, qr_code, status, department) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (id_number, full_name, email, contact_number, qr_code, status, department)
    )


def add_staff(name: str, email: str, role: str = "admin") -> int:
    return _execute("INSERT INTO staff (name, email, role) VALUES (?, ?, ?)", (name, email, role))


def list_staff_emails() -> List[str]:
    """Non-empty staff emails, de-duplicated case-insensitively, in insertion order."""
    rows = _fetch("SELECT email FROM staff WHERE email IS NOT NULL AND TRIM(email) != '' ORDER BY id")
    seen = set()
    emails = []
    for row in rows:
        email = row["email"].strip()
        if email.lower() not in seen:
            seen.add(email.lower())
            emails.append(email)
    return emails


# --- inventory -----------------------------------------------------------

def add_inventory_item(name: str, category: str = None, quantity: int = 1) -> int:
    return _execute(
        "INSERT INTO inventory_items (name, category, quantity) VALUES (?, ?, ?)",
        (name, category, quantity)
    )


# --- borrow transactions -------------------------------------------------

def _loan_from_row(row: sqlite3.Row) -> LoanRecord:
    return LoanRecord(
        id=row["id"],
        transaction_id=row["transaction_id"],
        borrower_type=row["borrower_type"],
        borrower_id=row["borrower_id"],
        borrower_name=row["borrower_name"] or "",
        borrower_email=row["borrower_email"],
        borrower_contact=row["borrower_contact"],
        item_ref=row["inventory_item_id"],
        item_name=row["item_name"],
        quantity=row["quantity"],
        borrow_date=_parse_date(row["borrow_date"]),
        expected_return_date=_parse_date(row["expected_return_date"]),
        status=LoanStatus(row["status"]),
        purpose=row["purpose"],
        overdue_notified_at=_parse_ts(row["overdue_notification_sent_at"]),
        due_today_notified_at=_parse_ts(row["due_today_notification_sent_at"]),
        due_soon_notified_at=_parse_ts(row["due_soon_notification_sent_at"]),
    )


def add_loan(borrower_type: str, borrower_id: int, borrower_name: str, borrower_email: Optional[str],
             inventory_item_id: int, borrow_date: date, expected_return_date: date,
             quantity: int = 1, status: str = "borrowed", purpose: str = None,
             borrower_contact: str = None, transaction_id: str = None) -> int:
    """Insert a borrow transaction; transaction ids default to BRW-<hex>."""
    transaction_id = transaction_id or f"BRW-{uuid.uuid4().hex[:13].upper()}"
    return _execute(
        "INSERT INTO borrow_transactions (transaction_id, borrower_type, borrower_id, borrower_name, "
        "borrower_email, borrower_contact, inventory_item_id, quantity, borrow_date, expected_return_date, "
        "status, purpose) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (transaction_id, borrower_type, borrower_id, borrower_name, borrower_email, borrower_contact,
         inventory_item_id, quantity, borrow_date.isoformat(), expected_return_date.isoformat(),
         status, purpose)
    )


def get_loan(loan_id: int) -> Optional[LoanRecord]:
    row = _fetch_one(
        f"SELECT {LOAN_COLUMNS} FROM borrow_transactions t "
        "LEFT JOIN inventory_items i ON i.id = t.inventory_item_id WHERE t.id = ?",
        (loan_id,)
    )
    return _loan_from_row(row) if row else None


def list_open_loans() -> List[LoanRecord]:
    """Loans still out (borrowed or overdue) - the reminder policy's input."""
    rows = _fetch(
        f"SELECT {LOAN_COLUMNS} FROM borrow_transactions t "
        "LEFT JOIN inventory_items i ON i.id = t.inventory_item_id "
        "WHERE t.status IN (?, ?) ORDER BY t.expected_return_date, t.id",
        (LoanStatus.BORROWED.value, LoanStatus.OVERDUE.value)
    )
    return [_loan_from_row(row) for row in rows]


def list_overdue_loans() -> List[LoanRecord]:
    rows = _fetch(
        f"SELECT {LOAN_COLUMNS} FROM borrow_transactions t "
        "LEFT JOIN inventory_items i ON i.id = t.inventory_item_id "
        "WHERE t.status = ? ORDER BY t.expected_return_date, t.id",
        (LoanStatus.OVERDUE.value,)
    )
    return [_loan_from_row(row) for row in rows]


def list_loans_for_borrower(kind: IdentityKind, internal_id: int,
                            status: LoanStatus = LoanStatus.BORROWED) -> List[LoanRecord]:
    rows = _fetch(
        f"SELECT {LOAN_COLUMNS} FROM borrow_transactions t "
        "LEFT JOIN inventory_items i ON i.id = t.inventory_item_id "
        "WHERE t.borrower_type = ? AND t.borrower_id = ? AND t.status = ? ORDER BY t.id",
        (kind.value, internal_id, status.value)
    )
    return [_loan_from_row(row) for row in rows]


def mark_overdue(loan_ids: Iterable[int]) -> int:
    """Move borrowed loans to overdue. Loans in any other status are left alone."""
    loan_ids = list(loan_ids)
    if not loan_ids:
        return 0
    placeholders = ", ".join("?" for _ in loan_ids)
    return _execute(
        f"UPDATE borrow_transactions SET status = ? WHERE status = ? AND id IN ({placeholders})",
        [LoanStatus.OVERDUE.value, LoanStatus.BORROWED.value] + loan_ids
    )


def set_notified_at(loan_id: int, kind: ReminderKind, when: datetime) -> None:
    _execute(
        f"UPDATE borrow_transactions SET {kind.column} = ? WHERE id = ?",
        (_ts(when), loan_id)
    )


def mark_returned(loan_id: int) -> bool:
    """Close a borrowed or overdue loan. Returns False if the loan was not open."""
    return _execute(
        "UPDATE borrow_transactions SET status = ? WHERE id = ? AND status IN (?, ?)",
        (LoanStatus.RETURNED.value, loan_id, LoanStatus.BORROWED.value, LoanStatus.OVERDUE.value)
    ) > 0


# --- job locks -----------------------------------------------------------

def acquire_job_lock(name: str, holder: str, now: datetime, ttl_sec: int) -> bool:
    """
    Take the named job lock for ``holder``.

    A lock older than ``ttl_sec`` is treated as abandoned and replaced.
    Returns False when another holder has it.
    """
    stale_before = now - timedelta(seconds=ttl_sec)
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM job_locks WHERE name = ? AND acquired_at < ?", (name, _ts(stale_before)))
            try:
                cursor.execute(
                    "INSERT INTO job_locks (name, holder, acquired_at) VALUES (?, ?, ?)",
                    (name, holder, _ts(now))
                )
            except sqlite3.IntegrityError:
                conn.rollback()
                return False
            conn.commit()
            return True
    except sqlite3.Error as e:
        logger.error(f"Record store write failed: {e}")
        raise StoreUnavailable(str(e)) from e


def release_job_lock(name: str, holder: str) -> None:
    _execute("DELETE FROM job_locks WHERE name = ? AND holder = ?", (name, holder))


def get_job_lock(name: str) -> Optional[Dict[str, Any]]:
    row = _fetch_one("SELECT * FROM job_locks WHERE name = ?", (name,))
    if not row:
        return None
    return {"name": row["name"], "holder": row["holder"], "acquired_at": _parse_ts(row["acquired_at"])}


# --- archives ------------------------------------------------------------

def _check_archivable(table: str) -> None:
    if table not in ARCHIVABLE_TABLES:
        raise ValueError(f"Table '{table}' does not support archiving")


def archive_record(table: str, record_id: int, now: datetime, retention_days: int) -> datetime:
    """Archive a record and schedule its permanent deletion. Returns the deletion time."""
    _check_archivable(table)
    auto_delete_at = now + timedelta(days=retention_days)
    updated = _execute(
        f"UPDATE {table} SET archived_at = ?, auto_delete_at = ? WHERE id = ?",
        (_ts(now), _ts(auto_delete_at), record_id)
    )
    if not updated:
        raise ValueError(f"No {table} record with id {record_id}")
    return auto_delete_at


def list_expired_archives(table: str, now: datetime) -> List[Dict[str, Any]]:
    """Archived records whose auto-delete time has passed."""
    _check_archivable(table)
    rows = _fetch(
        f"SELECT * FROM {table} WHERE archived_at IS NOT NULL AND auto_delete_at <= ? ORDER BY id",
        (_ts(now),)
    )
    records = []
    for row in rows:
        record = dict(row)
        if table == "inventory_items":
            record["label"] = row["name"]
        else:
            record["label"] = f"{row['first_name']} {row['last_name']}".strip()
        record["archived_at"] = _parse_ts(row["archived_at"])
        record["auto_delete_at"] = _parse_ts(row["auto_delete_at"])
        records.append(record)
    return records


def delete_record(table: str, record_id: int) -> bool:
    _check_archivable(table)
    return _execute(f"DELETE FROM {table} WHERE id = ?", (record_id,)) > 0


# --- activity log --------------------------------------------------------

def add_activity(action: str, description: str, category: str = None,
                 actor_name: str = "System", metadata: Dict[str, Any] = None) -> int:
    return _execute(
        "INSERT INTO activity_logs (action, description, category, actor_type, actor_name, metadata) "
        "VALUES (?, ?, ?, 'system', ?, ?)",
        (action, description, category, actor_name, json.dumps(metadata or {}, default=str))
    )


def list_activity(action: str = None) -> List[Dict[str, Any]]:
    if action:
        rows = _fetch("SELECT * FROM activity_logs WHERE action = ? ORDER BY id", (action,))
    else:
        rows = _fetch("SELECT * FROM activity_logs ORDER BY id")
    activity = []
    for row in rows:
        entry = dict(row)
        entry["metadata"] = json.loads(row["metadata"]) if row["metadata"] else {}
        activity.append(entry)
    return activity
