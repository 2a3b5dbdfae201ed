"""
Shared fixtures: a throwaway SQLite database per test and a fixed clock.
"""

from datetime import date, datetime

import pytest

from borrowdesk.core import dao
from borrowdesk.core.clock import FixedClock
from borrowdesk.core.db import init_db
from borrowdesk.core.schema import LoanRecord, LoanStatus

NOW = datetime(2026, 3, 10, 10, 0, 0)
TODAY = NOW.date()


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    """Point the record store at a fresh database file."""
    db_file = tmp_path / "borrowdesk-test.db"
    monkeypatch.setenv("DB_PATH", str(db_file))
    init_db()
    return db_file


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def item_id():
    return dao.add_inventory_item("Epson Projector", "Electronics", 5)


def make_loan(loan_id: int = 1, expected: date = TODAY, status: LoanStatus = LoanStatus.BORROWED,
              email: str = "borrower@example.edu", **overrides) -> LoanRecord:
    """In-memory loan for policy tests."""
    fields = dict(
        id=loan_id,
        transaction_id=f"BRW-{loan_id:04d}",
        borrower_type="student",
        borrower_id=1,
        borrower_name="Alice Reyes",
        borrower_email=email,
        item_ref=1,
        item_name="Epson Projector",
        quantity=1,
        borrow_date=date(2026, 3, 1),
        expected_return_date=expected,
        status=status,
    )
    fields.update(overrides)
    return LoanRecord(**fields)
