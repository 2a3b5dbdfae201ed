"""
Domain records: scanned identities and borrow transactions.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

ACTIVE_STATUSES = ("active", "approved")


class IdentityKind(str, Enum):
    STUDENT = "student"
    EMPLOYEE = "employee"
    USER = "user"


class LoanStatus(str, Enum):
    PENDING = "pending"
    BORROWED = "borrowed"
    OVERDUE = "overdue"
    RETURNED = "returned"
    REJECTED = "rejected"


class ReminderKind(str, Enum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"

    @property
    def attribute(self) -> str:
        """LoanRecord attribute holding the last dispatch time."""
        return f"{self.value}_notified_at"

    @property
    def column(self) -> str:
        """borrow_transactions column holding the last dispatch time."""
        return f"{self.value}_notification_sent_at"


@dataclass
class _IdentityBase:
    internal_id: int
    name: str
    email: str = ""
    contact: str = ""
    status: str = "active"

    def is_active(self) -> bool:
        return (self.status or "active").lower() in ACTIVE_STATUSES

    def _base_profile(self) -> Dict[str, Any]:
        return {
            "id": self.internal_id,
            "type": self.kind.value.capitalize(),
            "status": self.status or "active",
            "full_name": self.name,
            "id_number": self.code,
            "email": self.email or "",
            "contact_number": self.contact or "",
        }


@dataclass
class Student(_IdentityBase):
    student_code: str = ""
    course: str = ""
    year_level: str = ""

    @property
    def kind(self) -> IdentityKind:
        return IdentityKind.STUDENT

    @property
    def code(self) -> str:
        return self.student_code

    def to_profile(self) -> Dict[str, Any]:
        profile = self._base_profile()
        profile.update({"course": self.course, "year_level": self.year_level, "department": "Student"})
        return profile


@dataclass
class Employee(_IdentityBase):
    employee_code: str = ""
    position: str = ""
    department: str = ""

    @property
    def kind(self) -> IdentityKind:
        return IdentityKind.EMPLOYEE

    @property
    def code(self) -> str:
        return self.employee_code

    def to_profile(self) -> Dict[str, Any]:
        profile = self._base_profile()
        profile.update({"position": self.position, "department": self.department})
        return profile


@dataclass
class GenericUser(_IdentityBase):
    id_number: str = ""
    department: str = ""

    @property
    def kind(self) -> IdentityKind:
        return IdentityKind.USER

    @property
    def code(self) -> str:
        return self.id_number

    def to_profile(self) -> Dict[str, Any]:
        profile = self._base_profile()
        profile["department"] = self.department
        return profile


Identity = Union[Student, Employee, GenericUser]


@dataclass
class LoanRecord:
    """A borrow transaction with due date and reminder bookkeeping."""
    id: int
    borrower_type: str
    borrower_id: int
    borrower_name: str
    borrower_email: Optional[str]
    item_ref: int
    quantity: int
    borrow_date: date
    expected_return_date: date
    status: LoanStatus = LoanStatus.BORROWED
    transaction_id: str = ""
    borrower_contact: Optional[str] = None
    item_name: Optional[str] = None
    purpose: Optional[str] = None
    overdue_notified_at: Optional[datetime] = None
    due_today_notified_at: Optional[datetime] = None
    due_soon_notified_at: Optional[datetime] = None

    def has_email(self) -> bool:
        return bool(self.borrower_email and self.borrower_email.strip())

    def days_overdue(self, today: date) -> int:
        if today <= self.expected_return_date:
            return 0
        return (today - self.expected_return_date).days

    def notified_at(self, kind: ReminderKind) -> Optional[datetime]:
        return getattr(self, kind.attribute)

    def set_notified_at(self, kind: ReminderKind, when: datetime) -> None:
        setattr(self, kind.attribute, when)

    def to_template_data(self, today: date) -> Dict[str, Any]:
        """Fields rendered into borrower reminder emails."""
        return {
            "transaction_id": self.transaction_id,
            "borrower_name": self.borrower_name,
            "item_name": self.item_name or "N/A",
            "quantity": self.quantity,
            "borrow_date": self.borrow_date.strftime("%B %d, %Y"),
            "expected_return_date": self.expected_return_date.strftime("%B %d, %Y"),
            "days_overdue": self.days_overdue(today),
            "purpose": self.purpose or "N/A",
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "borrower_type": self.borrower_type,
            "borrower_id": self.borrower_id,
            "borrower_name": self.borrower_name,
            "borrower_email": self.borrower_email,
            "item_ref": self.item_ref,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "borrow_date": self.borrow_date.isoformat(),
            "expected_return_date": self.expected_return_date.isoformat(),
            "status": self.status.value,
            "purpose": self.purpose,
        }
