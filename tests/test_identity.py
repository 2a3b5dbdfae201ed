"""
Tests for scan identity resolution: payload parsing, matcher order and the
student -> employee -> user priority.
"""

import json
import sqlite3
from datetime import date
from unittest.mock import patch

import pytest

from borrowdesk.core import dao
from borrowdesk.core.dao import StoreUnavailable
from borrowdesk.core.identity import ScanPayload, borrowed_items_for, describe, resolve
from borrowdesk.core.schema import Employee, GenericUser, IdentityKind, Student


@pytest.fixture
def people():
    """One record in each identity collection."""
    return {
        "student": dao.add_student("2021-00123", "Alice", "Reyes", email="alice@example.edu",
                                   contact_number="0917", qr_code="STU-QR-0001", course="BSIT", year_level="3"),
        "employee": dao.add_employee("EMP-0042", "Ben", "Cruz", email="ben@example.edu",
                                     qr_code="EMP-QR-0042", position="Technician", department="Engineering"),
        "user": dao.add_user("U-9001", "Carla Santos", email="carla@example.edu", qr_code="USR-QR-9001"),
    }


class TestScanPayloadParsing:
    """Test structured vs opaque payload detection."""

    def test_json_object_is_structured(self):
        payload = ScanPayload.parse('{"type": "student", "student_id": "2021-00123"}')
        assert payload.structured
        assert payload.code("student_id") == "2021-00123"

    @pytest.mark.parametrize("raw", ["", "{not valid json", "[1, 2]", "123", "null", "STU-QR-0001"])
    def test_non_object_is_opaque(self, raw):
        payload = ScanPayload.parse(raw)
        assert not payload.structured
        assert payload.raw == raw

    def test_numeric_code_is_stringified(self):
        payload = ScanPayload.parse('{"emp_id": 42}')
        assert payload.code("emp_id") == "42"

    @pytest.mark.parametrize("value", [None, "", "   ", True, [], {}])
    def test_unusable_code_counts_as_absent(self, value):
        payload = ScanPayload.parse(json.dumps({"student_id": value}))
        assert payload.code("student_id") is None


class TestResolveEachVariant:
    """A code present in exactly one collection resolves to that variant."""

    def test_typed_student(self, people):
        identity = resolve('{"type": "student", "student_id": "2021-00123"}')
        assert isinstance(identity, Student)
        assert identity.internal_id == people["student"]
        assert identity.student_code == "2021-00123"
        assert identity.name == "Alice Reyes"

    def test_typed_employee(self, people):
        identity = resolve('{"type": "employee", "emp_id": "EMP-0042"}')
        assert isinstance(identity, Employee)
        assert identity.internal_id == people["employee"]

    def test_untyped_fields(self, people):
        assert isinstance(resolve('{"student_id": "2021-00123"}'), Student)
        assert isinstance(resolve('{"emp_id": "EMP-0042"}'), Employee)
        assert isinstance(resolve('{"id_number": "U-9001"}'), GenericUser)

    def test_opaque_codes(self, people):
        assert isinstance(resolve("STU-QR-0001"), Student)
        assert isinstance(resolve("EMP-QR-0042"), Employee)

        user = resolve("USR-QR-9001")
        assert isinstance(user, GenericUser)
        assert user.id_number == "U-9001"
        assert user.kind == IdentityKind.USER

    def test_unknown_type_uses_field_fallbacks(self, people):
        identity = resolve('{"type": "visitor", "id_number": "U-9001"}')
        assert isinstance(identity, GenericUser)


class TestResolveFallThrough:
    """Misses never fail early; later matchers still run."""

    def test_typed_student_miss_falls_through_to_emp_id(self, people):
        payload = '{"type": "student", "student_id": "NOPE", "emp_id": "EMP-0042"}'
        assert isinstance(resolve(payload), Employee)

    def test_typed_employee_beats_student_field(self, people):
        payload = '{"type": "employee", "emp_id": "EMP-0042", "student_id": "2021-00123"}'
        assert isinstance(resolve(payload), Employee)

    def test_student_field_beats_emp_id_without_type(self, people):
        payload = '{"emp_id": "EMP-0042", "student_id": "2021-00123"}'
        assert isinstance(resolve(payload), Student)

    def test_structured_miss_falls_back_to_whole_string_as_qr(self, people):
        raw = '{"student_id": "NOPE"}'
        dao.add_employee("EMP-0099", "Dana", "Lim", qr_code=raw)

        identity = resolve(raw)
        assert isinstance(identity, Employee)
        assert identity.employee_code == "EMP-0099"

    def test_numeric_json_matches_qr_code(self, people):
        dao.add_user("U-0123", "Eli Tan", qr_code="123")
        assert isinstance(resolve("123"), GenericUser)


class TestResolvePriority:
    """Same code string in several collections: student, then employee, then user."""

    def test_student_wins_over_employee(self):
        dao.add_student("S-1", "Alice", "Reyes", qr_code="SHARED-01")
        dao.add_employee("E-1", "Ben", "Cruz", qr_code="SHARED-01")

        for _ in range(3):
            assert isinstance(resolve("SHARED-01"), Student)

    def test_employee_wins_over_user(self):
        dao.add_employee("E-2", "Ben", "Cruz", qr_code="SHARED-02")
        dao.add_user("U-2", "Carla Santos", qr_code="SHARED-02")

        assert isinstance(resolve("SHARED-02"), Employee)

    def test_student_wins_over_all(self):
        dao.add_user("U-3", "Carla Santos", qr_code="SHARED-03")
        dao.add_employee("E-3", "Ben", "Cruz", qr_code="SHARED-03")
        dao.add_student("S-3", "Alice", "Reyes", qr_code="SHARED-03")

        assert isinstance(resolve("SHARED-03"), Student)


class TestResolveNotFound:

    @pytest.mark.parametrize("raw", ["", "{not valid json", "UNKNOWN-CODE", '{"type": "student"}'])
    def test_returns_none(self, people, raw):
        assert resolve(raw) is None

    def test_store_unavailable_propagates(self, people):
        with patch("borrowdesk.core.dao.get_db", side_effect=sqlite3.OperationalError("database is locked")):
            with pytest.raises(StoreUnavailable):
                resolve("STU-QR-0001")


class TestIdentityHelpers:

    def test_profile_shape(self, people):
        profile = describe(resolve("STU-QR-0001"))
        assert profile["type"] == "Student"
        assert profile["full_name"] == "Alice Reyes"
        assert profile["id_number"] == "2021-00123"
        assert profile["department"] == "Student"
        assert profile["course"] == "BSIT"

        employee_profile = describe(resolve("EMP-QR-0042"))
        assert employee_profile["department"] == "Engineering"
        assert employee_profile["position"] == "Technician"

    @pytest.mark.parametrize("status,expected", [
        ("active", True), ("approved", True), ("Active", True), ("", True), ("inactive", False),
    ])
    def test_is_active(self, status, expected):
        assert Student(internal_id=1, name="A", status=status).is_active() is expected

    def test_borrowed_items_for(self, people, item_id):
        dao.add_loan("student", people["student"], "Alice Reyes", "alice@example.edu", item_id,
                     date(2026, 3, 1), date(2026, 3, 12))
        dao.add_loan("student", people["student"], "Alice Reyes", "alice@example.edu", item_id,
                     date(2026, 2, 1), date(2026, 2, 5), status="returned")
        dao.add_loan("employee", people["employee"], "Ben Cruz", "ben@example.edu", item_id,
                     date(2026, 3, 1), date(2026, 3, 12))

        loans = borrowed_items_for(resolve("STU-QR-0001"))
        assert len(loans) == 1
        assert loans[0].borrower_type == "student"
        assert loans[0].item_name == "Epson Projector"
