"""
Archive lifecycle and auto-delete sweep.
"""

from datetime import datetime
from unittest.mock import patch

from borrowdesk.core import dao
from borrowdesk.core.archive import archive, auto_delete_archived
from borrowdesk.core.dao import StoreUnavailable


def test_archive_uses_retention_period(clock, item_id):
    auto_delete_at = archive("inventory_items", item_id, clock=clock, retention_days=7)
    assert auto_delete_at == datetime(2026, 3, 17, 10, 0, 0)


def test_archive_defaults_to_configured_retention(clock, item_id):
    auto_delete_at = archive("inventory_items", item_id, clock=clock)
    assert (auto_delete_at - clock.now()).days == 30


def test_archive_with_zero_retention_expires_immediately(clock, item_id):
    auto_delete_at = archive("inventory_items", item_id, clock=clock, retention_days=0)

    assert auto_delete_at == clock.now()
    report = auto_delete_archived(clock=clock)
    assert report.total_deleted == 1


def test_sweep_before_retention_deletes_nothing(clock, item_id):
    archive("inventory_items", item_id, clock=clock, retention_days=30)
    clock.advance(days=29)

    report = auto_delete_archived(clock=clock)

    assert report.total_found == 0
    assert report.total_deleted == 0
    assert dao.list_expired_archives("inventory_items", clock.now()) == []


def test_sweep_deletes_expired_and_logs_activity(clock, item_id):
    student_id = dao.add_student("S-1", "Alice", "Reyes")
    employee_id = dao.add_employee("E-1", "Ben", "Cruz")
    kept_id = dao.add_student("S-2", "Dana", "Lim")

    archive("inventory_items", item_id, clock=clock, retention_days=30)
    archive("students", student_id, clock=clock, retention_days=30)
    archive("employees", employee_id, clock=clock, retention_days=30)
    clock.advance(days=30)

    report = auto_delete_archived(clock=clock)

    assert report.found == {"inventory_items": 1, "students": 1, "employees": 1}
    assert report.total_deleted == 3
    assert report.errors == []
    assert dao.find_student_by_code("S-1") is None
    assert dao.find_student_by_code("S-2").internal_id == kept_id

    entries = dao.list_activity("student_permanently_deleted")
    assert len(entries) == 1
    assert entries[0]["actor_name"] == "Auto-Delete System"
    assert entries[0]["category"] == "students"
    assert entries[0]["metadata"]["label"] == "Alice Reyes"
    assert len(dao.list_activity("inventory_item_permanently_deleted")) == 1
    assert len(dao.list_activity("employee_permanently_deleted")) == 1


def test_sweep_dry_run_keeps_records(clock, item_id):
    archive("inventory_items", item_id, clock=clock, retention_days=1)
    clock.advance(days=2)

    report = auto_delete_archived(clock=clock, dry_run=True)

    assert report.total_found == 1
    assert report.total_deleted == 0
    assert len(dao.list_expired_archives("inventory_items", clock.now())) == 1
    assert dao.list_activity() == []


def test_sweep_continues_after_failed_delete(clock):
    first = dao.add_student("S-1", "Alice", "Reyes")
    second = dao.add_student("S-2", "Dana", "Lim")
    archive("students", first, clock=clock, retention_days=1)
    archive("students", second, clock=clock, retention_days=1)
    clock.advance(days=1)

    real_delete = dao.delete_record

    def flaky_delete(table, record_id):
        if record_id == first:
            raise StoreUnavailable("database is locked")
        return real_delete(table, record_id)

    with patch("borrowdesk.core.archive.dao.delete_record", side_effect=flaky_delete):
        report = auto_delete_archived(clock=clock)

    assert report.deleted["students"] == 1
    assert len(report.errors) == 1
    assert "database is locked" in report.errors[0]
    assert dao.find_student_by_code("S-1") is not None
