"""
Archive lifecycle for inventory items, students and employees.

Archiving stamps ``archived_at`` and schedules ``auto_delete_at`` a retention
period later; the sweep permanently deletes records whose time has come and
writes an activity log row for each.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from . import dao
from .clock import SystemClock
from .config import get_archive_retention_days
from ..util.logging import logger

CATEGORY_BY_TABLE = {
    "inventory_items": "inventory",
    "students": "students",
    "employees": "employees",
}


@dataclass
class ArchiveSweepReport:
    started_at: datetime
    completed_at: Optional[datetime] = None
    dry_run: bool = False
    found: Dict[str, int] = field(default_factory=dict)
    deleted: Dict[str, int] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def total_found(self) -> int:
        return sum(self.found.values())

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "started_at": self.started_at.isoformat(),
            "dry_run": self.dry_run,
            "found": self.found,
            "deleted": self.deleted,
            "errors": self.errors,
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


def archive(table: str, record_id: int, clock=None, retention_days: int = None) -> datetime:
    """Archive one record; returns when it will be auto-deleted."""
    clock = clock or SystemClock()
    if retention_days is None:
        retention_days = get_archive_retention_days()
    auto_delete_at = dao.archive_record(table, record_id, clock.now(), retention_days)
    logger.log_operation("archive.record", "archived", {
        "table": table, "record_id": record_id, "auto_delete_at": auto_delete_at.isoformat()
    })
    return auto_delete_at


def auto_delete_archived(clock=None, dry_run: bool = False) -> ArchiveSweepReport:
    """Permanently delete archived records whose auto-delete time has passed."""
    clock = clock or SystemClock()
    now = clock.now()
    report = ArchiveSweepReport(started_at=now, dry_run=dry_run)

    expired = {table: dao.list_expired_archives(table, now) for table in dao.ARCHIVABLE_TABLES}
    report.found = {table: len(records) for table, records in expired.items()}
    report.deleted = {table: 0 for table in expired}

    if report.total_found == 0:
        logger.log_operation("archive.auto_delete", "idle", {"message": "No archived records ready for auto-deletion"})
        report.completed_at = clock.now()
        return report

    for table, records in expired.items():
        for record in records:
            if dry_run:
                logger.log_record_deletion(table, record["id"], "dry_run", {"label": record["label"]})
                continue
            try:
                dao.delete_record(table, record["id"])
                dao.add_activity(
                    action=f"{table.rstrip('s')}_permanently_deleted",
                    description=f"Archived record permanently deleted: {record['label']} - auto-deleted after retention period",
                    category=CATEGORY_BY_TABLE[table],
                    actor_name="Auto-Delete System",
                    metadata={
                        "record_id": record["id"],
                        "label": record["label"],
                        "archived_at": record["archived_at"],
                        "auto_delete_at": record["auto_delete_at"],
                        "permanently_deleted_at": now,
                    },
                )
                report.deleted[table] += 1
                logger.log_record_deletion(table, record["id"], "deleted", {"label": record["label"]})
            except dao.StoreUnavailable as e:
                report.errors.append(f"Failed to delete {table} id {record['id']}: {e}")
                logger.log_record_deletion(table, record["id"], "failed", {"error": str(e)})

    report.completed_at = clock.now()
    return report
