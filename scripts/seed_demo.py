#!/usr/bin/env python3
"""
Seed a demo database with borrowers, staff, items and loans at every reminder
stage (overdue, due today, due tomorrow, not yet due).
"""

from datetime import timedelta

from borrowdesk.core import dao
from borrowdesk.core.clock import SystemClock
from borrowdesk.core.db import init_db


def seed_demo_data(clock=None) -> None:
    clock = clock or SystemClock()
    today = clock.today()

    init_db()

    # borrowers
    alice = dao.add_student("2021-00123", "Alice", "Reyes", email="alice@example.edu",
                            qr_code="STU-QR-0001", course="BSIT", year_level="3")
    ben = dao.add_employee("EMP-0042", "Ben", "Cruz", email="ben@example.edu",
                           qr_code="EMP-QR-0042", position="Lab Technician", department="Engineering")
    carla = dao.add_user("U-9001", "Carla Santos", email="carla@example.edu", qr_code="USR-QR-9001")

    # staff receiving the overdue digest
    dao.add_staff("Ava Admin", "admin@example.edu")
    dao.add_staff("Sam Super", "superadmin@example.edu", role="super_admin")

    # items
    projector = dao.add_inventory_item("Epson Projector", "Electronics", 4)
    laptop = dao.add_inventory_item("Dell Latitude Laptop", "Computers", 10)
    tripod = dao.add_inventory_item("Camera Tripod", "Media", 6)

    # loans
    dao.add_loan("student", alice, "Alice Reyes", "alice@example.edu", projector,
                 today - timedelta(days=7), today - timedelta(days=3), purpose="Thesis defense")
    dao.add_loan("employee", ben, "Ben Cruz", "ben@example.edu", laptop,
                 today - timedelta(days=5), today, quantity=2, purpose="Workshop")
    dao.add_loan("user", carla, "Carla Santos", "carla@example.edu", tripod,
                 today - timedelta(days=2), today + timedelta(days=1), purpose="Event coverage")
    dao.add_loan("student", alice, "Alice Reyes", "alice@example.edu", tripod,
                 today, today + timedelta(days=7), purpose="Video project")

    print("[seed] borrowers: Alice Reyes (student), Ben Cruz (employee), Carla Santos (user)")
    print("[seed] open loans:", [loan.transaction_id for loan in dao.list_open_loans()])


if __name__ == "__main__":
    seed_demo_data()
