"""
HTTP surface for scan resolution and the borrower reminder policy.
"""

import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .schemas import (
    ScanRequest,
    IdentityResponse,
    LoanResponse,
    BorrowedItemsResponse,
    DueNotificationsResponse,
    NotificationRunResponse,
    HealthResponse,
    HeartbeatStatusResponse,
)
from ..core import heartbeat
from ..core.clock import SystemClock
from ..core.dao import StoreUnavailable, list_open_loans
from ..core.db import health_check, init_db
from ..core.config import VERSION, debug_enabled, is_heartbeat_enabled
from ..core.identity import resolve, borrowed_items_for, describe
from ..core.jobs import register_default_tasks
from ..core.notifications import RunInProgress, compute_due_notifications, run_borrower_notifications


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()

    # Scheduled jobs run inside the API process when the heartbeat is enabled
    worker = None
    if is_heartbeat_enabled():
        register_default_tasks()
        worker = threading.Thread(target=heartbeat.start, name="heartbeat", daemon=True)
        worker.start()

    yield

    if worker is not None:
        heartbeat.stop()
        worker.join(timeout=5)


# Initialize the FastAPI application
app = FastAPI(
    lifespan=lifespan,
    title="Borrowdesk API",
    version=VERSION,
    description="Scan identity resolution and borrower reminders for the inventory borrowing desk",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

# Add CORS middleware to allow the admin dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _store_error(e: StoreUnavailable) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Record store unavailable: {e}")


def _identity_response(identity) -> IdentityResponse:
    profile = describe(identity)
    return IdentityResponse(active=identity.is_active(), **profile)


def _loan_response(loan) -> LoanResponse:
    return LoanResponse(**loan.to_dict())


def _resolve_or_404(payload: str):
    try:
        identity = resolve(payload)
    except StoreUnavailable as e:
        raise _store_error(e)
    if identity is None:
        raise HTTPException(status_code=404, detail="Identity not recognized")
    return identity


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()
    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
    )


@app.post("/identity/resolve", response_model=IdentityResponse)
def resolve_identity(req: ScanRequest):
    """Resolve a scanned QR payload to a student, employee or user."""
    return _identity_response(_resolve_or_404(req.payload))


@app.post("/identity/borrowed", response_model=BorrowedItemsResponse)
def identity_borrowed_items(req: ScanRequest):
    """Resolve a scan and list the items the actor currently has out."""
    identity = _resolve_or_404(req.payload)
    try:
        loans = borrowed_items_for(identity)
    except StoreUnavailable as e:
        raise _store_error(e)
    return BorrowedItemsResponse(
        identity=_identity_response(identity),
        items=[_loan_response(loan) for loan in loans],
    )


@app.get("/notifications/due", response_model=DueNotificationsResponse)
def preview_due_notifications():
    """Reminders the next run would send. Nothing is written."""
    try:
        loans = list_open_loans()
    except StoreUnavailable as e:
        raise _store_error(e)
    due = compute_due_notifications(SystemClock().now(), loans)
    return DueNotificationsResponse(
        overdue=[_loan_response(loan) for loan in due.overdue],
        due_today=[_loan_response(loan) for loan in due.due_today],
        due_soon=[_loan_response(loan) for loan in due.due_soon],
        transitioned=[loan.id for loan in due.transitioned],
    )


@app.post("/notifications/run", response_model=NotificationRunResponse)
def run_notifications(dry_run: bool = True):
    """Run the reminder policy now (dry run by default)."""
    try:
        report = run_borrower_notifications(dry_run=dry_run)
    except RunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreUnavailable as e:
        raise _store_error(e)
    return NotificationRunResponse(**report.to_dict())


@app.get("/heartbeat/status", response_model=HeartbeatStatusResponse)
def heartbeat_status():
    return HeartbeatStatusResponse(**heartbeat.get_status())
