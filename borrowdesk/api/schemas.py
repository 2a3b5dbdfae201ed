"""
Request and response models for the scan and reminder endpoints.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import date


class ScanRequest(BaseModel):
    payload: str

    @field_validator('payload')
    @classmethod
    def payload_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError('payload cannot be empty')
        return v


class IdentityResponse(BaseModel):
    id: int
    type: str
    status: str
    active: bool
    full_name: str
    id_number: str
    email: str
    contact_number: str
    department: Optional[str] = None
    course: Optional[str] = None
    year_level: Optional[str] = None
    position: Optional[str] = None


class LoanResponse(BaseModel):
    id: int
    transaction_id: str
    borrower_type: str
    borrower_id: int
    borrower_name: str
    borrower_email: Optional[str] = None
    item_ref: int
    item_name: Optional[str] = None
    quantity: int
    borrow_date: date
    expected_return_date: date
    status: str
    purpose: Optional[str] = None


class BorrowedItemsResponse(BaseModel):
    identity: IdentityResponse
    items: List[LoanResponse]


class DueNotificationsResponse(BaseModel):
    overdue: List[LoanResponse]
    due_today: List[LoanResponse]
    due_soon: List[LoanResponse]
    transitioned: List[int]


class NotificationRunResponse(BaseModel):
    started_at: str
    completed_at: Optional[str] = None
    dry_run: bool
    selected: Dict[str, int]
    sent: Dict[str, int]
    failed: int
    failures: List[Dict[str, Any]]
    transitioned: List[int]


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool


class HeartbeatStatusResponse(BaseModel):
    status: str
    reason: Optional[str] = None
    tasks: Dict[str, Dict[str, Any]] = {}
