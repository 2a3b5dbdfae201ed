"""
Scan identity resolution - maps a decoded QR payload to a student, employee or user.

A payload is either a JSON object carrying a ``type`` discriminator and code
fields (``student_id``, ``emp_id``, ``id_number``) or an opaque string that is
matched against the ``qr_code`` column of each identity table. Lookups run in
a fixed order and the first hit wins:

    typed JSON -> student_id -> emp_id -> id_number -> qr_code in
    students -> employees -> users

A malformed payload is not an error; it is treated as an opaque code.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from . import dao
from .schema import Identity, LoanRecord
from ..util.logging import logger


@dataclass
class ScanPayload:
    raw: str
    fields: Dict[str, Any] = field(default_factory=dict)
    structured: bool = False

    @classmethod
    def parse(cls, raw: str) -> "ScanPayload":
        try:
            decoded = json.loads(raw)
        except (TypeError, ValueError):
            return cls(raw=raw)
        if not isinstance(decoded, dict):
            return cls(raw=raw)
        return cls(raw=raw, fields=decoded, structured=True)

    def code(self, name: str) -> Optional[str]:
        """A usable lookup value for ``name``, or None when absent or unusable."""
        value = self.fields.get(name)
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value
        return None


Matcher = Callable[[ScanPayload], Optional[Identity]]


def _match_typed(payload: ScanPayload) -> Optional[Identity]:
    kind = payload.fields.get("type")
    if kind == "student":
        code = payload.code("student_id")
        return dao.find_student_by_code(code) if code else None
    if kind == "employee":
        code = payload.code("emp_id")
        return dao.find_employee_by_code(code) if code else None
    return None


def _match_student_field(payload: ScanPayload) -> Optional[Identity]:
    code = payload.code("student_id")
    return dao.find_student_by_code(code) if code else None


def _match_employee_field(payload: ScanPayload) -> Optional[Identity]:
    code = payload.code("emp_id")
    return dao.find_employee_by_code(code) if code else None


def _match_id_number_field(payload: ScanPayload) -> Optional[Identity]:
    code = payload.code("id_number")
    return dao.find_user_by_id_number(code) if code else None


def _match_student_qr(payload: ScanPayload) -> Optional[Identity]:
    return dao.find_student_by_qr(payload.raw)


def _match_employee_qr(payload: ScanPayload) -> Optional[Identity]:
    return dao.find_employee_by_qr(payload.raw)


def _match_user_qr(payload: ScanPayload) -> Optional[Identity]:
    return dao.find_user_by_qr(payload.raw)


STRUCTURED_MATCHERS: List[Matcher] = [
    _match_typed,
    _match_student_field,
    _match_employee_field,
    _match_id_number_field,
]

# Order is policy: students, then employees, then generic users
OPAQUE_MATCHERS: List[Matcher] = [
    _match_student_qr,
    _match_employee_qr,
    _match_user_qr,
]


def resolve(scan_payload: str) -> Optional[Identity]:
    """
    Resolve a scan payload to an identity.

    Args:
        scan_payload: decoded QR text, JSON or opaque

    Returns:
        Student, Employee or GenericUser on a match, None when nothing matches.

    Raises:
        StoreUnavailable: the record store could not be queried
    """
    payload = ScanPayload.parse(scan_payload)

    matchers = list(OPAQUE_MATCHERS)
    if payload.structured:
        matchers = STRUCTURED_MATCHERS + matchers

    for matcher in matchers:
        identity = matcher(payload)
        if identity is not None:
            logger.log_identity_resolution(scan_payload, "matched", {
                "type": identity.kind.value,
                "internal_id": identity.internal_id,
                "matcher": matcher.__name__.lstrip("_"),
            })
            return identity

    logger.log_identity_resolution(scan_payload, "not_found", {"structured": payload.structured})
    return None


def borrowed_items_for(identity: Identity) -> List[LoanRecord]:
    """Loans the actor currently has out (status borrowed)."""
    return dao.list_loans_for_borrower(identity.kind, identity.internal_id)


def describe(identity: Identity) -> Dict[str, Any]:
    """Uniform profile dict for any identity variant."""
    return identity.to_profile()
