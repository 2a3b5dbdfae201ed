"""
Structured logging for scan resolution, borrower reminders and scheduled jobs.
"""

import json
import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['password', 'secret', 'token', 'contact', 'contact_number', 'email', 'phone']


class StructuredLogger:
    """Structured logger for identity, notification and heartbeat operations."""

    def __init__(self, name: str = "borrowdesk"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_identity_resolution(self, scan_payload: str, status: str, details: Dict[str, Any] = None):
        """Log a scan resolution attempt (status: matched|not_found)."""
        log_details = {"payload": sanitize_scan_payload(scan_payload)}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "matched" else logging.WARNING
        self.log_operation("identity.resolve", status, log_details, level=level)

    def log_notification(self, kind: str, loan_id: Any, recipient: str, status: str = "sent", details: Dict[str, Any] = None):
        """Log a single reminder dispatch (status: sent|failed|dry_run)."""
        log_details = {"loan_id": loan_id, "recipient": recipient}
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"notification.{kind}", status, log_details, level=level)

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation(f"heartbeat.{task_name}", status, log_details, level=level)

    def log_record_deletion(self, table: str, record_id: Any, status: str = "deleted", details: Dict[str, Any] = None):
        """Log permanent deletion of an archived record."""
        log_details = {"table": table, "record_id": record_id}
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation("archive.auto_delete", status, log_details, level=level)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload


def sanitize_scan_payload(scan_payload: str) -> Any:
    """Redact a raw scan, decoding JSON badges so their fields can be masked."""
    try:
        decoded = json.loads(scan_payload)
    except (TypeError, ValueError):
        return sanitize_payload(scan_payload)

    if isinstance(decoded, dict):
        return sanitize_payload(decoded)
    return sanitize_payload(scan_payload)
