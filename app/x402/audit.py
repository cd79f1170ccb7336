# app/x402/audit.py
"""
JSON-lines audit trail of payment gate decisions.

One line per event, keyed by a short request id so the middleware's
decision and the route's 404 can be joined later. Invalid payments and
facilitator outages share a 402 on the wire but not an event type here.

X402_AUDIT_LOG_PATH unset disables the trail. A failed write is logged
and never changes the response.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    REQUEST_RECEIVED = "request_received"
    CLIENT_INPUT_REJECTED = "client_input_rejected"
    PAYMENT_REQUIRED_SENT = "payment_required_sent"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"
    VERIFICATION_FAILED = "verification_failed"
    UPSTREAM_ERROR = "upstream_error"
    CONTENT_NOT_FOUND = "content_not_found"


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def record_event(
    log_path: Optional[str],
    event_type: AuditEventType,
    request_id: str,
    client_ip: Optional[str] = None,
    **data
) -> bool:
    """
    Append one gate event to the trail.

    Args:
        log_path: Trail file, or None when auditing is off
        event_type: What the gate decided
        request_id: Id shared by every event of one request
        client_ip: Caller address, if known
        **data: Event details (reason, status_code, amount, ...)

    Returns:
        True if the line was written
    """
    if not log_path:
        return False

    line = json.dumps({
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type.value,
        "request_id": request_id,
        "client_ip": client_ip,
        "data": data,
    })

    path = Path(log_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a") as f:
            f.write(line + "\n")
    except OSError as e:
        logger.error(f"Failed to write audit event {event_type.value} [{request_id}]: {e}")
        return False

    return True


async def record_event_async(
    log_path: Optional[str],
    event_type: AuditEventType,
    request_id: str,
    client_ip: Optional[str] = None,
    **data
) -> bool:
    """record_event() on a worker thread, for use inside request handlers."""
    if not log_path:
        return False
    return await run_in_threadpool(
        record_event, log_path, event_type, request_id, client_ip, **data
    )
