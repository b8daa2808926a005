from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

AuditAction = Literal[
    "booking.created",
    "booking.confirmed",
    "booking.cancelled",
    "booking.expired",
    "booking.completed",
]
AuditInitiator = Literal["user", "admin", "system"]

_audit_logger = logging.getLogger("audit")
_audit_logger.setLevel(logging.INFO)
if not _audit_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _audit_logger.addHandler(handler)
_audit_logger.propagate = False


def _enum_to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def emit_audit_log(
    *,
    action: AuditAction,
    initiator: AuditInitiator,
    booking_id: int,
    venue_id: Optional[int],
    shift_template_id: Optional[int],
    shift_date: Optional[str],
    customer_id: Optional[int],
    actor_id: Optional[int],
    guest_count: Optional[int],
    status_from: Optional[Any],
    status_to: Optional[Any],
    reason: Optional[str] = None,
    extra: Optional[dict[str, Any]] = None,
) -> None:
    """Emit one JSON audit line per booking state change. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "initiator": initiator,
        "request_id": get_request_id(),
        "booking_id": booking_id,
        "venue_id": venue_id,
        "shift_template_id": shift_template_id,
        "shift_date": shift_date,
        "customer_id": customer_id,
        "actor_id": actor_id,
        "guest_count": guest_count,
        "status_from": _enum_to_str(status_from),
        "status_to": _enum_to_str(status_to),
        "reason": reason,
    }
    if extra:
        payload.update(extra)

    # Drop None values to keep the log compact.
    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _audit_logger.info(json.dumps(compact_payload, ensure_ascii=True, default=str))
    except Exception as exc:
        raise RuntimeError("failed to emit audit log") from exc
