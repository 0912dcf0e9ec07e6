from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .request_id import get_request_id

CapacityAction = Literal[
    "capacity.checked",
    "capacity.rejected",
]

_capacity_logger = logging.getLogger("capacity")
_capacity_logger.setLevel(logging.INFO)
if not _capacity_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    _capacity_logger.addHandler(handler)
_capacity_logger.propagate = False


def _datetime_to_str(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def emit_capacity_log(
    *,
    action: CapacityAction,
    facility_id: str,
    user_id: Optional[str],
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    horse_count: Optional[int],
    max_capacity: Optional[int],
    max_concurrent: Optional[int],
    max_concurrent_time: Optional[datetime],
    exclude_reservation_id: Optional[str] = None,
) -> None:
    """Emit one structured JSON line per capacity decision. Raises RuntimeError if logging fails."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "info",
        "action": action,
        "request_id": get_request_id(),
        "facility_id": facility_id,
        "user_id": user_id,
        "start_time": _datetime_to_str(start_time),
        "end_time": _datetime_to_str(end_time),
        "horse_count": horse_count,
        "max_capacity": max_capacity,
        "max_concurrent": max_concurrent,
        "max_concurrent_time": _datetime_to_str(max_concurrent_time),
        "exclude_reservation_id": exclude_reservation_id,
    }

    compact_payload = {k: v for k, v in payload.items() if v is not None}
    try:
        _capacity_logger.info(json.dumps(compact_payload, ensure_ascii=True))
    except Exception as exc:
        raise RuntimeError("failed to emit capacity log") from exc
