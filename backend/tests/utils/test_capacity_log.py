import json
from datetime import datetime
from typing import Any, List

import pytest
from equiduty.utils import capacity_log
from equiduty.utils.request_id import set_request_id


def test_emit_capacity_log_outputs_json(monkeypatch: pytest.MonkeyPatch) -> None:
    messages: List[str] = []

    class DummyLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    monkeypatch.setattr(capacity_log, "_capacity_logger", DummyLogger())

    set_request_id("req-123")
    try:
        capacity_log.emit_capacity_log(
            action="capacity.rejected",
            facility_id="arena",
            user_id="uid-1",
            start_time=datetime(2026, 3, 2, 9, 30),
            end_time=datetime(2026, 3, 2, 10, 30),
            horse_count=2,
            max_capacity=4,
            max_concurrent=5,
            max_concurrent_time=datetime(2026, 3, 2, 10),
        )
    finally:
        set_request_id(None)

    assert len(messages) == 1
    payload = json.loads(messages[0])
    assert payload["action"] == "capacity.rejected"
    assert payload["request_id"] == "req-123"
    assert payload["facility_id"] == "arena"
    assert payload["max_concurrent"] == 5
    assert payload["max_concurrent_time"] == "2026-03-02T10:00:00+00:00"
    assert set(payload) == {
        "timestamp",
        "level",
        "action",
        "request_id",
        "facility_id",
        "user_id",
        "start_time",
        "end_time",
        "horse_count",
        "max_capacity",
        "max_concurrent",
        "max_concurrent_time",
    }


def test_emit_capacity_log_raises_on_logger_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    class DummyLogger:
        def info(self, _: Any) -> None:
            raise ValueError("fail")

    monkeypatch.setattr(capacity_log, "_capacity_logger", DummyLogger())

    with pytest.raises(RuntimeError):
        capacity_log.emit_capacity_log(
            action="capacity.checked",
            facility_id="arena",
            user_id="uid-1",
            start_time=None,
            end_time=None,
            horse_count=1,
            max_capacity=2,
            max_concurrent=1,
            max_concurrent_time=None,
        )
