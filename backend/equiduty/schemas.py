from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_serializer

from .config import get_settings
from .domain.capacity import CapacityDecision, CapacityUsage, ReservationSnapshot
from .utils.time import utc_naive_to_local


def _display_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().display_timezone)


def _to_display(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return utc_naive_to_local(dt, _display_tz())


class CapacityCheck(BaseModel):
    start_time: datetime
    end_time: datetime
    horse_ids: Optional[List[str]] = None
    horse_id: Optional[str] = None
    exclude_reservation_id: Optional[str] = Field(default=None, min_length=1)


class CapacityDecisionRead(BaseModel):
    valid: bool
    max_concurrent: int
    max_concurrent_time: Optional[datetime]
    max_capacity: int
    horse_count: int
    message: Optional[str] = None

    @field_serializer("max_concurrent_time")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return dt.isoformat() if dt is not None else None

    @classmethod
    def from_decision(cls, *, decision: CapacityDecision, max_capacity: int, horse_count: int) -> "CapacityDecisionRead":
        return cls(
            valid=decision.valid,
            max_concurrent=decision.max_concurrent,
            max_concurrent_time=_to_display(decision.max_concurrent_time),
            max_capacity=max_capacity,
            horse_count=horse_count,
            message=decision.message,
        )


class CapacityUsageRead(BaseModel):
    facility_id: str
    start_time: datetime
    end_time: datetime
    horse_count: int
    reservation_ids: List[str]

    @field_serializer("start_time", "end_time")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.isoformat()

    @classmethod
    def from_usage(cls, *, facility_id: str, start_time: datetime, end_time: datetime, usage: CapacityUsage) -> "CapacityUsageRead":
        return cls(
            facility_id=facility_id,
            start_time=_to_display(start_time),
            end_time=_to_display(end_time),
            horse_count=usage.horse_count,
            reservation_ids=list(usage.reservation_ids),
        )


class ConflictCheck(BaseModel):
    start_time: datetime
    end_time: datetime
    exclude_reservation_id: Optional[str] = Field(default=None, min_length=1)


class ConflictRead(BaseModel):
    reservation_id: str
    start_time: datetime
    end_time: datetime
    horse_count: int

    @field_serializer("start_time", "end_time")
    def _ser_datetime(self, dt: datetime) -> str:
        return dt.isoformat()

    @classmethod
    def from_snapshot(cls, snapshot: ReservationSnapshot) -> "ConflictRead":
        return cls(
            reservation_id=snapshot.id,
            start_time=_to_display(snapshot.start_time),
            end_time=_to_display(snapshot.end_time),
            horse_count=snapshot.horse_count,
        )


class ConflictList(BaseModel):
    conflicts: List[ConflictRead]
    has_conflicts: bool
