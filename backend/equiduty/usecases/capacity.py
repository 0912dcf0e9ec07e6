import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from ..config import get_settings
from ..domain.capacity import (
    CandidateReservation,
    CapacityDecision,
    CapacityUsage,
    ReservationSnapshot,
    decide_capacity,
    horse_count,
    overlapping,
)
from ..domain.errors import (
    CapacityCheckError,
    FacilityNotFoundError,
    HorsesRequiredError,
    InvalidTimeRangeError,
    TooManyHorsesError,
)
from ..domain.repositories import FacilityRepository, FacilityReservationRepository, ReservationRecord
from ..models import Facility
from ..utils.time import day_window, to_instant

logger = logging.getLogger(__name__)


def to_snapshot(record: ReservationRecord) -> ReservationSnapshot:
    return ReservationSnapshot(
        id=str(record.id),
        start_time=to_instant(record.start_time),
        end_time=to_instant(record.end_time),
        horse_count=horse_count(getattr(record, "horse_ids", None), getattr(record, "horse_id", None)),
    )


def _snapshots(records: Iterable[ReservationRecord], exclude_reservation_id: Optional[str]) -> list[ReservationSnapshot]:
    return [to_snapshot(r) for r in records if exclude_reservation_id is None or str(r.id) != exclude_reservation_id]


async def require_facility(facility_repo: FacilityRepository, facility_id: str) -> Facility:
    facility = await facility_repo.get(facility_id)
    if facility is None:
        raise FacilityNotFoundError("facility not found")
    return facility


async def validate_capacity(
    res_repo: FacilityReservationRepository,
    *,
    facility_id: str,
    candidate: CandidateReservation,
    max_capacity: int,
    exclude_reservation_id: Optional[str] = None,
    tz: Optional[ZoneInfo] = None,
) -> CapacityDecision:
    if candidate.start_time >= candidate.end_time:
        raise InvalidTimeRangeError("start_time must be earlier than end_time")
    if max_capacity < 1:
        raise ValueError("max_capacity must be >= 1")

    window_start, window_end = day_window(candidate.start_time, candidate.end_time)
    try:
        records = await res_repo.list_active_overlapping(facility_id, window_start, window_end)
        existing = _snapshots(records, exclude_reservation_id)
        return decide_capacity(
            existing,
            candidate,
            max_capacity=max_capacity,
            tz=tz or ZoneInfo(get_settings().display_timezone),
        )
    except Exception as exc:
        logger.exception("capacity validation failed for facility %s", facility_id)
        raise CapacityCheckError("failed to validate capacity") from exc


async def get_current_usage(
    res_repo: FacilityReservationRepository,
    *,
    facility_id: str,
    start_time: datetime,
    end_time: datetime,
) -> CapacityUsage:
    """Total horse demand touching the window. Not a point-in-time peak."""
    try:
        records = await res_repo.list_active_overlapping(facility_id, start_time, end_time)
        snapshots = overlapping(_snapshots(records, None), start_time, end_time)
    except Exception as exc:
        logger.exception("capacity usage failed for facility %s", facility_id)
        raise CapacityCheckError("failed to compute capacity usage") from exc
    return CapacityUsage(
        horse_count=sum(s.horse_count for s in snapshots),
        reservation_ids=[s.id for s in snapshots],
    )


async def find_conflicts(
    res_repo: FacilityReservationRepository,
    *,
    facility_id: str,
    start_time: datetime,
    end_time: datetime,
    exclude_reservation_id: Optional[str] = None,
) -> list[ReservationSnapshot]:
    if start_time >= end_time:
        raise InvalidTimeRangeError("start_time must be earlier than end_time")
    try:
        records = await res_repo.list_active_overlapping(facility_id, start_time, end_time)
        snapshots = _snapshots(records, exclude_reservation_id)
    except Exception as exc:
        logger.exception("conflict lookup failed for facility %s", facility_id)
        raise CapacityCheckError("failed to check conflicts") from exc
    return overlapping(snapshots, start_time, end_time)


async def check_facility_capacity(
    facility_repo: FacilityRepository,
    res_repo: FacilityReservationRepository,
    *,
    facility_id: str,
    start_time: datetime,
    end_time: datetime,
    horse_ids: Optional[Sequence[str]],
    horse_id: Optional[str],
    exclude_reservation_id: Optional[str] = None,
) -> tuple[CapacityDecision, int, int]:
    """Validate a requested reservation against its facility.

    Returns the decision together with the horse count and facility limit used.
    """
    facility = await require_facility(facility_repo, facility_id)

    count = horse_count(horse_ids, horse_id)
    if count == 0:
        raise HorsesRequiredError("at least one horse must be selected for the reservation")
    limit = facility.max_horses_per_reservation
    if count > limit:
        raise TooManyHorsesError(f"too many horses selected, maximum {limit} allowed per reservation")

    decision = await validate_capacity(
        res_repo,
        facility_id=facility_id,
        candidate=CandidateReservation(start_time=start_time, end_time=end_time, horse_count=count),
        max_capacity=limit,
        exclude_reservation_id=exclude_reservation_id,
    )
    return decision, count, limit
