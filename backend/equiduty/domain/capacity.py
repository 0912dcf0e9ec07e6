from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from ..utils.time import utc_naive_to_local


class EventKind(IntEnum):
    # Ordinal is the tie-break: at equal timestamps START sorts before END.
    START = 0
    END = 1


@dataclass(frozen=True)
class ReservationSnapshot:
    id: str
    start_time: datetime
    end_time: datetime
    horse_count: int


@dataclass(frozen=True)
class CandidateReservation:
    start_time: datetime
    end_time: datetime
    horse_count: int


@dataclass(frozen=True)
class TimelineEvent:
    time: datetime
    kind: EventKind
    horses: int
    reservation_id: Optional[str] = None


@dataclass(frozen=True)
class CapacityDecision:
    valid: bool
    max_concurrent: int
    max_concurrent_time: Optional[datetime]
    message: Optional[str] = None


@dataclass(frozen=True)
class CapacityUsage:
    horse_count: int
    reservation_ids: list[str]


def horse_count(horse_ids: Optional[Sequence[str]], horse_id: Optional[str]) -> int:
    """Number of horses on a reservation, for both the list and the legacy single-horse shape."""
    if horse_ids:
        return len(horse_ids)
    return 1 if horse_id else 0


def build_timeline(
    reservations: Iterable[ReservationSnapshot],
    candidate: CandidateReservation,
) -> list[TimelineEvent]:
    events: list[TimelineEvent] = []
    for reservation in reservations:
        if reservation.horse_count <= 0:
            continue
        events.append(TimelineEvent(reservation.start_time, EventKind.START, reservation.horse_count, reservation.id))
        events.append(TimelineEvent(reservation.end_time, EventKind.END, reservation.horse_count, reservation.id))

    # The candidate is always swept, even with zero horses.
    events.append(TimelineEvent(candidate.start_time, EventKind.START, candidate.horse_count))
    events.append(TimelineEvent(candidate.end_time, EventKind.END, candidate.horse_count))

    events.sort(key=lambda event: (event.time, event.kind))
    return events


def sweep_peak(events: Iterable[TimelineEvent]) -> tuple[int, Optional[datetime]]:
    """Return the peak concurrent horse count and the instant it was first reached."""
    current = 0
    peak = 0
    peak_time: Optional[datetime] = None
    for event in events:
        if event.kind is EventKind.START:
            current += event.horses
            if current > peak:
                peak = current
                peak_time = event.time
        else:
            current -= event.horses
    return peak, peak_time


def decide_capacity(
    reservations: Iterable[ReservationSnapshot],
    candidate: CandidateReservation,
    *,
    max_capacity: int,
    tz: ZoneInfo,
) -> CapacityDecision:
    """
    Pure decision: sweeps existing reservations plus the candidate and compares
    the peak concurrent occupancy with max_capacity. Never raises for a full facility.
    """
    if max_capacity < 1:
        raise ValueError("max_capacity must be >= 1")
    peak, peak_time = sweep_peak(build_timeline(reservations, candidate))
    if peak <= max_capacity:
        return CapacityDecision(valid=True, max_concurrent=peak, max_concurrent_time=peak_time)

    local = utc_naive_to_local(peak_time, tz)  # type: ignore[arg-type]
    message = (
        f"Facility capacity exceeded at {local:%H:%M}: "
        f"{peak} horses would be present, maximum is {max_capacity}"
    )
    return CapacityDecision(valid=False, max_concurrent=peak, max_concurrent_time=peak_time, message=message)


def overlapping(
    reservations: Iterable[ReservationSnapshot],
    start: datetime,
    end: datetime,
) -> list[ReservationSnapshot]:
    # Touching boundaries (end == start) are not conflicts here.
    return [r for r in reservations if start < r.end_time and end > r.start_time]
