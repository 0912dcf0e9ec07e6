import random
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from equiduty.domain.capacity import (
    CandidateReservation,
    EventKind,
    ReservationSnapshot,
    build_timeline,
    decide_capacity,
    horse_count,
    overlapping,
    sweep_peak,
)

UTC = ZoneInfo("UTC")
DAY = datetime(2026, 3, 2)


def at(hour: int, minute: int = 0) -> datetime:
    return DAY.replace(hour=hour, minute=minute)


def res(res_id: str, start: datetime, end: datetime, horses: int) -> ReservationSnapshot:
    return ReservationSnapshot(id=res_id, start_time=start, end_time=end, horse_count=horses)


def test_horse_count_prefers_list_over_legacy_field() -> None:
    assert horse_count(["h1", "h2"], "h9") == 2
    assert horse_count([], "h9") == 1
    assert horse_count(None, "h9") == 1
    assert horse_count(None, None) == 0
    assert horse_count([], "") == 0


def test_timeline_orders_start_before_end_at_same_instant() -> None:
    events = build_timeline(
        [res("a", at(9), at(10), 3)],
        CandidateReservation(start_time=at(10), end_time=at(11), horse_count=2),
    )
    assert [(e.time, e.kind) for e in events] == [
        (at(9), EventKind.START),
        (at(10), EventKind.START),
        (at(10), EventKind.END),
        (at(11), EventKind.END),
    ]
    assert events[1].reservation_id is None
    assert events[2].reservation_id == "a"


def test_timeline_skips_zero_horse_reservations_but_keeps_candidate() -> None:
    events = build_timeline(
        [res("empty", at(9), at(12), 0)],
        CandidateReservation(start_time=at(10), end_time=at(11), horse_count=0),
    )
    assert len(events) == 2
    assert all(e.reservation_id is None for e in events)


def test_sweep_reports_first_instant_of_peak() -> None:
    events = build_timeline(
        [res("a", at(8), at(9), 2), res("b", at(10), at(11), 2)],
        CandidateReservation(start_time=at(12), end_time=at(13), horse_count=1),
    )
    assert sweep_peak(events) == (2, at(8))


def test_no_overlap_reports_candidate_horses_only() -> None:
    existing = [res("a", at(7), at(8), 1), res("b", at(12), at(13), 1)]
    decision = decide_capacity(
        existing,
        CandidateReservation(start_time=at(9), end_time=at(10), horse_count=2),
        max_capacity=2,
        tz=UTC,
    )
    assert decision.valid is True
    assert decision.max_concurrent == 2
    assert decision.max_concurrent_time == at(9)
    assert decision.message is None


def test_boundary_instant_counts_arriving_and_departing_horses() -> None:
    # Reservation ending at T and candidate starting at T occupy T together.
    decision = decide_capacity(
        [res("a", at(8), at(10), 3)],
        CandidateReservation(start_time=at(10), end_time=at(11), horse_count=2),
        max_capacity=4,
        tz=UTC,
    )
    assert decision.valid is False
    assert decision.max_concurrent == 5
    assert decision.max_concurrent_time == at(10)


def test_zero_horse_reservations_never_invalidate() -> None:
    existing = [res(f"z{i}", at(9), at(11), 0) for i in range(10)]
    decision = decide_capacity(
        existing,
        CandidateReservation(start_time=at(9), end_time=at(10), horse_count=1),
        max_capacity=1,
        tz=UTC,
    )
    assert decision.valid is True
    assert decision.max_concurrent == 1


def test_staggered_morning_scenario() -> None:
    # 09:00-10:00 x2, 10:00-11:00 x1, candidate 09:30-10:30 x1, capacity 2.
    # At 10:00 the second reservation starts before the first one ends.
    decision = decide_capacity(
        [res("a", at(9), at(10), 2), res("b", at(10), at(11), 1)],
        CandidateReservation(start_time=at(9, 30), end_time=at(10, 30), horse_count=1),
        max_capacity=2,
        tz=UTC,
    )
    assert decision.valid is False
    assert decision.max_concurrent == 4
    assert decision.max_concurrent_time == at(10)
    assert decision.message == "Facility capacity exceeded at 10:00: 4 horses would be present, maximum is 2"


def test_message_uses_display_timezone() -> None:
    decision = decide_capacity(
        [res("a", at(9), at(10), 2)],
        CandidateReservation(start_time=at(9, 30), end_time=at(10, 30), horse_count=1),
        max_capacity=2,
        tz=ZoneInfo("Europe/Stockholm"),
    )
    assert decision.valid is False
    assert decision.max_concurrent_time == at(9, 30)
    assert "at 10:30:" in (decision.message or "")


def test_valid_decision_still_reports_peak() -> None:
    decision = decide_capacity(
        [res("a", at(9), at(10), 2)],
        CandidateReservation(start_time=at(9, 30), end_time=at(10, 30), horse_count=1),
        max_capacity=3,
        tz=UTC,
    )
    assert decision.valid is True
    assert decision.max_concurrent == 3
    assert decision.max_concurrent_time == at(9, 30)


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        decide_capacity(
            [],
            CandidateReservation(start_time=at(9), end_time=at(10), horse_count=1),
            max_capacity=0,
            tz=UTC,
        )


def test_overlapping_excludes_touching_boundaries() -> None:
    existing = [
        res("before", at(8), at(9), 1),
        res("inside", at(9, 15), at(9, 45), 1),
        res("spanning", at(8), at(11), 1),
        res("after", at(10), at(11), 1),
    ]
    found = overlapping(existing, at(9), at(10))
    assert [r.id for r in found] == ["inside", "spanning"]


def _brute_force_peak(
    intervals: list[tuple[datetime, datetime, int]],
) -> tuple[int, datetime | None]:
    # A boundary instant belongs to both the departing and the arriving reservation.
    best, best_time = 0, None
    for t in sorted({start for start, _, _ in intervals}):
        total = sum(h for s, e, h in intervals if s <= t <= e)
        if total > best:
            best, best_time = total, t
    return best, best_time


@pytest.mark.parametrize("seed", range(25))
def test_sweep_peak_matches_brute_force(seed: int) -> None:
    rng = random.Random(seed)

    def interval() -> tuple[datetime, datetime]:
        start = rng.randrange(0, 20 * 60, 15)
        length = rng.randrange(15, 4 * 60, 15)
        return DAY + timedelta(minutes=start), DAY + timedelta(minutes=start + length)

    existing = []
    for i in range(rng.randrange(0, 12)):
        start, end = interval()
        existing.append(res(f"r{i}", start, end, rng.randrange(0, 4)))
    c_start, c_end = interval()
    candidate = CandidateReservation(start_time=c_start, end_time=c_end, horse_count=rng.randrange(0, 4))

    intervals = [(r.start_time, r.end_time, r.horse_count) for r in existing if r.horse_count > 0]
    intervals.append((c_start, c_end, candidate.horse_count))

    assert sweep_peak(build_timeline(existing, candidate)) == _brute_force_peak(intervals)
