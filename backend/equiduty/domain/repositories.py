from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, Sequence

from ..models import Facility


class ReservationRecord(Protocol):
    """Shape of a stored reservation as far as capacity checks are concerned.

    ``start_time``/``end_time`` may be any representation accepted by
    ``utils.time.to_instant``.
    """

    id: str
    start_time: Any
    end_time: Any
    horse_ids: Sequence[str] | None
    horse_id: str | None


class FacilityRepository(Protocol):
    async def get(self, facility_id: str) -> Facility | None: ...


class FacilityReservationRepository(Protocol):
    async def list_active_overlapping(
        self,
        facility_id: str,
        start: datetime,
        end: datetime,
    ) -> Sequence[ReservationRecord]:
        """Pending/confirmed reservations of the facility with ``start_time < end`` and ``end_time >= start``.

        The lower bound is inclusive so a reservation ending exactly at ``start``
        is still seen at that instant.
        """
        ...
