from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import FacilityReservationRepository, FacilityRepository
from ..models import ACTIVE_RESERVATION_STATUSES, Facility, FacilityReservation


class SqlAlchemyFacilityRepository(FacilityRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, facility_id: str) -> Facility | None:
        result = await self.session.scalar(select(Facility).where(Facility.id == facility_id))
        return result if isinstance(result, Facility) else None


class SqlAlchemyFacilityReservationRepository(FacilityReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active_overlapping(
        self,
        facility_id: str,
        start: datetime,
        end: datetime,
    ) -> List[FacilityReservation]:
        stmt = (
            select(FacilityReservation)
            .where(
                FacilityReservation.facility_id == facility_id,
                FacilityReservation.status.in_(sorted(ACTIVE_RESERVATION_STATUSES)),
                FacilityReservation.start_time < end,
                FacilityReservation.end_time >= start,
            )
            .order_by(FacilityReservation.start_time, FacilityReservation.id)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())
