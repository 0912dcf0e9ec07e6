import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_user_id, get_session
from ..domain.errors import (
    CapacityCheckError,
    FacilityNotFoundError,
    HorsesRequiredError,
    InvalidTimeRangeError,
    TooManyHorsesError,
)
from ..infrastructure.repositories import SqlAlchemyFacilityRepository, SqlAlchemyFacilityReservationRepository
from ..schemas import (
    CapacityCheck,
    CapacityDecisionRead,
    CapacityUsageRead,
    ConflictCheck,
    ConflictList,
    ConflictRead,
)
from ..usecases import capacity as capacity_usecase
from ..utils.capacity_log import emit_capacity_log
from ..utils.time import to_utc_naive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/facilities", tags=["capacity"], dependencies=[Depends(get_current_user_id)])


def _utc_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    if start.tzinfo is None or end.tzinfo is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start/end must have timezone")
    return to_utc_naive(start), to_utc_naive(end)


@router.post("/{facility_id}/capacity/check", response_model=CapacityDecisionRead)
async def check_capacity(
    payload: CapacityCheck,
    facility_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
) -> CapacityDecisionRead:
    start, end = _utc_window(payload.start_time, payload.end_time)
    facility_repo = SqlAlchemyFacilityRepository(session)
    res_repo = SqlAlchemyFacilityReservationRepository(session)
    try:
        decision, horse_count, max_capacity = await capacity_usecase.check_facility_capacity(
            facility_repo,
            res_repo,
            facility_id=facility_id,
            start_time=start,
            end_time=end,
            horse_ids=payload.horse_ids,
            horse_id=payload.horse_id,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
    except FacilityNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="facility not found")
    except (InvalidTimeRangeError, HorsesRequiredError, TooManyHorsesError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except CapacityCheckError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to validate capacity")

    try:
        emit_capacity_log(
            action="capacity.checked" if decision.valid else "capacity.rejected",
            facility_id=facility_id,
            user_id=user_id,
            start_time=start,
            end_time=end,
            horse_count=horse_count,
            max_capacity=max_capacity,
            max_concurrent=decision.max_concurrent,
            max_concurrent_time=decision.max_concurrent_time,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
    except RuntimeError:
        logger.exception("capacity log failed for facility %s", facility_id)

    result = CapacityDecisionRead.from_decision(decision=decision, max_capacity=max_capacity, horse_count=horse_count)
    if not decision.valid:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Capacity Exceeded",
                "message": decision.message,
                "max_concurrent": result.max_concurrent,
                "max_concurrent_time": result.max_concurrent_time.isoformat() if result.max_concurrent_time else None,
            },
        )
    return result


@router.get("/{facility_id}/capacity/usage", response_model=CapacityUsageRead)
async def get_capacity_usage(
    facility_id: str = Path(..., min_length=1),
    start: datetime = Query(..., description="window start (ISO 8601 with offset)"),
    end: datetime = Query(..., description="window end (ISO 8601 with offset)"),
    session: AsyncSession = Depends(get_session),
) -> CapacityUsageRead:
    utc_start, utc_end = _utc_window(start, end)
    if utc_start >= utc_end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must be earlier than end")
    facility_repo = SqlAlchemyFacilityRepository(session)
    res_repo = SqlAlchemyFacilityReservationRepository(session)
    try:
        await capacity_usecase.require_facility(facility_repo, facility_id)
        usage = await capacity_usecase.get_current_usage(
            res_repo,
            facility_id=facility_id,
            start_time=utc_start,
            end_time=utc_end,
        )
    except FacilityNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="facility not found")
    except CapacityCheckError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to compute capacity usage")
    return CapacityUsageRead.from_usage(facility_id=facility_id, start_time=utc_start, end_time=utc_end, usage=usage)


@router.post("/{facility_id}/reservations/conflicts", response_model=ConflictList)
async def check_conflicts(
    payload: ConflictCheck,
    facility_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> ConflictList:
    start, end = _utc_window(payload.start_time, payload.end_time)
    facility_repo = SqlAlchemyFacilityRepository(session)
    res_repo = SqlAlchemyFacilityReservationRepository(session)
    try:
        await capacity_usecase.require_facility(facility_repo, facility_id)
        conflicts = await capacity_usecase.find_conflicts(
            res_repo,
            facility_id=facility_id,
            start_time=start,
            end_time=end,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
    except FacilityNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="facility not found")
    except InvalidTimeRangeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except CapacityCheckError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to check conflicts")
    items = [ConflictRead.from_snapshot(c) for c in conflicts]
    return ConflictList(conflicts=items, has_conflicts=bool(items))
