from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import JSON, CheckConstraint, Enum, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import DateTime, Integer, String


class Base(DeclarativeBase):
    pass


class ReservationStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


# Only these statuses occupy facility capacity.
ACTIVE_RESERVATION_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})


class Facility(Base):
    __tablename__ = "facilities"
    __table_args__ = (
        CheckConstraint("max_horses_per_reservation >= 1", name="chk_facilities_max_horses"),
        Index("idx_facilities_stable", "stable_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    stable_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    max_horses_per_reservation: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    reservations: Mapped[list["FacilityReservation"]] = relationship(back_populates="facility")


class FacilityReservation(Base):
    __tablename__ = "facility_reservations"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="chk_facility_res_time"),
        Index("idx_facility_res_facility_time", "facility_id", "start_time", "end_time"),
        Index("idx_facility_res_user", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    facility_id: Mapped[str] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    horse_ids: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    # Legacy single-horse reference, still present on older rows.
    horse_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(
            ReservationStatus,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=ReservationStatus.PENDING,
    )
    purpose: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    facility: Mapped["Facility"] = relationship(back_populates="reservations")
