"""Time slot service for schedule definition and availability."""

from collections import OrderedDict
from datetime import UTC, date, datetime, time, timedelta
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, case, func, select, true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.config import settings
from echannel.core.exceptions import (
    AppException,
    BadRequestException,
    ConflictException,
    NotFoundException,
    PersistenceException,
    ValidationException,
)
from echannel.models.appointments import appointments
from echannel.models.doctors import doctors
from echannel.models.hospitals import hospitals
from echannel.models.time_slots import time_slots
from echannel.schemas.appointments import ACTIVE_STATUSES, AppointmentStatus
from echannel.schemas.time_slots import (
    AvailabilityQuery,
    AvailabilityResponse,
    AvailabilitySummary,
    AvailableSlot,
    BulkCreateResult,
    BulkTimeSlotCreate,
    DayAvailability,
    DoctorDayAvailability,
    SlotCancelResult,
    SlotConflict,
    TimeSlotCreate,
    TimeSlotDetailResponse,
    TimeSlotFilters,
    TimeSlotListResponse,
    TimeSlotResponse,
    TimeSlotUpdate,
)
from echannel.services.slot_status import (
    available_count,
    classify_slot,
    utilization_percentage,
    with_slot_status,
)

logger = structlog.get_logger(__name__)

# Longest date range a single bulk request may cover
MAX_BULK_DAYS = 92

ACTIVE_STATUS_VALUES = [s.value for s in ACTIVE_STATUSES]


def generate_dates(
    date_from: date,
    date_to: date,
    exclude_dates: list[date] | None = None,
    exclude_weekdays: list[int] | None = None,
) -> list[date]:
    """
    List the dates in an inclusive range, skipping exclusions.

    Args:
        date_from: First date
        date_to: Last date
        exclude_dates: Specific dates to skip
        exclude_weekdays: ISO weekdays to skip (1 = Monday, 7 = Sunday)

    Returns:
        Ordered list of dates
    """
    skip_dates = set(exclude_dates or [])
    skip_weekdays = set(exclude_weekdays or [])

    dates = []
    current = date_from
    while current <= date_to:
        if current not in skip_dates and current.isoweekday() not in skip_weekdays:
            dates.append(current)
        current += timedelta(days=1)
    return dates


def _slot_response(row: Any) -> TimeSlotResponse:
    return TimeSlotResponse.model_validate(with_slot_status(row))


class TimeSlotService:
    """Service for managing doctors' time slots."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_time_slot(self, data: TimeSlotCreate) -> TimeSlotResponse:
        """
        Create a time slot for a doctor.

        Raises:
            NotFoundException: Doctor does not exist
            ConflictException: Window overlaps another slot of the doctor that day
        """
        try:
            await self._ensure_doctor(data.doctor_id)

            conflict = await self._find_conflict(
                data.doctor_id, data.date, data.start_time, data.end_time
            )
            if conflict is not None:
                raise ConflictException(
                    "Time slot conflicts with existing slot",
                    details={"conflicting_slot": self._conflict_details(conflict)},
                )

            row = await self._insert_slot(
                doctor_id=data.doctor_id,
                slot_date=data.date,
                start_time=data.start_time,
                end_time=data.end_time,
                max_appointments=data.max_appointments,
                consultation_fee=data.consultation_fee,
                is_active=data.is_active,
            )
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("Could not create time slot") from e

        logger.info(
            "time_slot_created",
            time_slot_id=str(row["id"]),
            doctor_id=str(data.doctor_id),
            date=data.date.isoformat(),
        )
        return _slot_response(row)

    async def bulk_create_time_slots(self, data: BulkTimeSlotCreate) -> BulkCreateResult:
        """
        Create slots for every selected date and daily time range.

        All slots are created in one transaction. Without ``skip_conflicts``
        any overlap aborts the whole request; with it, overlapping windows are
        skipped and reported.
        """
        if (data.date_to - data.date_from).days + 1 > MAX_BULK_DAYS:
            raise BadRequestException(f"Date range cannot exceed {MAX_BULK_DAYS} days")

        dates = generate_dates(
            data.date_from, data.date_to, data.exclude_dates, data.exclude_weekdays
        )
        if not dates:
            raise BadRequestException("No valid dates found in the specified range")

        created: list[TimeSlotResponse] = []
        conflicts: list[SlotConflict] = []

        try:
            await self._ensure_doctor(data.doctor_id)

            for slot_date in dates:
                for window in data.time_ranges:
                    # Earlier inserts in this transaction are visible here,
                    # so overlapping ranges within one request are caught too.
                    existing = await self._find_conflict(
                        data.doctor_id, slot_date, window.start_time, window.end_time
                    )
                    if existing is not None:
                        conflicts.append(
                            SlotConflict(
                                date=slot_date,
                                start_time=window.start_time,
                                end_time=window.end_time,
                                conflicting_slot_id=existing["id"],
                            )
                        )
                        continue

                    row = await self._insert_slot(
                        doctor_id=data.doctor_id,
                        slot_date=slot_date,
                        start_time=window.start_time,
                        end_time=window.end_time,
                        max_appointments=window.max_appointments,
                        consultation_fee=window.consultation_fee,
                        is_active=data.is_active,
                    )
                    created.append(_slot_response(row))

            if conflicts and not data.skip_conflicts:
                raise ConflictException(
                    "Conflicts found with existing time slots",
                    details={
                        "conflicts": [c.model_dump() for c in conflicts],
                        "suggestion": "Set skip_conflicts to true to skip conflicting slots",
                    },
                )
            if not created:
                raise ConflictException(
                    "No slots could be created due to conflicts",
                    details={"skipped_slots": [c.model_dump() for c in conflicts]},
                )

            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("Could not create time slots") from e

        logger.info(
            "time_slots_bulk_created",
            doctor_id=str(data.doctor_id),
            created=len(created),
            skipped=len(conflicts),
        )
        return BulkCreateResult(
            total_requested=len(dates) * len(data.time_ranges),
            created=len(created),
            skipped=len(conflicts),
            total_days=len(dates),
            items=created,
            skipped_slots=conflicts,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_time_slot(self, time_slot_id: UUID) -> TimeSlotDetailResponse:
        """Get a slot with its doctor, hospital and active appointment count."""
        active_count = (
            select(func.count())
            .select_from(appointments)
            .where(
                appointments.c.time_slot_id == time_slots.c.id,
                appointments.c.status.in_(ACTIVE_STATUS_VALUES),
            )
            .scalar_subquery()
        )
        stmt = (
            select(
                time_slots,
                doctors.c.name.label("doctor_name"),
                doctors.c.specialization,
                hospitals.c.id.label("hospital_id"),
                hospitals.c.name.label("hospital_name"),
                active_count.label("active_appointments"),
            )
            .select_from(
                time_slots.join(doctors, time_slots.c.doctor_id == doctors.c.id).join(
                    hospitals, doctors.c.hospital_id == hospitals.c.id
                )
            )
            .where(time_slots.c.id == time_slot_id)
        )
        row = (await self.db.execute(stmt)).mappings().first()
        if row is None:
            raise NotFoundException("Time slot not found")

        return TimeSlotDetailResponse.model_validate(with_slot_status(row))

    async def list_time_slots(self, filters: TimeSlotFilters) -> TimeSlotListResponse:
        """List slots ordered by date and start time."""
        conditions: list[Any] = []

        if filters.doctor_id:
            conditions.append(time_slots.c.doctor_id == filters.doctor_id)

        if filters.date:
            conditions.append(time_slots.c.date == filters.date)
        else:
            if filters.date_from:
                conditions.append(time_slots.c.date >= filters.date_from)
            if filters.date_to:
                conditions.append(time_slots.c.date <= filters.date_to)

        if filters.is_active is not None:
            conditions.append(time_slots.c.is_active.is_(filters.is_active))

        if filters.has_availability is True:
            conditions.append(time_slots.c.current_bookings < time_slots.c.max_appointments)
        elif filters.has_availability is False:
            conditions.append(time_slots.c.current_bookings >= time_slots.c.max_appointments)

        if filters.specialization:
            conditions.append(doctors.c.specialization.ilike(f"%{filters.specialization}%"))

        if filters.hospital_id:
            conditions.append(doctors.c.hospital_id == filters.hospital_id)

        source = time_slots.join(doctors, time_slots.c.doctor_id == doctors.c.id)
        where_clause = and_(true(), *conditions)

        total = (
            await self.db.execute(
                select(func.count()).select_from(source).where(where_clause)
            )
        ).scalar() or 0

        rows = (
            await self.db.execute(
                select(time_slots)
                .select_from(source)
                .where(where_clause)
                .order_by(time_slots.c.date, time_slots.c.start_time)
                .limit(filters.limit)
                .offset(filters.offset)
            )
        ).mappings().all()

        return TimeSlotListResponse(
            total=total,
            limit=filters.limit,
            offset=filters.offset,
            has_more=filters.offset + filters.limit < total,
            items=[_slot_response(row) for row in rows],
        )

    async def get_availability(self, query: AvailabilityQuery) -> AvailabilityResponse:
        """
        Bookable slots grouped by date, with per-doctor counts and a summary.

        Without an explicit date the window runs from ``date_from`` (default
        today) for ``AVAILABILITY_WINDOW_DAYS`` days unless ``date_to`` is given.
        """
        conditions: list[Any] = [time_slots.c.is_active.is_(True)]

        if query.date:
            conditions.append(time_slots.c.date == query.date)
        else:
            date_from = query.date_from or date.today()
            date_to = query.date_to or date_from + timedelta(days=settings.availability_window_days)
            conditions.append(time_slots.c.date >= date_from)
            conditions.append(time_slots.c.date <= date_to)

        if not query.include_fully_booked:
            conditions.append(time_slots.c.current_bookings < time_slots.c.max_appointments)

        if query.doctor_id:
            conditions.append(time_slots.c.doctor_id == query.doctor_id)

        if query.specialization:
            conditions.append(doctors.c.specialization.ilike(f"%{query.specialization}%"))

        if query.hospital_id:
            conditions.append(doctors.c.hospital_id == query.hospital_id)

        stmt = (
            select(
                time_slots,
                doctors.c.name.label("doctor_name"),
                doctors.c.specialization,
                hospitals.c.id.label("hospital_id"),
                hospitals.c.name.label("hospital_name"),
            )
            .select_from(
                time_slots.join(doctors, time_slots.c.doctor_id == doctors.c.id).join(
                    hospitals, doctors.c.hospital_id == hospitals.c.id
                )
            )
            .where(and_(*conditions))
            .order_by(time_slots.c.date, time_slots.c.start_time)
        )
        rows = (await self.db.execute(stmt)).mappings().all()

        slots = []
        for row in rows:
            remaining = available_count(row["max_appointments"], row["current_bookings"])
            if remaining < query.min_available_slots and not query.include_fully_booked:
                continue
            slots.append(
                AvailableSlot(
                    id=row["id"],
                    doctor_id=row["doctor_id"],
                    doctor_name=row["doctor_name"],
                    specialization=row["specialization"],
                    hospital_id=row["hospital_id"],
                    hospital_name=row["hospital_name"],
                    date=row["date"],
                    start_time=row["start_time"],
                    end_time=row["end_time"],
                    max_appointments=row["max_appointments"],
                    current_bookings=row["current_bookings"],
                    available_slots=remaining,
                    consultation_fee=row["consultation_fee"],
                    status=classify_slot(row["max_appointments"], row["current_bookings"]),
                    is_fully_booked=remaining == 0,
                    utilization_percentage=utilization_percentage(
                        row["max_appointments"], row["current_bookings"]
                    ),
                )
            )

        return AvailabilityResponse(
            summary=self._summarize(slots),
            by_date=self._group_by_date(slots),
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_time_slot(self, time_slot_id: UUID, data: TimeSlotUpdate) -> TimeSlotResponse:
        """
        Update a slot's schedule, capacity, fee or active flag.

        Raises:
            NotFoundException: Slot does not exist
            ConflictException: Schedule change with active appointments,
                capacity below current bookings, or overlap with another slot
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        schedule_change = any(k in changes for k in ("date", "start_time", "end_time"))

        try:
            existing = await self._get_slot_row(time_slot_id)

            if schedule_change:
                active = await self._count_active_appointments(time_slot_id)
                if active > 0:
                    raise ConflictException(
                        "Cannot modify time/date of slot with active appointments",
                        details={"active_appointments": active},
                    )

                new_date = changes.get("date", existing["date"])
                new_start = changes.get("start_time", existing["start_time"])
                new_end = changes.get("end_time", existing["end_time"])
                if new_end <= new_start:
                    raise ValidationException("End time must be after start time")

                conflict = await self._find_conflict(
                    existing["doctor_id"], new_date, new_start, new_end, exclude_id=time_slot_id
                )
                if conflict is not None:
                    raise ConflictException(
                        "Time slot conflicts with existing slot",
                        details={"conflicting_slot": self._conflict_details(conflict)},
                    )

            if not changes:
                return _slot_response(existing)

            conditions = [time_slots.c.id == time_slot_id]
            if "max_appointments" in changes:
                conditions.append(time_slots.c.current_bookings <= changes["max_appointments"])
            if schedule_change:
                conditions.append(time_slots.c.current_bookings == 0)

            result = await self.db.execute(
                update(time_slots).where(*conditions).values(**changes).returning(time_slots)
            )
            row = result.mappings().first()
            if row is None:
                await self._raise_capacity_conflict(
                    time_slot_id, changes.get("max_appointments"), schedule_change
                )

            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("Could not update time slot") from e

        logger.info("time_slot_updated", time_slot_id=str(time_slot_id), fields=sorted(changes))
        return _slot_response(row)

    async def update_capacity(self, time_slot_id: UUID, max_appointments: int) -> TimeSlotResponse:
        """Change capacity; never below the seats already booked."""
        return await self.update_time_slot(
            time_slot_id, TimeSlotUpdate(max_appointments=max_appointments)
        )

    async def toggle_active(self, time_slot_id: UUID) -> TimeSlotResponse:
        """Flip a slot between active and inactive."""
        try:
            await self._get_slot_row(time_slot_id)
            result = await self.db.execute(
                update(time_slots)
                .where(time_slots.c.id == time_slot_id)
                .values(is_active=~time_slots.c.is_active)
                .returning(time_slots)
            )
            row = result.mappings().one()
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("Could not update time slot") from e

        logger.info("time_slot_toggled", time_slot_id=str(time_slot_id), is_active=row["is_active"])
        return _slot_response(row)

    async def cancel_time_slot(self, time_slot_id: UUID, reason: str) -> SlotCancelResult:
        """
        Cancel every live appointment of a slot and deactivate it.

        The released seats are subtracted from the counter in the same
        transaction as the cancellations.
        """
        try:
            await self._get_slot_row(time_slot_id)

            cancelled = (
                await self.db.execute(
                    update(appointments)
                    .where(
                        appointments.c.time_slot_id == time_slot_id,
                        appointments.c.status.in_(ACTIVE_STATUS_VALUES),
                    )
                    .values(
                        status=AppointmentStatus.CANCELLED.value,
                        cancellation_reason=reason,
                        cancelled_at=datetime.now(UTC),
                    )
                    .returning(appointments.c.id)
                )
            ).scalars().all()
            released = len(cancelled)

            result = await self.db.execute(
                update(time_slots)
                .where(time_slots.c.id == time_slot_id)
                .values(
                    is_active=False,
                    current_bookings=case(
                        (
                            time_slots.c.current_bookings > released,
                            time_slots.c.current_bookings - released,
                        ),
                        else_=0,
                    ),
                )
                .returning(time_slots)
            )
            row = result.mappings().one()
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("Could not cancel time slot") from e

        logger.info(
            "time_slot_cancelled",
            time_slot_id=str(time_slot_id),
            cancelled_appointments=released,
        )
        return SlotCancelResult(
            time_slot=_slot_response(row),
            cancelled_appointments=released,
            cancelled_appointment_ids=list(cancelled),
        )

    async def delete_time_slot(self, time_slot_id: UUID) -> None:
        """
        Delete a slot that no appointment has ever referenced.

        Slots with appointment history are kept and should be deactivated.
        """
        try:
            await self._get_slot_row(time_slot_id)

            active = await self._count_active_appointments(time_slot_id)
            if active > 0:
                raise ConflictException(
                    "Cannot delete time slot with active appointments",
                    details={"active_appointments": active},
                )

            referenced = (
                await self.db.execute(
                    select(func.count())
                    .select_from(appointments)
                    .where(appointments.c.time_slot_id == time_slot_id)
                )
            ).scalar() or 0
            if referenced > 0:
                raise ConflictException(
                    "Time slot has appointment history; deactivate it instead",
                    details={"appointments": referenced},
                )

            await self.db.execute(time_slots.delete().where(time_slots.c.id == time_slot_id))
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("Could not delete time slot") from e

        logger.info("time_slot_deleted", time_slot_id=str(time_slot_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_doctor(self, doctor_id: UUID) -> None:
        result = await self.db.execute(select(doctors.c.id).where(doctors.c.id == doctor_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundException("Doctor not found")

    async def _get_slot_row(self, time_slot_id: UUID) -> dict[str, Any]:
        result = await self.db.execute(select(time_slots).where(time_slots.c.id == time_slot_id))
        row = result.mappings().first()
        if row is None:
            raise NotFoundException("Time slot not found")
        return dict(row)

    async def _count_active_appointments(self, time_slot_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(appointments)
            .where(
                appointments.c.time_slot_id == time_slot_id,
                appointments.c.status.in_(ACTIVE_STATUS_VALUES),
            )
        )
        return result.scalar() or 0

    async def _find_conflict(
        self,
        doctor_id: UUID,
        slot_date: date,
        start_time: time,
        end_time: time,
        exclude_id: UUID | None = None,
    ) -> dict[str, Any] | None:
        """First slot of the doctor on that date whose window overlaps the given one."""
        conditions = [
            time_slots.c.doctor_id == doctor_id,
            time_slots.c.date == slot_date,
            time_slots.c.start_time < end_time,
            time_slots.c.end_time > start_time,
        ]
        if exclude_id is not None:
            conditions.append(time_slots.c.id != exclude_id)

        result = await self.db.execute(
            select(time_slots.c.id, time_slots.c.start_time, time_slots.c.end_time)
            .where(*conditions)
            .limit(1)
        )
        row = result.mappings().first()
        return dict(row) if row else None

    async def _insert_slot(
        self,
        doctor_id: UUID,
        slot_date: date,
        start_time: time,
        end_time: time,
        max_appointments: int,
        consultation_fee: Any,
        is_active: bool,
    ) -> dict[str, Any]:
        result = await self.db.execute(
            time_slots.insert()
            .values(
                doctor_id=doctor_id,
                date=slot_date,
                start_time=start_time,
                end_time=end_time,
                max_appointments=max_appointments,
                current_bookings=0,
                consultation_fee=consultation_fee,
                is_active=is_active,
            )
            .returning(time_slots)
        )
        return dict(result.mappings().one())

    async def _raise_capacity_conflict(
        self, time_slot_id: UUID, requested: int | None, schedule_change: bool
    ) -> None:
        slot = await self._get_slot_row(time_slot_id)
        if requested is not None and requested < slot["current_bookings"]:
            raise ConflictException(
                "Cannot reduce capacity below current bookings",
                details={
                    "current_bookings": slot["current_bookings"],
                    "requested_capacity": requested,
                },
            )
        if schedule_change and await self._count_active_appointments(time_slot_id) == 0:
            # Completed or no-show appointments still hold their seats
            raise ConflictException(
                "Cannot modify time/date of slot with booked seats",
                details={"current_bookings": slot["current_bookings"]},
            )
        raise ConflictException(
            "Time slot received bookings during the update; retry",
            details={"current_bookings": slot["current_bookings"]},
        )

    @staticmethod
    def _conflict_details(conflict: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": conflict["id"],
            "start_time": conflict["start_time"],
            "end_time": conflict["end_time"],
        }

    @staticmethod
    def _group_by_date(slots: list[AvailableSlot]) -> list[DayAvailability]:
        days: OrderedDict[date, DayAvailability] = OrderedDict()
        doctors_by_day: dict[date, OrderedDict[UUID, DoctorDayAvailability]] = {}

        for slot in slots:
            day = days.get(slot.date)
            if day is None:
                day = days[slot.date] = DayAvailability(date=slot.date)
                doctors_by_day[slot.date] = OrderedDict()

            day.total_slots += 1
            if slot.is_fully_booked:
                day.fully_booked_slots += 1
            else:
                day.available_slots += 1
            day.slots.append(slot)

            doctor = doctors_by_day[slot.date].get(slot.doctor_id)
            if doctor is None:
                doctor = doctors_by_day[slot.date][slot.doctor_id] = DoctorDayAvailability(
                    doctor_id=slot.doctor_id,
                    doctor_name=slot.doctor_name,
                    specialization=slot.specialization,
                    hospital_name=slot.hospital_name,
                )
            doctor.slots_count += 1
            if not slot.is_fully_booked:
                doctor.available_slots_count += 1
                if doctor.next_available_time is None:
                    doctor.next_available_time = slot.start_time

        for slot_date, day in days.items():
            day.doctors = list(doctors_by_day[slot_date].values())
        return list(days.values())

    @staticmethod
    def _summarize(slots: list[AvailableSlot]) -> AvailabilitySummary:
        fully_booked = sum(1 for s in slots if s.is_fully_booked)
        return AvailabilitySummary(
            total_slots=len(slots),
            available_slots=len(slots) - fully_booked,
            fully_booked_slots=fully_booked,
            unique_doctors=len({s.doctor_id for s in slots}),
            unique_hospitals=len({s.hospital_id for s in slots}),
            date_from=slots[0].date if slots else None,
            date_to=slots[-1].date if slots else None,
            average_utilization=(
                round(sum(s.utilization_percentage for s in slots) / len(slots)) if slots else 0
            ),
        )
