"""Booking service: seat reservation against time slot capacity."""

import asyncio
import uuid
from datetime import UTC, date, datetime
from typing import Any, NoReturn
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.config import settings
from echannel.core.exceptions import (
    AppException,
    BadRequestException,
    CapacityExceededException,
    ConflictException,
    NotFoundException,
    PersistenceException,
)
from echannel.models.appointments import appointments
from echannel.models.doctors import doctors
from echannel.models.hospitals import hospitals
from echannel.models.time_slots import time_slots
from echannel.schemas.appointments import (
    ACTIVE_STATUSES,
    AppointmentResponse,
    AppointmentStatus,
    PatientDetails,
    PaymentStatus,
)

logger = structlog.get_logger(__name__)


class BookingService:
    """
    Books and cancels appointments while keeping slot counters exact.

    A booking claims its seat with a single conditional UPDATE
    (``current_bookings < max_appointments``) and inserts the appointment in
    the same transaction, so concurrent callers serialize on the slot row and
    a failed booking leaves neither an appointment nor an increment behind.
    """

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    @staticmethod
    def _generate_appointment_number() -> str:
        """Generate a human-readable appointment number."""
        return f"APT-{date.today():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"

    async def book_appointment(
        self,
        time_slot_id: UUID,
        patient: PatientDetails,
        agent_id: UUID,
    ) -> AppointmentResponse:
        """
        Book an appointment against a time slot.

        Args:
            time_slot_id: Slot to book
            patient: Pre-validated patient details
            agent_id: Agent performing the booking

        Returns:
            Created appointment

        Raises:
            NotFoundException: Slot missing or inactive, or its doctor missing
            CapacityExceededException: Slot is full
            PersistenceException: Storage failure; nothing was written
        """
        try:
            slot = await self._claim_seat(time_slot_id)
            if slot is None:
                await self._raise_unbookable(time_slot_id)

            practice = await self._load_practice(slot["doctor_id"])
            queue_position = slot["current_bookings"]

            values = self._appointment_values(patient)
            values.update(
                {
                    "id": uuid.uuid4(),
                    "appointment_number": self._generate_appointment_number(),
                    "time_slot_id": slot["id"],
                    "booked_by_id": agent_id,
                    "doctor_id": practice["doctor_id"],
                    "doctor_name": practice["doctor_name"],
                    "hospital_id": practice["hospital_id"],
                    "hospital_name": practice["hospital_name"],
                    "appointment_date": slot["date"],
                    "appointment_time": slot["start_time"],
                    "consultation_fee": slot["consultation_fee"],
                    "total_amount": slot["consultation_fee"],
                    "queue_position": queue_position,
                    "estimated_wait_time": queue_position * settings.minutes_per_appointment,
                    "status": AppointmentStatus.CONFIRMED.value,
                    "payment_status": PaymentStatus.PENDING.value,
                }
            )

            result = await self.db.execute(
                appointments.insert().values(**values).returning(appointments)
            )
            row = result.mappings().one()
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("booking_persistence_failed", time_slot_id=str(time_slot_id), error=str(e))
            raise PersistenceException("Could not complete booking") from e

        logger.info(
            "appointment_booked",
            appointment_id=str(row["id"]),
            appointment_number=row["appointment_number"],
            time_slot_id=str(time_slot_id),
            queue_position=queue_position,
            agent_id=str(agent_id),
        )
        return AppointmentResponse.model_validate(dict(row))

    async def book_with_retry(
        self,
        time_slot_id: UUID,
        patient: PatientDetails,
        agent_id: UUID,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
    ) -> AppointmentResponse:
        """
        Book an appointment, retrying storage failures with exponential backoff.

        Business rejections (missing slot, full slot) are never retried.
        """
        attempts = max(max_attempts or settings.booking_max_retries, 1)
        delay = settings.booking_retry_delay if retry_delay is None else retry_delay

        for attempt in range(1, attempts + 1):
            try:
                return await self.book_appointment(time_slot_id, patient, agent_id)
            except PersistenceException:
                if attempt >= attempts:
                    raise
                logger.warning(
                    "booking_retry",
                    time_slot_id=str(time_slot_id),
                    attempt=attempt,
                    max_attempts=attempts,
                )
                await asyncio.sleep(delay * (2 ** (attempt - 1)))

        raise PersistenceException("Could not complete booking")

    async def cancel_appointment(
        self,
        appointment_id: UUID,
        reason: str | None = None,
    ) -> AppointmentResponse:
        """
        Cancel an appointment and release its seat in the same transaction.

        Args:
            appointment_id: Appointment to cancel
            reason: Cancellation reason

        Returns:
            Cancelled appointment

        Raises:
            NotFoundException: Appointment does not exist
            BadRequestException: Appointment date is today or earlier
            ConflictException: Appointment no longer holds a seat
        """
        today = date.today()
        try:
            result = await self.db.execute(
                update(appointments)
                .where(
                    appointments.c.id == appointment_id,
                    appointments.c.status.in_([s.value for s in ACTIVE_STATUSES]),
                    appointments.c.appointment_date > today,
                )
                .values(
                    status=AppointmentStatus.CANCELLED.value,
                    cancellation_reason=reason,
                    cancelled_at=datetime.now(UTC),
                )
                .returning(appointments)
            )
            row = result.mappings().first()

            if row is None:
                current = await self.db.execute(
                    select(appointments.c.status, appointments.c.appointment_date).where(
                        appointments.c.id == appointment_id
                    )
                )
                found = current.first()
                if found is None:
                    raise NotFoundException("Appointment not found")
                status, appointment_date = found
                if appointment_date <= today:
                    raise BadRequestException("Cannot cancel past appointments")
                raise ConflictException(f"Appointment cannot be cancelled from status '{status}'")

            await self._release_seat(row["time_slot_id"])
            await self.db.commit()
        except AppException:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                "cancellation_persistence_failed", appointment_id=str(appointment_id), error=str(e)
            )
            raise PersistenceException("Could not cancel appointment") from e

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            time_slot_id=str(row["time_slot_id"]),
        )
        return AppointmentResponse.model_validate(dict(row))

    async def _claim_seat(self, time_slot_id: UUID) -> dict[str, Any] | None:
        """Atomically take one seat; returns the updated slot or None."""
        result = await self.db.execute(
            update(time_slots)
            .where(
                time_slots.c.id == time_slot_id,
                time_slots.c.is_active.is_(True),
                time_slots.c.current_bookings < time_slots.c.max_appointments,
            )
            .values(current_bookings=time_slots.c.current_bookings + 1)
            .returning(time_slots)
        )
        row = result.mappings().first()
        return dict(row) if row else None

    async def _release_seat(self, time_slot_id: UUID) -> None:
        """Give one seat back, never going below zero."""
        await self.db.execute(
            update(time_slots)
            .where(
                time_slots.c.id == time_slot_id,
                time_slots.c.current_bookings > 0,
            )
            .values(current_bookings=time_slots.c.current_bookings - 1)
        )

    async def _raise_unbookable(self, time_slot_id: UUID) -> NoReturn:
        """Explain why a seat could not be claimed."""
        result = await self.db.execute(select(time_slots).where(time_slots.c.id == time_slot_id))
        slot = result.mappings().first()

        if slot is None or not slot["is_active"]:
            raise NotFoundException("Time slot not found")

        logger.info(
            "slot_capacity_exceeded",
            time_slot_id=str(time_slot_id),
            max_appointments=slot["max_appointments"],
            current_bookings=slot["current_bookings"],
        )
        raise CapacityExceededException(
            max_appointments=slot["max_appointments"],
            current_bookings=slot["current_bookings"],
        )

    async def _load_practice(self, doctor_id: UUID) -> dict[str, Any]:
        """Load the doctor and hospital names captured on the appointment."""
        result = await self.db.execute(
            select(
                doctors.c.id.label("doctor_id"),
                doctors.c.name.label("doctor_name"),
                hospitals.c.id.label("hospital_id"),
                hospitals.c.name.label("hospital_name"),
            )
            .select_from(doctors.join(hospitals, doctors.c.hospital_id == hospitals.c.id))
            .where(doctors.c.id == doctor_id)
        )
        practice = result.mappings().first()
        if practice is None:
            raise NotFoundException("Doctor not found")
        return dict(practice)

    @staticmethod
    def _appointment_values(patient: PatientDetails) -> dict[str, Any]:
        """Patient columns for the appointment row."""
        values = patient.model_dump(include=set(PatientDetails.model_fields))
        if patient.patient_gender is not None:
            values["patient_gender"] = patient.patient_gender.value
        return values
