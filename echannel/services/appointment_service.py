"""Appointment service for queries and status management."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, select, true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.core.exceptions import (
    AppException,
    ConflictException,
    NotFoundException,
    PersistenceException,
)
from echannel.models.appointments import appointments
from echannel.schemas.appointments import (
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    BulkAction,
    BulkAppointmentUpdate,
    BulkUpdateItemResult,
    BulkUpdateResponse,
    BulkUpdateSummary,
    PaymentStatusUpdate,
)
from echannel.services.booking_service import BookingService

logger = structlog.get_logger(__name__)


class AppointmentService:
    """Service for reading and updating booked appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row))

    async def get_by_number(self, appointment_number: str) -> AppointmentResponse:
        """Get appointment by its human-readable number."""
        result = await self.db.execute(
            select(appointments).where(appointments.c.appointment_number == appointment_number)
        )
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        return AppointmentResponse.model_validate(dict(row))

    async def list_appointments(self, filters: AppointmentFilters) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments, newest first
        """
        conditions: list[Any] = []

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)

        if filters.hospital_id:
            conditions.append(appointments.c.hospital_id == filters.hospital_id)

        if filters.time_slot_id:
            conditions.append(appointments.c.time_slot_id == filters.time_slot_id)

        if filters.booked_by_id:
            conditions.append(appointments.c.booked_by_id == filters.booked_by_id)

        if filters.date_from:
            conditions.append(appointments.c.appointment_date >= filters.date_from)

        if filters.date_to:
            conditions.append(appointments.c.appointment_date <= filters.date_to)

        if filters.patient_email:
            conditions.append(appointments.c.patient_email.ilike(f"%{filters.patient_email}%"))

        if filters.appointment_number:
            conditions.append(
                appointments.c.appointment_number.ilike(f"%{filters.appointment_number}%")
            )

        where_clause = and_(true(), *conditions)

        count_stmt = select(func.count()).select_from(appointments).where(where_clause)
        total = (await self.db.execute(count_stmt)).scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            select(appointments)
            .where(where_clause)
            .order_by(appointments.c.created_at.desc(), appointments.c.appointment_number.desc())
            .limit(filters.page_size)
            .offset(offset)
        )
        rows = (await self.db.execute(stmt)).mappings().all()

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[AppointmentResponse.model_validate(dict(row)) for row in rows],
        )

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new status.

        Cancellation goes through BookingService so the slot seat is released.
        A cancelled appointment cannot be revived; the patient books again.
        """
        if data.status == AppointmentStatus.CANCELLED:
            return await BookingService(self.db).cancel_appointment(appointment_id, data.reason)

        return await self._change_status(appointment_id, data.status)

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """
        Correct patient details or notes on an appointment.

        Booking snapshot fields (slot, doctor, hospital, schedule, fee) are
        not part of the update schema and stay as captured.

        Raises:
            NotFoundException: If appointment not found
        """
        values = data.model_dump(exclude_none=True)
        if not values:
            return await self.get_appointment(appointment_id)

        if "patient_gender" in values:
            values["patient_gender"] = data.patient_gender.value

        row = await self._update(appointment_id, values)
        if row is None:
            raise NotFoundException("Appointment not found")

        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            fields=sorted(values),
        )
        return row

    async def bulk_update(self, data: BulkAppointmentUpdate) -> BulkUpdateResponse:
        """
        Apply one action to each listed appointment independently.

        Every appointment is committed on its own; a failure is recorded
        against that id and the rest of the batch carries on. Cancels go
        through BookingService so each releases its seat.
        """
        booking_service = BookingService(self.db)
        results: list[BulkUpdateItemResult] = []

        for appointment_id in data.appointment_ids:
            try:
                if data.action == BulkAction.CANCEL:
                    row = await booking_service.cancel_appointment(
                        appointment_id, data.cancellation_reason or "Bulk cancellation"
                    )
                elif data.action == BulkAction.CONFIRM:
                    row = await self._change_status(appointment_id, AppointmentStatus.CONFIRMED)
                else:
                    row = await self._change_status(
                        appointment_id, AppointmentStatus.COMPLETED, notes=data.notes
                    )
            except AppException as e:
                results.append(
                    BulkUpdateItemResult(
                        appointment_id=appointment_id, success=False, error=e.message
                    )
                )
                continue

            results.append(
                BulkUpdateItemResult(appointment_id=appointment_id, success=True, status=row.status)
            )

        successful = sum(1 for r in results if r.success)
        logger.info(
            "appointments_bulk_updated",
            action=data.action.value,
            total=len(results),
            successful=successful,
        )
        return BulkUpdateResponse(
            action=data.action,
            results=results,
            summary=BulkUpdateSummary(
                total=len(results),
                successful=successful,
                failed=len(results) - successful,
            ),
        )

    async def _change_status(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatus,
        notes: str | None = None,
    ) -> AppointmentResponse:
        current = await self.get_appointment(appointment_id)
        if current.status == new_status and notes is None:
            return current

        values: dict[str, Any] = {"status": new_status.value}
        if notes is not None:
            values["notes"] = notes

        row = await self._update(
            appointment_id,
            values,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        )
        if row is None:
            raise ConflictException("Cancelled appointments cannot change status")

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current.status.value,
            new_status=new_status.value,
        )
        return row

    async def update_payment_status(
        self,
        appointment_id: UUID,
        data: PaymentStatusUpdate,
    ) -> AppointmentResponse:
        """Record a payment status reported by the payment collaborator."""
        row = await self._update(appointment_id, {"payment_status": data.payment_status.value})
        if row is None:
            raise NotFoundException("Appointment not found")
        return row

    async def _update(
        self,
        appointment_id: UUID,
        values: dict[str, Any],
        *conditions: Any,
    ) -> AppointmentResponse | None:
        try:
            result = await self.db.execute(
                update(appointments)
                .where(appointments.c.id == appointment_id, *conditions)
                .values(**values)
                .returning(appointments)
            )
            row = result.mappings().first()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceException("Could not update appointment") from e

        return AppointmentResponse.model_validate(dict(row)) if row else None
