"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from echannel.dependencies import CurrentUser, DatabaseSession
from echannel.schemas.appointments import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    BulkAppointmentUpdate,
    BulkUpdateResponse,
    PaymentStatusUpdate,
)
from echannel.services.appointment_service import AppointmentService
from echannel.services.booking_service import BookingService

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Book a seat in a time slot on behalf of a patient.

    The authenticated agent is recorded as the booker. A full slot is
    rejected with 409 and the slot's capacity figures.

    Args:
        data: Time slot and patient details
        current_user: Authenticated agent
        db: Database session

    Returns:
        Created appointment with queue position and estimated wait
    """
    service = BookingService(db)
    return await service.book_with_retry(data.time_slot_id, data, current_user["id"])


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    current_user: CurrentUser,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    doctor_id: UUID | None = Query(None),
    hospital_id: UUID | None = Query(None),
    time_slot_id: UUID | None = Query(None),
    booked_by_id: UUID | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    patient_email: str | None = Query(None),
    appointment_number: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with filtering, newest first.

    Args:
        current_user: Authenticated agent
        db: Database session
        status_filter: Filter by status
        doctor_id: Filter by doctor ID
        hospital_id: Filter by hospital ID
        time_slot_id: Filter by time slot ID
        booked_by_id: Filter by booking agent
        date_from: Appointment date lower bound
        date_to: Appointment date upper bound
        patient_email: Partial patient email match
        appointment_number: Partial appointment number match
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        doctor_id=doctor_id,
        hospital_id=hospital_id,
        time_slot_id=time_slot_id,
        booked_by_id=booked_by_id,
        date_from=date_from,
        date_to=date_to,
        patient_email=patient_email,
        appointment_number=appointment_number,
        page=page,
        page_size=page_size,
    )

    service = AppointmentService(db)
    return await service.list_appointments(filters)


@router.get(
    "/number/{appointment_number}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by number",
)
async def get_appointment_by_number(
    appointment_number: str,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Look up an appointment by the number given to the patient."""
    service = AppointmentService(db)
    return await service.get_by_number(appointment_number)


@router.patch(
    "/bulk-update",
    response_model=BulkUpdateResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Bulk update appointments",
)
async def bulk_update_appointments(
    data: BulkAppointmentUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> BulkUpdateResponse:
    """
    Cancel, confirm or complete several appointments at once.

    Each appointment succeeds or fails on its own; failures are reported
    per ID and do not undo the others.

    Args:
        data: Appointment IDs, action and optional reason or notes
        current_user: Authenticated agent
        db: Database session

    Returns:
        Per-appointment results and a summary
    """
    service = AppointmentService(db)
    return await service.bulk_update(data)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Args:
        appointment_id: Appointment ID
        current_user: Authenticated agent
        db: Database session

    Returns:
        Appointment details
    """
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment details",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Correct patient details or notes. The booked slot cannot be changed here."""
    service = AppointmentService(db)
    return await service.update_appointment(appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Move an appointment to a new status; cancelling releases its seat."""
    service = AppointmentService(db)
    return await service.update_appointment_status(appointment_id, data)


@router.patch(
    "/{appointment_id}/payment-status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update payment status",
)
async def update_payment_status(
    appointment_id: UUID,
    data: PaymentStatusUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """Record the payment status of an appointment."""
    service = AppointmentService(db)
    return await service.update_payment_status(appointment_id, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    data: AppointmentCancel,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Cancel an appointment and free its seat in the time slot.

    Args:
        appointment_id: Appointment ID
        data: Cancellation reason
        current_user: Authenticated agent
        db: Database session

    Returns:
        Cancelled appointment
    """
    service = BookingService(db)
    return await service.cancel_appointment(appointment_id, data.reason)
