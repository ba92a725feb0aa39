"""Time slot endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from echannel.dependencies import CurrentUser, DatabaseSession
from echannel.schemas.time_slots import (
    AvailabilityQuery,
    AvailabilityResponse,
    BulkCreateResult,
    BulkTimeSlotCreate,
    CapacityUpdate,
    SlotCancelRequest,
    SlotCancelResult,
    TimeSlotCreate,
    TimeSlotDetailResponse,
    TimeSlotFilters,
    TimeSlotListResponse,
    TimeSlotResponse,
    TimeSlotUpdate,
)
from echannel.services.time_slot_service import TimeSlotService

router = APIRouter()


@router.post(
    "/",
    response_model=TimeSlotResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Time Slots"],
    summary="Create time slot",
)
async def create_time_slot(
    data: TimeSlotCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> TimeSlotResponse:
    """
    Create a bookable window for a doctor.

    Args:
        data: Doctor, date, window, capacity and fee
        current_user: Authenticated user
        db: Database session

    Returns:
        Created time slot
    """
    service = TimeSlotService(db)
    return await service.create_time_slot(data)


@router.get(
    "/",
    response_model=TimeSlotListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Time Slots"],
    summary="List time slots",
)
async def list_time_slots(
    current_user: CurrentUser,
    db: DatabaseSession,
    doctor_id: UUID | None = Query(None),
    slot_date: date | None = Query(None, alias="date"),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    is_active: bool | None = Query(None),
    has_availability: bool | None = Query(None),
    specialization: str | None = Query(None),
    hospital_id: UUID | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> TimeSlotListResponse:
    """List time slots ordered by date and start time."""
    filters = TimeSlotFilters(
        doctor_id=doctor_id,
        date=slot_date,
        date_from=date_from,
        date_to=date_to,
        is_active=is_active,
        has_availability=has_availability,
        specialization=specialization,
        hospital_id=hospital_id,
        limit=limit,
        offset=offset,
    )

    service = TimeSlotService(db)
    return await service.list_time_slots(filters)


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    tags=["Time Slots"],
    summary="Search available slots",
)
async def get_availability(
    current_user: CurrentUser,
    db: DatabaseSession,
    doctor_id: UUID | None = Query(None),
    slot_date: date | None = Query(None, alias="date"),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    specialization: str | None = Query(None),
    hospital_id: UUID | None = Query(None),
    min_available_slots: int = Query(1, ge=0),
    include_fully_booked: bool = Query(False),
) -> AvailabilityResponse:
    """
    Search bookable slots grouped by date.

    Without a date or range the search covers the upcoming booking window.

    Returns:
        Summary counts and per-day slot listings
    """
    query = AvailabilityQuery(
        doctor_id=doctor_id,
        date=slot_date,
        date_from=date_from,
        date_to=date_to,
        specialization=specialization,
        hospital_id=hospital_id,
        min_available_slots=min_available_slots,
        include_fully_booked=include_fully_booked,
    )

    service = TimeSlotService(db)
    return await service.get_availability(query)


@router.post(
    "/bulk",
    response_model=BulkCreateResult,
    status_code=status.HTTP_201_CREATED,
    tags=["Time Slots"],
    summary="Create time slots in bulk",
)
async def bulk_create_time_slots(
    data: BulkTimeSlotCreate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> BulkCreateResult:
    """
    Create slots for each day of a date range and each daily window.

    Args:
        data: Date range, daily windows and exclusions
        current_user: Authenticated user
        db: Database session

    Returns:
        Created slots and any skipped conflicts
    """
    service = TimeSlotService(db)
    return await service.bulk_create_time_slots(data)


@router.get(
    "/{time_slot_id}",
    response_model=TimeSlotDetailResponse,
    status_code=status.HTTP_200_OK,
    tags=["Time Slots"],
    summary="Get time slot",
)
async def get_time_slot(
    time_slot_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> TimeSlotDetailResponse:
    """Get a time slot with its doctor, hospital and live appointment count."""
    service = TimeSlotService(db)
    return await service.get_time_slot(time_slot_id)


@router.put(
    "/{time_slot_id}",
    response_model=TimeSlotResponse,
    status_code=status.HTTP_200_OK,
    tags=["Time Slots"],
    summary="Update time slot",
)
async def update_time_slot(
    time_slot_id: UUID,
    data: TimeSlotUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> TimeSlotResponse:
    """
    Update a time slot.

    Date and times cannot change while the slot holds active appointments,
    and capacity cannot drop below current bookings.
    """
    service = TimeSlotService(db)
    return await service.update_time_slot(time_slot_id, data)


@router.patch(
    "/{time_slot_id}/capacity",
    response_model=TimeSlotResponse,
    status_code=status.HTTP_200_OK,
    tags=["Time Slots"],
    summary="Change time slot capacity",
)
async def update_capacity(
    time_slot_id: UUID,
    data: CapacityUpdate,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> TimeSlotResponse:
    """Change the number of appointments a slot accepts."""
    service = TimeSlotService(db)
    return await service.update_capacity(time_slot_id, data.max_appointments)


@router.patch(
    "/{time_slot_id}/toggle-active",
    response_model=TimeSlotResponse,
    status_code=status.HTTP_200_OK,
    tags=["Time Slots"],
    summary="Toggle time slot active flag",
)
async def toggle_active(
    time_slot_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> TimeSlotResponse:
    """Open or close a slot for booking."""
    service = TimeSlotService(db)
    return await service.toggle_active(time_slot_id)


@router.post(
    "/{time_slot_id}/cancel",
    response_model=SlotCancelResult,
    status_code=status.HTTP_200_OK,
    tags=["Time Slots"],
    summary="Cancel time slot",
)
async def cancel_time_slot(
    time_slot_id: UUID,
    data: SlotCancelRequest,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> SlotCancelResult:
    """
    Cancel a slot and every live appointment in it.

    Args:
        time_slot_id: Time slot ID
        data: Reason recorded on each cancelled appointment
        current_user: Authenticated user
        db: Database session

    Returns:
        Deactivated slot and the number of appointments cancelled
    """
    service = TimeSlotService(db)
    return await service.cancel_time_slot(time_slot_id, data.reason)


@router.delete(
    "/{time_slot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Time Slots"],
    summary="Delete time slot",
)
async def delete_time_slot(
    time_slot_id: UUID,
    current_user: CurrentUser,
    db: DatabaseSession,
) -> None:
    """Delete a slot that has never been booked."""
    service = TimeSlotService(db)
    await service.delete_time_slot(time_slot_id)
