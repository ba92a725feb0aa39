"""Time slot schemas for request/response validation."""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from echannel.config import settings


class SlotStatus(str, Enum):
    """Booking pressure on a time slot."""

    AVAILABLE = "AVAILABLE"
    FILLING_FAST = "FILLING_FAST"
    FULL = "FULL"


class TimeSlotBase(BaseModel):
    """Base time slot schema with common fields."""

    date: dt.date
    start_time: dt.time
    end_time: dt.time
    max_appointments: int = Field(..., ge=1, le=settings.max_slot_capacity)
    consultation_fee: Decimal = Field(..., ge=0, decimal_places=2)

    @model_validator(mode="after")
    def validate_window(self) -> "TimeSlotBase":
        """Validate end time is after start time."""
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class TimeSlotCreate(TimeSlotBase):
    """Schema for creating a time slot."""

    doctor_id: UUID
    is_active: bool = True


class TimeSlotUpdate(BaseModel):
    """Schema for updating a time slot. Booking counters are not editable."""

    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    max_appointments: int | None = Field(None, ge=1, le=settings.max_slot_capacity)
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    is_active: bool | None = None


class CapacityUpdate(BaseModel):
    """Schema for changing a slot's capacity."""

    max_appointments: int = Field(..., ge=1, le=settings.max_slot_capacity)


class SlotCancelRequest(BaseModel):
    """Schema for cancelling a whole time slot."""

    reason: str = Field(..., min_length=1, max_length=500)


class TimeSlotResponse(BaseModel):
    """Schema for time slot response."""

    id: UUID
    doctor_id: UUID
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    max_appointments: int
    current_bookings: int
    consultation_fee: Decimal
    is_active: bool
    available_slots: int
    status: SlotStatus
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class TimeSlotDetailResponse(TimeSlotResponse):
    """Time slot with its doctor and live appointment count."""

    doctor_name: str
    specialization: str
    hospital_id: UUID
    hospital_name: str
    active_appointments: int


class TimeSlotListResponse(BaseModel):
    """Schema for paginated time slot list response."""

    total: int
    limit: int
    offset: int
    has_more: bool
    items: list[TimeSlotResponse]


class TimeSlotFilters(BaseModel):
    """Schema for time slot filtering."""

    doctor_id: UUID | None = None
    date: dt.date | None = None
    date_from: dt.date | None = None
    date_to: dt.date | None = None
    is_active: bool | None = None
    has_availability: bool | None = None
    specialization: str | None = None
    hospital_id: UUID | None = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class SlotCancelResult(BaseModel):
    """Result of cancelling a time slot."""

    time_slot: TimeSlotResponse
    cancelled_appointments: int
    cancelled_appointment_ids: list[UUID]


# ============================================================================
# Bulk creation
# ============================================================================


class TimeRange(BaseModel):
    """A daily window to create a slot for."""

    start_time: dt.time
    end_time: dt.time
    max_appointments: int = Field(..., ge=1, le=settings.max_slot_capacity)
    consultation_fee: Decimal = Field(..., ge=0, decimal_places=2)

    @model_validator(mode="after")
    def validate_window(self) -> "TimeRange":
        """Validate end time is after start time."""
        if self.end_time <= self.start_time:
            raise ValueError(
                f"Invalid time range: {self.start_time} must be before {self.end_time}"
            )
        return self


class BulkTimeSlotCreate(BaseModel):
    """Schema for creating slots across a date range."""

    doctor_id: UUID
    date_from: dt.date
    date_to: dt.date
    time_ranges: list[TimeRange] = Field(..., min_length=1)
    exclude_dates: list[dt.date] = Field(default_factory=list)
    # ISO weekdays: 1 = Monday ... 7 = Sunday
    exclude_weekdays: list[int] = Field(default_factory=list)
    is_active: bool = True
    skip_conflicts: bool = False

    @field_validator("exclude_weekdays")
    @classmethod
    def validate_weekdays(cls, v: list[int]) -> list[int]:
        """Validate weekday numbers."""
        for day in v:
            if day < 1 or day > 7:
                raise ValueError("Weekdays must be between 1 (Monday) and 7 (Sunday)")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "BulkTimeSlotCreate":
        """Validate the date range is ordered."""
        if self.date_from > self.date_to:
            raise ValueError("Invalid date range: date_from must not be after date_to")
        return self


class SlotConflict(BaseModel):
    """A requested window that overlaps an existing slot."""

    date: dt.date
    start_time: dt.time
    end_time: dt.time
    conflicting_slot_id: UUID | None = None
    reason: str = "Conflict with existing slot"


class BulkCreateResult(BaseModel):
    """Result of a bulk slot creation."""

    total_requested: int
    created: int
    skipped: int
    total_days: int
    items: list[TimeSlotResponse]
    skipped_slots: list[SlotConflict]


# ============================================================================
# Availability
# ============================================================================


class AvailabilityQuery(BaseModel):
    """Schema for availability search."""

    doctor_id: UUID | None = None
    date: dt.date | None = None
    date_from: dt.date | None = None
    date_to: dt.date | None = None
    specialization: str | None = None
    hospital_id: UUID | None = None
    min_available_slots: int = Field(default=1, ge=0)
    include_fully_booked: bool = False


class AvailableSlot(BaseModel):
    """One slot in an availability listing."""

    id: UUID
    doctor_id: UUID
    doctor_name: str
    specialization: str
    hospital_id: UUID
    hospital_name: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    max_appointments: int
    current_bookings: int
    available_slots: int
    consultation_fee: Decimal
    status: SlotStatus
    is_fully_booked: bool
    utilization_percentage: int

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class DoctorDayAvailability(BaseModel):
    """Per-doctor counts within one day."""

    doctor_id: UUID
    doctor_name: str
    specialization: str
    hospital_name: str
    slots_count: int = 0
    available_slots_count: int = 0
    next_available_time: dt.time | None = None


class DayAvailability(BaseModel):
    """All slots on one date."""

    date: dt.date
    total_slots: int = 0
    available_slots: int = 0
    fully_booked_slots: int = 0
    doctors: list[DoctorDayAvailability] = Field(default_factory=list)
    slots: list[AvailableSlot] = Field(default_factory=list)


class AvailabilitySummary(BaseModel):
    """Aggregate numbers over an availability listing."""

    total_slots: int
    available_slots: int
    fully_booked_slots: int
    unique_doctors: int
    unique_hospitals: int
    date_from: dt.date | None
    date_to: dt.date | None
    average_utilization: int


class AvailabilityResponse(BaseModel):
    """Availability grouped by date with a summary."""

    summary: AvailabilitySummary
    by_date: list[DayAvailability]
