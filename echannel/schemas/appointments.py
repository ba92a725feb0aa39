"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"


# Statuses that still hold a seat in their time slot
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.RESCHEDULED,
)


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class Gender(str, Enum):
    """Patient gender enumeration."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


def _validate_phone(v: str) -> str:
    cleaned = v.replace("-", "").replace(" ", "").replace("(", "").replace(")", "").replace("+", "")
    if not cleaned.isdigit():
        raise ValueError("Phone number must contain only digits and separators")
    if len(cleaned) < 10:
        raise ValueError("Phone number must have at least 10 digits")
    return v


def _validate_birth_date(v: date | None) -> date | None:
    if v and v > date.today():
        raise ValueError("Date of birth cannot be in the future")
    return v


class PatientDetails(BaseModel):
    """Patient identity and demographic fields captured at booking."""

    patient_name: str = Field(..., min_length=1, max_length=200)
    patient_email: EmailStr
    patient_phone: str = Field(..., min_length=10, max_length=20)
    patient_nic: str | None = Field(None, max_length=20)
    patient_date_of_birth: date | None = None
    patient_gender: Gender | None = None
    emergency_contact_name: str | None = Field(None, max_length=200)
    emergency_contact_phone: str | None = Field(None, max_length=20)
    medical_history: str | None = Field(None, max_length=2000)
    current_medications: str | None = Field(None, max_length=2000)
    allergies: str | None = Field(None, max_length=1000)
    insurance_provider: str | None = Field(None, max_length=200)
    insurance_policy_number: str | None = Field(None, max_length=100)
    is_new_patient: bool = True
    notes: str | None = Field(None, max_length=1000)

    @field_validator("patient_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Validate phone number format."""
        return _validate_phone(v)

    @field_validator("emergency_contact_phone")
    @classmethod
    def validate_emergency_phone(cls, v: str | None) -> str | None:
        """Validate optional emergency contact phone."""
        if v is None:
            return v
        return _validate_phone(v)

    @field_validator("patient_date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date | None) -> date | None:
        """Reject birth dates in the future."""
        return _validate_birth_date(v)


class AppointmentCreate(PatientDetails):
    """Schema for booking an appointment against a time slot."""

    time_slot_id: UUID


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    reason: str | None = Field(None, max_length=500)


class PaymentStatusUpdate(BaseModel):
    """Schema for updating payment status."""

    payment_status: PaymentStatus


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""

    reason: str = Field(..., min_length=1, max_length=500)


class AppointmentUpdate(BaseModel):
    """
    Correctable patient details and notes.

    Slot, doctor, hospital, schedule and fee are captured at booking and
    cannot be edited; rebook to change them.
    """

    patient_name: str | None = Field(None, min_length=1, max_length=200)
    patient_email: EmailStr | None = None
    patient_phone: str | None = Field(None, min_length=10, max_length=20)
    patient_nic: str | None = Field(None, max_length=20)
    patient_date_of_birth: date | None = None
    patient_gender: Gender | None = None
    emergency_contact_name: str | None = Field(None, max_length=200)
    emergency_contact_phone: str | None = Field(None, max_length=20)
    medical_history: str | None = Field(None, max_length=2000)
    current_medications: str | None = Field(None, max_length=2000)
    allergies: str | None = Field(None, max_length=1000)
    insurance_provider: str | None = Field(None, max_length=200)
    insurance_policy_number: str | None = Field(None, max_length=100)
    notes: str | None = Field(None, max_length=1000)

    model_config = {"extra": "forbid"}

    @field_validator("patient_phone", "emergency_contact_phone")
    @classmethod
    def validate_phones(cls, v: str | None) -> str | None:
        """Validate phone number format."""
        if v is None:
            return v
        return _validate_phone(v)

    @field_validator("patient_date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date | None) -> date | None:
        """Reject birth dates in the future."""
        return _validate_birth_date(v)


class BulkAction(str, Enum):
    """Actions applied by a bulk appointment update."""

    CANCEL = "cancel"
    CONFIRM = "confirm"
    COMPLETE = "complete"


class BulkAppointmentUpdate(BaseModel):
    """Schema for applying one action to many appointments."""

    appointment_ids: list[UUID] = Field(..., min_length=1, max_length=100)
    action: BulkAction
    cancellation_reason: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)


class BulkUpdateItemResult(BaseModel):
    """Outcome for one appointment of a bulk update."""

    appointment_id: UUID
    success: bool
    status: AppointmentStatus | None = None
    error: str | None = None


class BulkUpdateSummary(BaseModel):
    """Counts for a bulk update."""

    total: int
    successful: int
    failed: int


class BulkUpdateResponse(BaseModel):
    """Per-appointment results of a bulk update and their summary."""

    action: BulkAction
    results: list[BulkUpdateItemResult]
    summary: BulkUpdateSummary


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    appointment_number: str
    patient_name: str
    patient_email: str
    patient_phone: str
    patient_nic: str | None = None
    patient_date_of_birth: date | None = None
    patient_gender: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    medical_history: str | None = None
    current_medications: str | None = None
    allergies: str | None = None
    insurance_provider: str | None = None
    insurance_policy_number: str | None = None
    is_new_patient: bool
    time_slot_id: UUID
    booked_by_id: UUID
    doctor_id: UUID
    doctor_name: str
    hospital_id: UUID
    hospital_name: str
    appointment_date: date
    appointment_time: time
    consultation_fee: Decimal
    total_amount: Decimal
    queue_position: int | None = None
    estimated_wait_time: int | None = None
    status: AppointmentStatus
    payment_status: PaymentStatus
    notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", "total_amount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    doctor_id: UUID | None = None
    hospital_id: UUID | None = None
    time_slot_id: UUID | None = None
    booked_by_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None
    patient_email: str | None = None
    appointment_number: str | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
