"""Hospital and doctor schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_serializer

# ============================================================================
# Hospital Schemas
# ============================================================================


class HospitalCreate(BaseModel):
    """Schema for registering a hospital."""

    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1, max_length=100)
    district: str = Field(..., min_length=1, max_length=100)
    contact_number: str = Field(..., min_length=7, max_length=20)
    email: EmailStr
    website: str | None = None
    facilities: list[str] | None = None


class HospitalResponse(HospitalCreate):
    """Hospital response schema."""

    id: UUID
    email: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HospitalSearchParams(BaseModel):
    """Hospital list filters."""

    city: str | None = None
    district: str | None = None
    is_active: bool | None = True
    skip: int = Field(0, ge=0)
    limit: int = Field(20, ge=1, le=100)


# ============================================================================
# Doctor Schemas
# ============================================================================


class DoctorBase(BaseModel):
    """Base schema for doctor."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    specialization: str = Field(..., min_length=1, max_length=200)
    qualification: str = Field(..., min_length=1)
    experience_years: int = Field(0, ge=0)
    consultation_fee: Decimal = Field(..., ge=0, decimal_places=2)
    description: str | None = None
    languages: list[str] | None = None


class DoctorCreate(DoctorBase):
    """Schema for creating a doctor."""

    hospital_id: UUID


class DoctorUpdate(BaseModel):
    """Schema for updating a doctor."""

    name: str | None = Field(None, min_length=1, max_length=255)
    specialization: str | None = Field(None, min_length=1, max_length=200)
    qualification: str | None = None
    experience_years: int | None = Field(None, ge=0)
    consultation_fee: Decimal | None = Field(None, ge=0, decimal_places=2)
    description: str | None = None
    languages: list[str] | None = None
    is_active: bool | None = None


class DoctorResponse(DoctorBase):
    """Doctor response schema."""

    id: UUID
    hospital_id: UUID
    email: str
    rating: Decimal | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", "rating", when_used="json")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class DoctorDetailResponse(DoctorResponse):
    """Doctor with the hospital they practice at."""

    hospital_name: str
    hospital_city: str


class DoctorSearchParams(BaseModel):
    """Doctor search parameters."""

    specialization: str | None = None
    hospital_id: UUID | None = None
    name: str | None = None
    min_experience: int | None = Field(None, ge=0)
    is_active: bool | None = True
    skip: int = Field(0, ge=0)
    limit: int = Field(20, ge=1, le=100)
