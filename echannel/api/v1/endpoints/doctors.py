"""Doctor directory endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.core.exceptions import NotFoundException
from echannel.core.redis_client import CacheManager, get_cache_manager
from echannel.database import get_db
from echannel.dependencies import CurrentUser
from echannel.schemas.doctors import (
    DoctorCreate,
    DoctorDetailResponse,
    DoctorResponse,
    DoctorSearchParams,
    DoctorUpdate,
)
from echannel.services.doctor_service import DoctorService

router = APIRouter()


def get_doctor_service(cache_manager: CacheManager = Depends(get_cache_manager)) -> DoctorService:
    """Get doctor service instance."""
    return DoctorService(cache_manager=cache_manager)


@router.post("/", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    doctor_data: DoctorCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    """
    Add a doctor to a hospital.

    - **hospital_id**: Hospital the doctor practises at
    - **name**: Doctor's display name
    - **email**: Contact email (unique)
    - **specialization**: Primary medical specialization
    - **qualification**: Medical qualifications
    - **experience_years**: Years of medical experience
    - **consultation_fee**: Default consultation fee
    """
    return await doctor_service.create_doctor(db, doctor_data)


@router.get("/", response_model=list[DoctorResponse])
async def list_doctors(
    current_user: CurrentUser,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Number of records to return"),
    specialization: str | None = Query(None, description="Filter by specialization"),
    hospital_id: UUID | None = Query(None, description="Filter by hospital"),
    name: str | None = Query(None, description="Search by name"),
    min_experience: int | None = Query(None, ge=0, description="Minimum years of experience"),
    is_active: bool | None = Query(True, description="Filter by active flag"),
    db: AsyncSession = Depends(get_db),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    """List doctors, most experienced first."""
    params = DoctorSearchParams(
        specialization=specialization,
        hospital_id=hospital_id,
        name=name,
        min_experience=min_experience,
        is_active=is_active,
        skip=skip,
        limit=limit,
    )
    return await doctor_service.get_doctors(db, params)


@router.get("/{doctor_id}", response_model=DoctorDetailResponse)
async def get_doctor(
    doctor_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    """Get a doctor with their hospital."""
    doctor = await doctor_service.get_doctor_by_id(db, doctor_id)
    if not doctor:
        raise NotFoundException("Doctor not found")
    return doctor


@router.put("/{doctor_id}", response_model=DoctorDetailResponse)
async def update_doctor(
    doctor_id: UUID,
    doctor_data: DoctorUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    """
    Update doctor information.

    Fee changes apply to new slots only; booked appointments keep their fee.
    """
    doctor = await doctor_service.update_doctor(db, doctor_id, doctor_data)
    if not doctor:
        raise NotFoundException("Doctor not found")
    return doctor
