"""Hospital directory endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.core.exceptions import NotFoundException
from echannel.core.redis_client import CacheManager, get_cache_manager
from echannel.database import get_db
from echannel.dependencies import CurrentUser
from echannel.schemas.doctors import HospitalCreate, HospitalResponse, HospitalSearchParams
from echannel.services.doctor_service import HospitalService

router = APIRouter()


def get_hospital_service(
    cache_manager: CacheManager = Depends(get_cache_manager),
) -> HospitalService:
    """Get hospital service instance."""
    return HospitalService(cache_manager=cache_manager)


@router.post("/", response_model=HospitalResponse, status_code=status.HTTP_201_CREATED)
async def create_hospital(
    hospital_data: HospitalCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    hospital_service: HospitalService = Depends(get_hospital_service),
):
    """Register a hospital."""
    return await hospital_service.create_hospital(db, hospital_data)


@router.get("/", response_model=list[HospitalResponse])
async def list_hospitals(
    current_user: CurrentUser,
    city: str | None = Query(None, description="Filter by city"),
    district: str | None = Query(None, description="Filter by district"),
    is_active: bool | None = Query(True, description="Filter by active flag"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    hospital_service: HospitalService = Depends(get_hospital_service),
):
    """List hospitals by name."""
    params = HospitalSearchParams(
        city=city, district=district, is_active=is_active, skip=skip, limit=limit
    )
    return await hospital_service.get_hospitals(db, params)


@router.get("/{hospital_id}", response_model=HospitalResponse)
async def get_hospital(
    hospital_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    hospital_service: HospitalService = Depends(get_hospital_service),
):
    """Get a hospital by ID."""
    hospital = await hospital_service.get_hospital_by_id(db, hospital_id)
    if not hospital:
        raise NotFoundException("Hospital not found")
    return hospital
