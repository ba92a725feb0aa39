"""Directory service for hospitals and doctors."""

import hashlib
import json
from uuid import UUID

import structlog
from sqlalchemy import and_, select, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from echannel.config import settings
from echannel.core.exceptions import ConflictException, NotFoundException
from echannel.core.redis_client import CacheManager
from echannel.models.doctors import doctors
from echannel.models.hospitals import hospitals
from echannel.schemas.doctors import (
    DoctorCreate,
    DoctorSearchParams,
    DoctorUpdate,
    HospitalCreate,
    HospitalSearchParams,
)

logger = structlog.get_logger(__name__)


def _list_cache_key(prefix: str, params: dict) -> str:
    """Stable cache key for a filtered listing."""
    digest = hashlib.md5(json.dumps(params, sort_keys=True, default=str).encode()).hexdigest()
    return f"{prefix}:list:{digest}"


class HospitalService:
    """Service for hospital operations."""

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_hospital_cache_key(hospital_id: UUID) -> str:
        """Generate cache key for hospital."""
        return f"hospital:{hospital_id}"

    async def create_hospital(self, db: AsyncSession, hospital_data: HospitalCreate) -> dict:
        """Register a new hospital."""
        query = hospitals.insert().values(**hospital_data.model_dump()).returning(hospitals)

        result = await db.execute(query)
        hospital = result.mappings().one()
        await db.commit()

        if self.cache:
            self.cache.delete_pattern("hospital:list:*")

        logger.info("hospital_created", hospital_id=str(hospital["id"]))
        return dict(hospital)

    async def get_hospital_by_id(self, db: AsyncSession, hospital_id: UUID) -> dict | None:
        """Get hospital by ID with caching."""
        if self.cache:
            cached = self.cache.get_json(self._get_hospital_cache_key(hospital_id))
            if cached:
                return cached

        result = await db.execute(select(hospitals).where(hospitals.c.id == hospital_id))
        hospital = result.mappings().first()

        if not hospital:
            return None

        hospital_dict = dict(hospital)

        if self.cache:
            self.cache.set_json(
                self._get_hospital_cache_key(hospital_id),
                hospital_dict,
                ttl=settings.doctor_cache_ttl,
            )

        return hospital_dict

    async def get_hospitals(self, db: AsyncSession, params: HospitalSearchParams) -> list[dict]:
        """List hospitals, ordered by name."""
        cache_key = _list_cache_key("hospital", params.model_dump())
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached is not None:
                return cached

        conditions: list = []

        if params.city:
            conditions.append(hospitals.c.city.ilike(params.city))

        if params.district:
            conditions.append(hospitals.c.district.ilike(params.district))

        if params.is_active is not None:
            conditions.append(hospitals.c.is_active.is_(params.is_active))

        query = (
            select(hospitals)
            .where(and_(true(), *conditions))
            .order_by(hospitals.c.name)
            .offset(params.skip)
            .limit(params.limit)
        )

        result = await db.execute(query)
        hospital_list = [dict(h) for h in result.mappings().all()]

        if self.cache:
            self.cache.set_json(cache_key, hospital_list, ttl=settings.directory_list_cache_ttl)

        return hospital_list


class DoctorService:
    """Service for doctor operations."""

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_doctor_cache_key(doctor_id: UUID) -> str:
        """Generate cache key for doctor."""
        return f"doctor:{doctor_id}"

    async def create_doctor(self, db: AsyncSession, doctor_data: DoctorCreate) -> dict:
        """
        Create a doctor at an existing hospital.

        Raises:
            NotFoundException: Hospital does not exist
            ConflictException: Email already registered
        """
        hospital = await db.execute(
            select(hospitals.c.id).where(hospitals.c.id == doctor_data.hospital_id)
        )
        if hospital.scalar_one_or_none() is None:
            raise NotFoundException("Hospital not found")

        query = doctors.insert().values(**doctor_data.model_dump()).returning(doctors)

        try:
            result = await db.execute(query)
            doctor = result.mappings().one()
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictException("A doctor with this email already exists") from e

        # Invalidate cache
        if self.cache:
            self.cache.delete_pattern("doctor:list:*")

        logger.info("doctor_created", doctor_id=str(doctor["id"]))
        return dict(doctor)

    async def get_doctor_by_id(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """Get doctor with hospital name and city, with caching."""
        # Try cache first
        if self.cache:
            cached = self.cache.get_json(self._get_doctor_cache_key(doctor_id))
            if cached:
                return cached

        query = (
            select(
                doctors,
                hospitals.c.name.label("hospital_name"),
                hospitals.c.city.label("hospital_city"),
            )
            .join(hospitals, doctors.c.hospital_id == hospitals.c.id)
            .where(doctors.c.id == doctor_id)
        )
        result = await db.execute(query)
        doctor = result.mappings().first()

        if not doctor:
            return None

        doctor_dict = dict(doctor)

        # Cache result
        if self.cache:
            self.cache.set_json(
                self._get_doctor_cache_key(doctor_id),
                doctor_dict,
                ttl=settings.doctor_cache_ttl,
            )

        return doctor_dict

    async def get_doctors(self, db: AsyncSession, params: DoctorSearchParams) -> list[dict]:
        """List doctors with filtering, most experienced first."""
        cache_key = _list_cache_key("doctor", params.model_dump())
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached is not None:
                return cached

        conditions: list = []

        if params.specialization:
            conditions.append(doctors.c.specialization.ilike(f"%{params.specialization}%"))

        if params.hospital_id:
            conditions.append(doctors.c.hospital_id == params.hospital_id)

        if params.name:
            conditions.append(doctors.c.name.ilike(f"%{params.name}%"))

        if params.min_experience is not None:
            conditions.append(doctors.c.experience_years >= params.min_experience)

        if params.is_active is not None:
            conditions.append(doctors.c.is_active.is_(params.is_active))

        query = (
            select(doctors)
            .where(and_(true(), *conditions))
            .order_by(doctors.c.experience_years.desc(), doctors.c.name)
            .offset(params.skip)
            .limit(params.limit)
        )

        result = await db.execute(query)
        doctor_list = [dict(d) for d in result.mappings().all()]

        if self.cache:
            self.cache.set_json(cache_key, doctor_list, ttl=settings.directory_list_cache_ttl)

        return doctor_list

    async def update_doctor(
        self, db: AsyncSession, doctor_id: UUID, doctor_data: DoctorUpdate
    ) -> dict | None:
        """
        Update doctor information.

        Existing appointments keep the doctor name and fee captured at booking.
        """
        update_values = doctor_data.model_dump(exclude_none=True)

        if not update_values:
            return await self.get_doctor_by_id(db, doctor_id)

        query = (
            update(doctors)
            .where(doctors.c.id == doctor_id)
            .values(**update_values)
            .returning(doctors)
        )

        result = await db.execute(query)
        updated_doctor = result.mappings().first()
        await db.commit()

        if not updated_doctor:
            return None

        # Invalidate cache
        if self.cache:
            self.cache.delete(self._get_doctor_cache_key(doctor_id))
            self.cache.delete_pattern("doctor:list:*")

        return await self.get_doctor_by_id(db, doctor_id)
