"""API v1 router configuration."""

from fastapi import APIRouter

from echannel.api.v1.endpoints import (
    appointments,
    auth,
    doctors,
    health,
    hospitals,
    time_slots,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(hospitals.router, prefix="/hospitals", tags=["Hospitals"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["Doctors"])
api_router.include_router(time_slots.router, prefix="/time-slots", tags=["Time Slots"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
