"""Time slot table using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Table,
    Time,
    Uuid,
    func,
    true,
)

from echannel.models.metadata import metadata

time_slots = Table(
    "time_slots",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("doctors.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    # Schedule window
    Column("date", Date, nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    # Capacity. current_bookings is written only by the booking and
    # cancellation paths in BookingService and TimeSlotService.cancel_time_slot.
    Column("max_appointments", Integer, nullable=False, default=20, server_default="20"),
    Column("current_bookings", Integer, nullable=False, default=0, server_default="0"),
    Column("consultation_fee", Numeric(10, 2), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint("max_appointments > 0", name="max_appointments_positive"),
    CheckConstraint("current_bookings >= 0", name="current_bookings_non_negative"),
    CheckConstraint(
        "current_bookings <= max_appointments",
        name="current_bookings_within_capacity",
    ),
    CheckConstraint("end_time > start_time", name="end_after_start"),
    CheckConstraint("consultation_fee >= 0", name="consultation_fee_non_negative"),
    Index("ix_time_slots_doctor_date", "doctor_id", "date"),
)
