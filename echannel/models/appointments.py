"""Appointments table model using SQLAlchemy Core."""

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
    String,
    Table,
    Text,
    Time,
    Uuid,
    func,
    true,
)

from echannel.models.metadata import metadata

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("appointment_number", String(32), nullable=False, unique=True),
    # Patient
    Column("patient_name", Text, nullable=False),
    Column("patient_email", Text, nullable=False),
    Column("patient_phone", String(20), nullable=False),
    Column("patient_nic", String(20)),
    Column("patient_date_of_birth", Date),
    Column("patient_gender", String(10)),
    Column("emergency_contact_name", Text),
    Column("emergency_contact_phone", String(20)),
    Column("medical_history", Text),
    Column("current_medications", Text),
    Column("allergies", Text),
    Column("insurance_provider", Text),
    Column("insurance_policy_number", Text),
    Column("is_new_patient", Boolean, nullable=False, default=True, server_default=true()),
    # Ownership / references
    Column(
        "time_slot_id",
        Uuid,
        ForeignKey("time_slots.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("booked_by_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    # Snapshot fields (copied from the slot at booking time)
    Column("doctor_id", Uuid, nullable=False, index=True),
    Column("doctor_name", Text, nullable=False),
    Column("hospital_id", Uuid, nullable=False),
    Column("hospital_name", Text, nullable=False),
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", Time, nullable=False),
    Column("consultation_fee", Numeric(10, 2), nullable=False),
    Column("total_amount", Numeric(10, 2), nullable=False),
    # Queue
    Column("queue_position", Integer),
    Column("estimated_wait_time", Integer),
    # Status management
    Column("status", String(20), nullable=False, server_default="confirmed"),
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    Column("notes", Text),
    Column("cancellation_reason", Text),
    Column("cancelled_at", DateTime(timezone=True)),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'no_show', 'rescheduled')",
        name="status",
    ),
    CheckConstraint(
        "payment_status IN ('pending', 'completed', 'failed', 'refunded', 'cancelled')",
        name="payment_status",
    ),
    Index("ix_appointments_date_status", "appointment_date", "status"),
)
