"""Doctor table using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
    true,
)

from echannel.models.metadata import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column(
        "hospital_id",
        Uuid,
        ForeignKey("hospitals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column("name", Text, nullable=False),
    Column("email", Text, nullable=False, unique=True),
    # Professional details
    Column("specialization", String(200), nullable=False, index=True),
    Column("qualification", Text, nullable=False),
    Column("experience_years", Integer, nullable=False, default=0, server_default="0"),
    Column("consultation_fee", Numeric(10, 2), nullable=False),
    Column("rating", Numeric(3, 2)),
    Column("description", Text),
    Column("languages", JSON),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    CheckConstraint("consultation_fee >= 0", name="consultation_fee_non_negative"),
)
