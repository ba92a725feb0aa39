"""Hospital table using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    String,
    Table,
    Text,
    Uuid,
    func,
    true,
)

from echannel.models.metadata import metadata

hospitals = Table(
    "hospitals",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    Column("name", Text, nullable=False),
    # Location
    Column("address", Text, nullable=False),
    Column("city", String(100), nullable=False, index=True),
    Column("district", String(100), nullable=False, index=True),
    # Contact
    Column("contact_number", String(20), nullable=False),
    Column("email", Text, nullable=False),
    Column("website", Text),
    Column("facilities", JSON),
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
)
