"""Agent user table using SQLAlchemy Core."""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
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

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid.uuid4),
    # Credentials
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("password_hash", Text, nullable=False),
    # Profile
    Column("name", Text, nullable=False),
    Column("role", String(20), nullable=False, default="agent", server_default="agent"),
    Column("company_name", Text),
    Column("contact_number", String(20)),
    # Account state
    Column("is_active", Boolean, nullable=False, default=True, server_default=true()),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    Column("last_login_at", DateTime(timezone=True)),
    CheckConstraint("role IN ('agent', 'admin')", name="role"),
)
