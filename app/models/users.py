"""User model definition using SQLAlchemy Core.

Rows are owned by the identity provider; this service only reads them.
"""

from uuid import uuid4

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

from app.models.base import metadata

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("email", Text, nullable=False, unique=True, index=True),
    # Profile info (copied into appointments at booking time)
    Column("full_name", Text, nullable=False),
    Column("phone", String(20)),
    Column("role", String(20), nullable=False, server_default="patient"),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=true()),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("role IN ('patient', 'doctor', 'admin')", name="users_role_check"),
)
