"""Doctor model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
    true,
)

from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    Column("full_name", Text, nullable=False),
    Column("email", Text),
    Column("specialization", String(200), index=True),
    # Fallback fee when a practice location does not set its own
    Column("consultation_fee", Numeric(10, 2)),
    Column("address", JSON),
    # Example: {"street": "...", "city": "...", "state": "...", "zip_code": "...", "country": "India"}
    # Legacy flat weekly pattern, used only when no practice location is active
    Column("available_slots", JSON),
    # Example: [{"day": "monday", "start_time": "09:00", "end_time": "13:00", "is_active": true}]
    Column("is_active", Boolean, nullable=False, server_default=true(), index=True),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
