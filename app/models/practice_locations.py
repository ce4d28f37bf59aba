"""Practice location model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Uuid,
    func,
    true,
)

from app.models.base import metadata

practice_locations = Table(
    "practice_locations",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String(200), nullable=False),
    Column("address", JSON),
    Column("consultation_fee", Numeric(10, 2)),
    # Daily capacity; NULL falls back to the configured default
    Column("patients_per_day", Integer),
    Column("available_slots", JSON),
    # Example: [{"day": "tue", "start_time": "09:00", "end_time": "17:00", "is_active": true}]
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint(
        "patients_per_day IS NULL OR patients_per_day > 0",
        name="practice_locations_capacity_check",
    ),
)

Index(
    "idx_practice_locations_doctor_active",
    practice_locations.c.doctor_id,
    practice_locations.c.is_active,
)
