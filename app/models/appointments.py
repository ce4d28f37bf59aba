"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
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
    UniqueConstraint,
    Uuid,
    false,
    func,
    text,
    true,
)

from app.models.base import metadata

# Statuses that hold a place in the day's capacity
COMMITTED_STATUS_SQL = "status NOT IN ('cancelled', 'no_show')"

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Ownership / references
    Column("patient_id", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("doctor_id", Uuid, ForeignKey("doctors.id"), nullable=False, index=True),
    # Practice location id, or the doctor's virtual location id
    Column("location_id", Uuid, nullable=False),
    Column("is_virtual_location", Boolean, nullable=False, server_default=false()),
    # Appointment details (calendar day + "HH:MM" slot bounds)
    Column("appointment_date", Date, nullable=False),
    Column("slot_start", String(5), nullable=False),
    Column("slot_end", String(5), nullable=False),
    Column("queue_number", Integer, nullable=False),
    # Snapshot fields (denormalized for history)
    Column("patient_name", Text, nullable=False),
    Column("patient_email", Text, nullable=False),
    Column("patient_phone", String(20), nullable=False, server_default=""),
    Column("doctor_name", Text, nullable=False),
    Column("location_name", Text, nullable=False),
    Column("location_address", JSON),
    Column("consultation_fee", Numeric(10, 2), nullable=False),
    # Status management
    Column("status", String(20), nullable=False, server_default="scheduled"),
    # Payment
    Column("payment_status", String(20), nullable=False, server_default="pending"),
    Column("payment_method", String(20), nullable=False, server_default="cash"),
    Column("payment_order_id", Text),
    Column("payment_id", Text),
    Column("paid_at", DateTime(timezone=True)),
    Column("payment_error", Text),
    # Cancellation
    Column("cancellation_reason", Text),
    Column("cancelled_by", String(20)),
    Column("cancelled_at", DateTime(timezone=True)),
    # Patient-provided details
    Column("symptoms", String(500)),
    Column("notes", String(1000)),
    # Archived appointments are hidden from listings
    Column("is_active", Boolean, nullable=False, server_default=true()),
    # Optimistic lock
    Column("version", Integer, nullable=False, server_default="1"),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint("queue_number > 0", name="appointments_queue_number_check"),
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
        name="appointments_payment_status_check",
    ),
    CheckConstraint(
        "cancelled_by IS NULL OR cancelled_by IN ('patient', 'doctor', 'system')",
        name="appointments_cancelled_by_check",
    ),
    # Queue numbers are never reused, cancelled rows included
    UniqueConstraint(
        "doctor_id",
        "location_id",
        "appointment_date",
        "queue_number",
        name="uq_appointments_queue_slot",
    ),
)

Index(
    "idx_appointments_booking_key",
    appointments.c.doctor_id,
    appointments.c.location_id,
    appointments.c.appointment_date,
)
Index("idx_appointments_patient_date", appointments.c.patient_id, appointments.c.appointment_date)

# One committed appointment per patient, doctor and day
Index(
    "uq_appointments_patient_doctor_day",
    appointments.c.patient_id,
    appointments.c.doctor_id,
    appointments.c.appointment_date,
    unique=True,
    postgresql_where=text(COMMITTED_STATUS_SQL),
    sqlite_where=text(COMMITTED_STATUS_SQL),
)
