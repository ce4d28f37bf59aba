"""Per-day queue counters using SQLAlchemy Core.

One row per (doctor, location, date). Bookings increment ``last_queue_number``
with a single conditional UPDATE; the row lock it takes serializes bookings
for the same key until the booking transaction ends.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    Table,
    Uuid,
    func,
)

from app.models.base import metadata

queue_counters = Table(
    "queue_counters",
    metadata,
    Column("doctor_id", Uuid, primary_key=True),
    Column("location_id", Uuid, primary_key=True),
    Column("appointment_date", Date, primary_key=True),
    Column("last_queue_number", Integer, nullable=False, server_default="0"),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("last_queue_number >= 0", name="queue_counters_last_queue_number_check"),
)
