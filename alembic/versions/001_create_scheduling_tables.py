"""Create scheduling tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    ]


def upgrade() -> None:
    """Create users, doctors, practice locations, appointments and queue counters."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'patient'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('patient', 'doctor', 'admin')", name="users_role_check"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "doctors",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("specialization", sa.String(200), nullable=True),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=True),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("available_slots", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_doctors_user_id", "doctors", ["user_id"], unique=True)
    op.create_index("ix_doctors_specialization", "doctors", ["specialization"])
    op.create_index("ix_doctors_is_active", "doctors", ["is_active"])

    op.create_table(
        "practice_locations",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "doctor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("doctors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=True),
        sa.Column("patients_per_day", sa.Integer(), nullable=True),
        sa.Column("available_slots", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint(
            "patients_per_day IS NULL OR patients_per_day > 0",
            name="practice_locations_capacity_check",
        ),
    )
    op.create_index("ix_practice_locations_doctor_id", "practice_locations", ["doctor_id"])
    op.create_index(
        "idx_practice_locations_doctor_active",
        "practice_locations",
        ["doctor_id", "is_active"],
    )

    op.create_table(
        "appointments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "patient_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "doctor_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("doctors.id"),
            nullable=False,
        ),
        sa.Column("location_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "is_virtual_location", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("slot_start", sa.String(5), nullable=False),
        sa.Column("slot_end", sa.String(5), nullable=False),
        sa.Column("queue_number", sa.Integer(), nullable=False),
        # Snapshots taken at booking time
        sa.Column("patient_name", sa.Text(), nullable=False),
        sa.Column("patient_email", sa.Text(), nullable=False),
        sa.Column("patient_phone", sa.String(20), nullable=False, server_default=sa.text("''")),
        sa.Column("doctor_name", sa.Text(), nullable=False),
        sa.Column("location_name", sa.Text(), nullable=False),
        sa.Column("location_address", sa.JSON(), nullable=True),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'scheduled'")),
        sa.Column(
            "payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")
        ),
        sa.Column("payment_method", sa.String(20), nullable=False, server_default=sa.text("'cash'")),
        sa.Column("payment_order_id", sa.Text(), nullable=True),
        sa.Column("payment_id", sa.Text(), nullable=True),
        sa.Column("paid_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("payment_error", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", sa.String(20), nullable=True),
        sa.Column("cancelled_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("symptoms", sa.String(500), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("queue_number > 0", name="appointments_queue_number_check"),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', "
            "'no_show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'failed', 'refunded')",
            name="appointments_payment_status_check",
        ),
        sa.CheckConstraint(
            "cancelled_by IS NULL OR cancelled_by IN ('patient', 'doctor', 'system')",
            name="appointments_cancelled_by_check",
        ),
        sa.UniqueConstraint(
            "doctor_id",
            "location_id",
            "appointment_date",
            "queue_number",
            name="uq_appointments_queue_slot",
        ),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index(
        "idx_appointments_booking_key",
        "appointments",
        ["doctor_id", "location_id", "appointment_date"],
    )
    op.create_index(
        "idx_appointments_patient_date", "appointments", ["patient_id", "appointment_date"]
    )
    op.create_index(
        "uq_appointments_patient_doctor_day",
        "appointments",
        ["patient_id", "doctor_id", "appointment_date"],
        unique=True,
        postgresql_where=sa.text("status NOT IN ('cancelled', 'no_show')"),
    )

    op.create_table(
        "queue_counters",
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("location_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("appointment_date", sa.Date(), primary_key=True),
        sa.Column("last_queue_number", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint(
            "last_queue_number >= 0", name="queue_counters_last_queue_number_check"
        ),
    )


def downgrade() -> None:
    """Drop scheduling tables."""
    op.drop_table("queue_counters")
    op.drop_index("uq_appointments_patient_doctor_day", table_name="appointments")
    op.drop_index("idx_appointments_patient_date", table_name="appointments")
    op.drop_index("idx_appointments_booking_key", table_name="appointments")
    op.drop_index("ix_appointments_doctor_id", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("idx_practice_locations_doctor_active", table_name="practice_locations")
    op.drop_index("ix_practice_locations_doctor_id", table_name="practice_locations")
    op.drop_table("practice_locations")
    op.drop_index("ix_doctors_is_active", table_name="doctors")
    op.drop_index("ix_doctors_specialization", table_name="doctors")
    op.drop_index("ix_doctors_user_id", table_name="doctors")
    op.drop_table("doctors")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
