"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""

    CASH = "cash"
    CARD = "card"
    ONLINE = "online"
    INSURANCE = "insurance"


class CancelledBy(str, Enum):
    """Who cancelled an appointment."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    SYSTEM = "system"


def _strip_optional(value: str | None) -> str | None:
    """Trim free text, treating blank input as absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class AppointmentBookRequest(BaseModel):
    """Schema for booking an appointment with a doctor."""

    appointment_date: date
    location_id: UUID
    symptoms: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("symptoms", "notes")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace."""
        return _strip_optional(v)


class TimeSlotSnapshot(BaseModel):
    """Time slot captured at booking time."""

    start_time: str
    end_time: str


class BookingResponse(BaseModel):
    """Schema for a newly booked appointment."""

    appointment_id: UUID
    appointment_date: date
    time_slot: TimeSlotSnapshot
    queue_number: int
    location_id: UUID
    location_name: str
    consultation_fee: Decimal
    status: AppointmentStatus
    payment_status: PaymentStatus
    estimated_wait_minutes: int
    estimated_wait_time: str

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    location_id: UUID
    is_virtual_location: bool
    appointment_date: date
    slot_start: str
    slot_end: str
    queue_number: int
    patient_name: str
    patient_email: str
    patient_phone: str
    doctor_name: str
    location_name: str
    location_address: dict | None = None
    consultation_fee: Decimal
    status: AppointmentStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    payment_order_id: str | None = None
    payment_id: str | None = None
    paid_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by: CancelledBy | None = None
    cancelled_at: datetime | None = None
    symptoms: str | None = None
    notes: str | None = None
    is_active: bool
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    items: list[AppointmentResponse]
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    appointment_date: date | None = None
    location_id: UUID | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class AppointmentCancelRequest(BaseModel):
    """Schema for cancelling an appointment."""

    reason: str | None = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace."""
        return _strip_optional(v)


class AppointmentStatusUpdate(BaseModel):
    """Schema for a doctor updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: str | None) -> str | None:
        """Trim surrounding whitespace."""
        return _strip_optional(v)
