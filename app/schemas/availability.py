"""Availability schemas for request/response validation."""

import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, field_serializer


class TimeSlot(BaseModel):
    """Consultation window on a specific day."""

    start_time: str
    end_time: str


class AvailabilityOffer(BaseModel):
    """A bookable location and time slot for one date."""

    location_id: UUID
    location_name: str
    address: dict | None = None
    consultation_fee: Decimal
    time_slot: TimeSlot
    available_spots: int
    total_capacity: int
    next_queue_number: int
    current_bookings: int
    estimated_wait_minutes: int
    estimated_wait_time: str
    is_virtual_location: bool = False

    @field_serializer("consultation_fee", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class AvailabilityResponse(BaseModel):
    """Offers for a doctor on a date."""

    doctor_id: UUID
    doctor_name: str
    date: datetime.date
    offers: list[AvailabilityOffer]
    total_available_slots: int
