"""Normalized schedule value types.

Both the practice-location schema and the legacy flat weekly pattern are
converted into these types before any availability or capacity logic runs.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.weekdays import Weekday

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class WeeklySlot(BaseModel):
    """Recurring weekly consultation window."""

    weekday: Weekday
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    is_active: bool = True


class LocationSchedule(BaseModel):
    """One bookable location of a doctor with its weekly pattern."""

    location_id: UUID
    name: str
    address: dict | None = None
    consultation_fee: Decimal
    capacity: int = Field(..., gt=0)
    slots: list[WeeklySlot] = Field(default_factory=list)
    is_virtual: bool = False

    def slot_for(self, day: date) -> WeeklySlot | None:
        """First active slot that falls on the weekday of ``day``."""
        weekday = Weekday.from_date(day)
        for slot in self.slots:
            if slot.is_active and slot.weekday == weekday:
                return slot
        return None


class DoctorSchedule(BaseModel):
    """All bookable locations of a doctor."""

    doctor_id: UUID
    doctor_name: str
    locations: list[LocationSchedule] = Field(default_factory=list)

    def get_location(self, location_id: UUID) -> LocationSchedule | None:
        """Find a location by id."""
        for location in self.locations:
            if location.location_id == location_id:
                return location
        return None
