"""Availability resolution for a doctor on a date."""

from datetime import date, datetime, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ValidationException
from app.schemas.availability import AvailabilityOffer, AvailabilityResponse, TimeSlot
from app.services.capacity_service import CapacityGuard
from app.services.schedule_service import ScheduleCatalog


def clinic_today() -> date:
    """Current calendar day in the clinic timezone."""
    return datetime.now(ZoneInfo(settings.clinic_timezone)).date()


def validate_booking_date(appointment_date: date, today: date | None = None) -> None:
    """
    Ensure a date lies inside the booking window.

    Raises:
        ValidationException: If the date is in the past or too far ahead
    """
    today = today or clinic_today()
    if appointment_date < today:
        raise ValidationException("Cannot book appointments for past dates")
    if appointment_date > today + timedelta(days=settings.booking_window_days):
        raise ValidationException(
            f"Cannot book appointments more than {settings.booking_window_days} days in advance"
        )


def estimated_wait_minutes(queue_number: int) -> int:
    """Expected wait before a queue position is seen."""
    return settings.minutes_per_patient * (queue_number - 1)


class AvailabilityService:
    """Service for resolving bookable offers."""

    def __init__(self, db: AsyncSession, schedule_catalog: ScheduleCatalog | None = None):
        """Initialize service with database session and schedule catalog."""
        self.db = db
        self.catalog = schedule_catalog or ScheduleCatalog()

    async def get_availability(
        self,
        doctor_id: UUID,
        appointment_date: date,
        today: date | None = None,
    ) -> AvailabilityResponse:
        """
        List the locations where a doctor can still be booked on a date.

        Locations without an active slot on that weekday and locations whose
        day is full are left out. An empty offer list is a valid answer.

        Args:
            doctor_id: Doctor ID
            appointment_date: Requested day
            today: Override for the current clinic day

        Returns:
            Availability offers for the day

        Raises:
            ValidationException: If the date is outside the booking window
            NotFoundException: If the doctor does not exist or is inactive
        """
        validate_booking_date(appointment_date, today)
        schedule = await self.catalog.get_doctor_schedule(self.db, doctor_id)
        guard = CapacityGuard(self.db)

        offers: list[AvailabilityOffer] = []
        for location in schedule.locations:
            slot = location.slot_for(appointment_date)
            if slot is None:
                continue

            bookings = await guard.committed_count(
                doctor_id, location.location_id, appointment_date
            )
            available = location.capacity - bookings
            if available <= 0:
                continue

            next_queue_number = await guard.peek_next_queue_number(
                doctor_id, location.location_id, appointment_date
            )
            wait = estimated_wait_minutes(next_queue_number)
            offers.append(
                AvailabilityOffer(
                    location_id=location.location_id,
                    location_name=location.name,
                    address=location.address,
                    consultation_fee=location.consultation_fee,
                    time_slot=TimeSlot(start_time=slot.start_time, end_time=slot.end_time),
                    available_spots=available,
                    total_capacity=location.capacity,
                    next_queue_number=next_queue_number,
                    current_bookings=bookings,
                    estimated_wait_minutes=wait,
                    estimated_wait_time=f"{wait} minutes",
                    is_virtual_location=location.is_virtual,
                )
            )

        return AvailabilityResponse(
            doctor_id=schedule.doctor_id,
            doctor_name=schedule.doctor_name,
            date=appointment_date,
            offers=offers,
            total_available_slots=sum(offer.available_spots for offer in offers),
        )
