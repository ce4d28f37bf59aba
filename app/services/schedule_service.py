"""Schedule catalog: read-only view of doctor practice data."""

import re
from decimal import Decimal
from uuid import UUID, uuid5

import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import NotFoundException
from app.core.redis_client import CacheManager
from app.core.weekdays import parse_weekday
from app.models.doctors import doctors
from app.models.practice_locations import practice_locations
from app.schemas.schedules import DoctorSchedule, LocationSchedule, WeeklySlot

logger = structlog.get_logger(__name__)

# Namespace for deterministic virtual location ids
VIRTUAL_LOCATION_NAMESPACE = UUID("6f1c2d0e-8b4a-5e39-9a71-3c5d2b8e4f10")

DEFAULT_START_TIME = "09:00"
DEFAULT_END_TIME = "17:00"

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def virtual_location_id(doctor_id: UUID) -> UUID:
    """Stable location id for a doctor without practice locations."""
    return uuid5(VIRTUAL_LOCATION_NAMESPACE, str(doctor_id))


def _normalize_time(value: object, default: str) -> str | None:
    """Return ``HH:MM`` for a stored time, the default when absent, None when malformed."""
    if value is None or value == "":
        return default
    match = _TIME_RE.match(str(value).strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


def normalize_slots(raw_slots: list | None) -> list[WeeklySlot]:
    """
    Convert stored weekly slot dicts into WeeklySlot values.

    Entries with an unrecognised weekday or a malformed time are dropped.
    Missing times default to 09:00-17:00 and a missing active flag means active.

    Args:
        raw_slots: List of ``{day, start_time, end_time, is_active}`` dicts

    Returns:
        Normalized slots in stored order
    """
    slots: list[WeeklySlot] = []
    for raw in raw_slots or []:
        if not isinstance(raw, dict):
            continue
        weekday = parse_weekday(raw.get("day"))
        start = _normalize_time(raw.get("start_time", raw.get("startTime")), DEFAULT_START_TIME)
        end = _normalize_time(raw.get("end_time", raw.get("endTime")), DEFAULT_END_TIME)
        if weekday is None or start is None or end is None:
            logger.warning("schedule_slot_ignored", slot=raw)
            continue
        is_active = raw.get("is_active", raw.get("isActive", True))
        slots.append(
            WeeklySlot(
                weekday=weekday,
                start_time=start,
                end_time=end,
                is_active=bool(is_active),
            )
        )
    return slots


def _fee(*candidates: Decimal | None) -> Decimal:
    """First configured fee, falling back to the default."""
    for candidate in candidates:
        if candidate is not None:
            return Decimal(candidate)
    return Decimal(settings.default_consultation_fee)


def build_doctor_schedule(doctor: dict, locations: list[dict]) -> DoctorSchedule:
    """
    Normalize a doctor row and its practice location rows.

    Inactive locations are dropped. When no active location remains, the
    doctor's legacy weekly pattern becomes a single virtual location with the
    default daily capacity.
    """
    schedules: list[LocationSchedule] = []
    for location in locations:
        if not location.get("is_active", True):
            continue
        try:
            schedules.append(
                LocationSchedule(
                    location_id=location["id"],
                    name=location.get("name") or "Practice Location",
                    address=location.get("address"),
                    consultation_fee=_fee(
                        location.get("consultation_fee"), doctor.get("consultation_fee")
                    ),
                    capacity=location.get("patients_per_day") or settings.default_daily_capacity,
                    slots=normalize_slots(location.get("available_slots")),
                )
            )
        except ValidationError as e:
            logger.warning(
                "practice_location_ignored", location_id=str(location["id"]), error=str(e)
            )

    if not schedules:
        schedules.append(
            LocationSchedule(
                location_id=virtual_location_id(doctor["id"]),
                name=f"{doctor['full_name']}'s Clinic",
                address=doctor.get("address"),
                consultation_fee=_fee(doctor.get("consultation_fee")),
                capacity=settings.default_daily_capacity,
                slots=normalize_slots(doctor.get("available_slots")),
                is_virtual=True,
            )
        )

    return DoctorSchedule(
        doctor_id=doctor["id"],
        doctor_name=doctor["full_name"],
        locations=schedules,
    )


class ScheduleCatalog:
    """Loads normalized doctor schedules, with optional Redis caching."""

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize catalog with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_schedule_cache_key(doctor_id: UUID) -> str:
        """Generate cache key for a doctor schedule."""
        return f"schedule:{doctor_id}"

    async def get_doctor_schedule(self, db: AsyncSession, doctor_id: UUID) -> DoctorSchedule:
        """
        Get the normalized schedule of an active doctor.

        Args:
            db: Database session
            doctor_id: Doctor ID

        Returns:
            Doctor schedule with at least one location

        Raises:
            NotFoundException: If the doctor does not exist or is inactive
        """
        cache_key = self._get_schedule_cache_key(doctor_id)
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached:
                try:
                    return DoctorSchedule.model_validate(cached)
                except ValidationError:
                    self.cache.delete(cache_key)

        logger.debug("schedule_cache_miss", doctor_id=str(doctor_id))

        doctor_query = select(doctors).where(
            doctors.c.id == doctor_id,
            doctors.c.is_active.is_(True),
        )
        result = await db.execute(doctor_query)
        doctor = result.mappings().first()

        if not doctor:
            raise NotFoundException("Doctor not found or inactive")

        locations_query = (
            select(practice_locations)
            .where(practice_locations.c.doctor_id == doctor_id)
            .order_by(practice_locations.c.created_at, practice_locations.c.id)
        )
        locations_result = await db.execute(locations_query)
        locations = [dict(row) for row in locations_result.mappings().all()]

        schedule = build_doctor_schedule(dict(doctor), locations)

        if self.cache:
            self.cache.set_json(
                cache_key,
                schedule.model_dump(mode="json"),
                ttl=settings.schedule_cache_ttl_seconds,
            )

        return schedule

