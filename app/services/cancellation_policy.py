"""Cancellation eligibility rules."""

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.config import settings
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
)
from app.schemas.appointments import AppointmentStatus, CancelledBy
from app.schemas.auth import Actor
from app.services.booking_state import CANCELLABLE_STATUSES


def appointment_start(appointment_date: date, slot_start: str) -> datetime:
    """Timezone-aware start of an appointment's consultation window."""
    hour, minute = (int(part) for part in slot_start.split(":"))
    return datetime.combine(
        appointment_date,
        time(hour, minute),
        tzinfo=ZoneInfo(settings.clinic_timezone),
    )


def cancellation_actor(appointment: dict, actor: Actor) -> CancelledBy:
    """
    Resolve who is cancelling.

    Only the owning patient and the owning doctor may cancel.

    Raises:
        ForbiddenException: If the caller owns neither side of the appointment
    """
    if actor.is_patient and appointment["patient_id"] == actor.user_id:
        return CancelledBy.PATIENT
    if actor.is_doctor and appointment["doctor_id"] == actor.doctor_id:
        return CancelledBy.DOCTOR
    raise ForbiddenException("You do not have permission to cancel this appointment")


def can_cancel(appointment: dict, now: datetime | None = None) -> bool:
    """Check status and time-to-appointment against the cancellation cutoff."""
    now = now or datetime.now(UTC)
    if AppointmentStatus(appointment["status"]) not in CANCELLABLE_STATUSES:
        return False
    starts_at = appointment_start(appointment["appointment_date"], appointment["slot_start"])
    return starts_at - now > timedelta(hours=settings.cancellation_cutoff_hours)


def ensure_cancellable(appointment: dict, now: datetime | None = None) -> None:
    """
    Raise instead of returning False from :func:`can_cancel`.

    Raises:
        InvalidTransitionException: If the status does not allow cancelling
        ConflictException: If the appointment starts within the cutoff
    """
    status = AppointmentStatus(appointment["status"])
    if status not in CANCELLABLE_STATUSES:
        raise InvalidTransitionException(status.value, "cancel")
    if not can_cancel(appointment, now):
        raise ConflictException(
            "Appointments can only be cancelled more than "
            f"{settings.cancellation_cutoff_hours} hours before they start"
        )
