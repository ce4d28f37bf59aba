"""Appointment service for business logic."""

from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    CapacityExhaustedException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    StaleAppointmentException,
    ValidationException,
)
from app.models.appointments import appointments
from app.models.users import users
from app.schemas.appointments import (
    AppointmentBookRequest,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    BookingResponse,
    TimeSlotSnapshot,
)
from app.schemas.auth import Actor
from app.services.availability_service import estimated_wait_minutes, validate_booking_date
from app.services.booking_state import (
    COMMITTED_STATUSES,
    BookingAction,
    action_for_status,
    is_terminal,
    next_status,
)
from app.services.cancellation_policy import cancellation_actor, ensure_cancellable
from app.services.capacity_service import CapacityGuard
from app.services.schedule_service import ScheduleCatalog

logger = structlog.get_logger(__name__)

DUPLICATE_BOOKING_MESSAGE = "You already have an appointment with this doctor on the selected date"

_COMMITTED_VALUES = sorted(status.value for status in COMMITTED_STATUSES)

# Violations of the one-booking-per-patient-per-day index, by backend
_DUPLICATE_BOOKING_MARKERS = (
    "uq_appointments_patient_doctor_day",
    "appointments.patient_id, appointments.doctor_id, appointments.appointment_date",
)


def is_duplicate_booking_error(error: IntegrityError) -> bool:
    """Check whether an insert failed on the per-patient daily booking index."""
    message = str(error.orig)
    return any(marker in message for marker in _DUPLICATE_BOOKING_MARKERS)


async def load_appointment(db: AsyncSession, appointment_id: UUID) -> dict[str, Any]:
    """
    Load an active appointment row.

    Raises:
        NotFoundException: If the appointment does not exist or is archived
    """
    stmt = select(appointments).where(
        appointments.c.id == appointment_id,
        appointments.c.is_active.is_(True),
    )
    result = await db.execute(stmt)
    row = result.mappings().first()
    if not row:
        raise NotFoundException("Appointment not found")
    return dict(row)


async def write_appointment(
    db: AsyncSession,
    appointment: dict[str, Any],
    values: dict[str, Any],
) -> dict[str, Any]:
    """
    Apply changes to an appointment guarded by its version.

    The write only succeeds when the row still carries the version that was
    read, and bumps it. The change is committed.

    Args:
        db: Database session
        appointment: Appointment row as previously read
        values: Column values to set

    Returns:
        Updated appointment row

    Raises:
        StaleAppointmentException: If another request changed the row first
    """
    stmt = (
        update(appointments)
        .where(
            appointments.c.id == appointment["id"],
            appointments.c.version == appointment["version"],
        )
        .values(**values, version=appointment["version"] + 1, updated_at=func.now())
        .returning(appointments)
    )
    result = await db.execute(stmt)
    row = result.mappings().first()
    if not row:
        await db.rollback()
        raise StaleAppointmentException()
    updated = dict(row)
    await db.commit()
    return updated


def _ensure_participant(appointment: dict[str, Any], actor: Actor) -> None:
    """Only the booking patient and the booked doctor may see an appointment."""
    if actor.is_patient and appointment["patient_id"] == actor.user_id:
        return
    if actor.is_doctor and appointment["doctor_id"] == actor.doctor_id:
        return
    raise ForbiddenException("Access denied to this appointment")


class AppointmentService:
    """Service for booking and managing appointments."""

    def __init__(self, db: AsyncSession, schedule_catalog: ScheduleCatalog | None = None):
        """Initialize service with database session and schedule catalog."""
        self.db = db
        self.catalog = schedule_catalog or ScheduleCatalog()

    async def _get_patient(self, user_id: UUID) -> dict[str, Any]:
        stmt = select(users).where(users.c.id == user_id, users.c.is_active.is_(True))
        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Patient not found")
        return dict(row)

    async def _has_committed_booking(
        self,
        patient_id: UUID,
        doctor_id: UUID,
        appointment_date: date,
    ) -> bool:
        stmt = (
            select(func.count())
            .select_from(appointments)
            .where(
                appointments.c.patient_id == patient_id,
                appointments.c.doctor_id == doctor_id,
                appointments.c.appointment_date == appointment_date,
                appointments.c.status.in_(_COMMITTED_VALUES),
            )
        )
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) > 0

    async def book(
        self,
        actor: Actor,
        doctor_id: UUID,
        data: AppointmentBookRequest,
        today: date | None = None,
    ) -> BookingResponse:
        """
        Book an appointment for the calling patient.

        Capacity check, queue number allocation and the insert happen in one
        transaction serialized per doctor, location and date.

        Args:
            actor: Authenticated patient
            doctor_id: Doctor to book
            data: Booking request
            today: Override for the current clinic day

        Returns:
            Booking confirmation with queue position

        Raises:
            ForbiddenException: If the caller is not a patient
            ValidationException: If the date is outside the booking window or
                the doctor does not work that day at the location
            NotFoundException: If the doctor, location or patient is unknown
            CapacityExhaustedException: If the day is full
            ConflictException: If the patient already booked this doctor that day
        """
        if not actor.is_patient:
            raise ForbiddenException("Only patients can book appointments")

        validate_booking_date(data.appointment_date, today)

        schedule = await self.catalog.get_doctor_schedule(self.db, doctor_id)
        location = schedule.get_location(data.location_id)
        if location is None:
            raise NotFoundException("Practice location not found or inactive")

        slot = location.slot_for(data.appointment_date)
        if slot is None:
            raise ValidationException("Doctor is not available on the selected date")

        patient = await self._get_patient(actor.user_id)

        if await self._has_committed_booking(patient["id"], doctor_id, data.appointment_date):
            raise ConflictException(DUPLICATE_BOOKING_MESSAGE)

        guard = CapacityGuard(self.db)
        try:
            queue_number = await guard.reserve(
                doctor_id,
                location.location_id,
                data.appointment_date,
                location.capacity,
            )

            values = {
                "patient_id": patient["id"],
                "doctor_id": doctor_id,
                "location_id": location.location_id,
                "is_virtual_location": location.is_virtual,
                "appointment_date": data.appointment_date,
                "slot_start": slot.start_time,
                "slot_end": slot.end_time,
                "queue_number": queue_number,
                "patient_name": patient["full_name"],
                "patient_email": patient["email"],
                "patient_phone": patient["phone"] or "",
                "doctor_name": schedule.doctor_name,
                "location_name": location.name,
                "location_address": location.address,
                "consultation_fee": location.consultation_fee,
                "status": AppointmentStatus.SCHEDULED.value,
                "symptoms": data.symptoms,
                "notes": data.notes,
            }
            stmt = insert(appointments).values(**values).returning(appointments)
            result = await self.db.execute(stmt)
            row = dict(result.mappings().one())
            await self.db.commit()
        except CapacityExhaustedException:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                "booking_integrity_conflict",
                doctor_id=str(doctor_id),
                patient_id=str(actor.user_id),
                error=str(e.orig),
            )
            if is_duplicate_booking_error(e):
                raise ConflictException(DUPLICATE_BOOKING_MESSAGE) from e
            raise ConflictException("Booking conflicted with another request, please retry") from e

        wait = estimated_wait_minutes(row["queue_number"])
        logger.info(
            "appointment_booked",
            appointment_id=str(row["id"]),
            doctor_id=str(doctor_id),
            location_id=str(location.location_id),
            appointment_date=data.appointment_date.isoformat(),
            queue_number=row["queue_number"],
        )

        return BookingResponse(
            appointment_id=row["id"],
            appointment_date=row["appointment_date"],
            time_slot=TimeSlotSnapshot(start_time=row["slot_start"], end_time=row["slot_end"]),
            queue_number=row["queue_number"],
            location_id=row["location_id"],
            location_name=row["location_name"],
            consultation_fee=row["consultation_fee"],
            status=row["status"],
            payment_status=row["payment_status"],
            estimated_wait_minutes=wait,
            estimated_wait_time=f"{wait} minutes",
        )

    async def get_appointment(self, appointment_id: UUID, actor: Actor) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is neither its patient nor its doctor
        """
        appointment = await load_appointment(self.db, appointment_id)
        _ensure_participant(appointment, actor)
        return AppointmentResponse.model_validate(appointment)

    async def _paginate(
        self,
        conditions: list,
        order_by: list,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        conditions = [*conditions, appointments.c.is_active.is_(True)]

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.appointment_date:
            conditions.append(appointments.c.appointment_date == filters.appointment_date)

        if filters.location_id:
            conditions.append(appointments.c.location_id == filters.location_id)

        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.limit
        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(*order_by)
            .limit(filters.limit)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        items = [AppointmentResponse.model_validate(dict(row)) for row in result.mappings().all()]

        total_pages = (total + filters.limit - 1) // filters.limit
        return AppointmentListResponse(
            items=items,
            page=filters.page,
            limit=filters.limit,
            total=total,
            total_pages=total_pages,
            has_next_page=filters.page < total_pages,
            has_prev_page=filters.page > 1,
        )

    async def list_patient_appointments(
        self,
        actor: Actor,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List the calling patient's appointments, newest day first.

        Args:
            actor: Authenticated patient
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments
        """
        if not actor.is_patient:
            raise ForbiddenException("Only patients can list their appointments")

        return await self._paginate(
            [appointments.c.patient_id == actor.user_id],
            [
                appointments.c.appointment_date.desc(),
                appointments.c.queue_number.desc(),
            ],
            filters,
        )

    async def list_doctor_appointments(
        self,
        actor: Actor,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List the calling doctor's appointments in queue order.

        Args:
            actor: Authenticated doctor
            filters: Filter and pagination parameters

        Returns:
            Paginated list sorted by date, then queue number
        """
        if not actor.is_doctor:
            raise ForbiddenException("Only doctors can access this endpoint")

        return await self._paginate(
            [appointments.c.doctor_id == actor.doctor_id],
            [
                appointments.c.appointment_date.asc(),
                appointments.c.queue_number.asc(),
            ],
            filters,
        )

    async def cancel(
        self,
        appointment_id: UUID,
        actor: Actor,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> AppointmentResponse:
        """
        Cancel an appointment, releasing its place in the day's capacity.

        The queue number stays taken.

        Args:
            appointment_id: Appointment ID
            actor: Owning patient or owning doctor
            reason: Optional cancellation reason
            now: Override for the current instant

        Returns:
            Cancelled appointment

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller owns neither side
            InvalidTransitionException: If the status does not allow cancelling
            ConflictException: If the appointment starts within the cutoff
        """
        now = now or datetime.now(UTC)
        appointment = await load_appointment(self.db, appointment_id)
        cancelled_by = cancellation_actor(appointment, actor)
        ensure_cancellable(appointment, now)
        target = next_status(appointment["status"], BookingAction.CANCEL)

        updated = await write_appointment(
            self.db,
            appointment,
            {
                "status": target.value,
                "cancellation_reason": reason,
                "cancelled_by": cancelled_by.value,
                "cancelled_at": now,
            },
        )

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            cancelled_by=cancelled_by.value,
            previous_status=appointment["status"],
        )
        return AppointmentResponse.model_validate(updated)

    async def _doctor_transition(
        self,
        appointment_id: UUID,
        actor: Actor,
        action: BookingAction,
        notes: str | None = None,
    ) -> AppointmentResponse:
        if not actor.is_doctor:
            raise ForbiddenException("Only doctors can update appointment status")

        appointment = await load_appointment(self.db, appointment_id)
        if appointment["doctor_id"] != actor.doctor_id:
            raise ForbiddenException("Access denied to this appointment")

        target = next_status(appointment["status"], action)
        values: dict[str, Any] = {"status": target.value}
        if notes:
            values["notes"] = notes

        updated = await write_appointment(self.db, appointment, values)

        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=appointment["status"],
            new_status=target.value,
        )
        return AppointmentResponse.model_validate(updated)

    async def confirm(
        self, appointment_id: UUID, actor: Actor, notes: str | None = None
    ) -> AppointmentResponse:
        """Doctor confirms a scheduled appointment."""
        return await self._doctor_transition(appointment_id, actor, BookingAction.CONFIRM, notes)

    async def start(
        self, appointment_id: UUID, actor: Actor, notes: str | None = None
    ) -> AppointmentResponse:
        """Doctor starts the consultation."""
        return await self._doctor_transition(appointment_id, actor, BookingAction.START, notes)

    async def complete(
        self, appointment_id: UUID, actor: Actor, notes: str | None = None
    ) -> AppointmentResponse:
        """Doctor completes an in-progress consultation."""
        return await self._doctor_transition(appointment_id, actor, BookingAction.COMPLETE, notes)

    async def mark_no_show(
        self, appointment_id: UUID, actor: Actor, notes: str | None = None
    ) -> AppointmentResponse:
        """Doctor records that the patient did not attend."""
        return await self._doctor_transition(
            appointment_id, actor, BookingAction.MARK_NO_SHOW, notes
        )

    async def update_status(
        self,
        appointment_id: UUID,
        actor: Actor,
        data: AppointmentStatusUpdate,
        now: datetime | None = None,
    ) -> AppointmentResponse:
        """
        Move an appointment to the requested status.

        A request for ``cancelled`` follows the cancellation rules with the
        doctor as canceller and the notes as reason.

        Args:
            appointment_id: Appointment ID
            actor: Authenticated doctor
            data: Target status and optional notes
            now: Override for the current instant

        Returns:
            Updated appointment
        """
        if not actor.is_doctor:
            raise ForbiddenException("Only doctors can update appointment status")

        action = action_for_status(data.status)
        if action == BookingAction.CANCEL:
            return await self.cancel(appointment_id, actor, reason=data.notes, now=now)

        handlers = {
            BookingAction.CONFIRM: self.confirm,
            BookingAction.START: self.start,
            BookingAction.COMPLETE: self.complete,
            BookingAction.MARK_NO_SHOW: self.mark_no_show,
        }
        return await handlers[action](appointment_id, actor, data.notes)

    async def archive(self, appointment_id: UUID, actor: Actor) -> None:
        """
        Hide a finished appointment from listings.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller owns neither side
            ConflictException: If the appointment is not in a terminal status
        """
        appointment = await load_appointment(self.db, appointment_id)
        _ensure_participant(appointment, actor)

        if not is_terminal(appointment["status"]):
            raise ConflictException(
                "Only completed, cancelled or no-show appointments can be archived"
            )

        await write_appointment(self.db, appointment, {"is_active": False})
        logger.info("appointment_archived", appointment_id=str(appointment_id))
