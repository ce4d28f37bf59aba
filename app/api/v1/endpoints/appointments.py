"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import (
    CurrentActor,
    CurrentDoctor,
    CurrentPatient,
    DatabaseSession,
    Schedules,
)
from app.schemas.appointments import (
    AppointmentBookRequest,
    AppointmentCancelRequest,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    BookingResponse,
)
from app.schemas.availability import AvailabilityResponse
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService

router = APIRouter()


@router.get(
    "/doctors/{doctor_id}/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get doctor availability for a date",
)
async def get_availability(
    doctor_id: UUID,
    db: DatabaseSession,
    schedules: Schedules,
    appointment_date: date = Query(..., alias="date"),
) -> AvailabilityResponse:
    """
    List bookable locations for a doctor on a date.

    Args:
        doctor_id: Doctor ID
        db: Database session
        schedules: Schedule catalog
        appointment_date: Requested day (YYYY-MM-DD)

    Returns:
        Availability offers, empty when the doctor cannot be booked that day
    """
    service = AvailabilityService(db, schedules)
    return await service.get_availability(doctor_id, appointment_date)


@router.post(
    "/doctors/{doctor_id}/book",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
)
async def book_appointment(
    doctor_id: UUID,
    data: AppointmentBookRequest,
    current_patient: CurrentPatient,
    db: DatabaseSession,
    schedules: Schedules,
) -> BookingResponse:
    """
    Book an appointment with a doctor at one of their locations.

    Args:
        doctor_id: Doctor ID
        data: Booking request
        current_patient: Authenticated patient
        db: Database session
        schedules: Schedule catalog

    Returns:
        Booking confirmation with queue number
    """
    service = AppointmentService(db, schedules)
    return await service.book(current_patient, doctor_id, data)


@router.get(
    "/patient",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List patient appointments",
)
async def list_patient_appointments(
    current_patient: CurrentPatient,
    db: DatabaseSession,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the authenticated patient's appointments, newest first.

    Args:
        current_patient: Authenticated patient
        db: Database session
        status_filter: Filter by status
        page: Page number
        limit: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(status=status_filter, page=page, limit=limit)
    service = AppointmentService(db)
    return await service.list_patient_appointments(current_patient, filters)


@router.get(
    "/doctor",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List doctor appointments",
)
async def list_doctor_appointments(
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
    appointment_date: date | None = Query(None, alias="date"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    location_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the authenticated doctor's appointments in queue order.

    Args:
        current_doctor: Authenticated doctor
        db: Database session
        appointment_date: Filter by day
        status_filter: Filter by status
        location_id: Filter by location
        page: Page number
        limit: Items per page

    Returns:
        Paginated list sorted by date, then queue number
    """
    filters = AppointmentFilters(
        status=status_filter,
        appointment_date=appointment_date,
        location_id=location_id,
        page=page,
        limit=limit,
    )
    service = AppointmentService(db)
    return await service.list_doctor_appointments(current_doctor, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    current_actor: CurrentActor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        HTTPException: If appointment not found or access denied
    """
    service = AppointmentService(db)
    return await service.get_appointment(appointment_id, current_actor)


@router.put(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    current_actor: CurrentActor,
    db: DatabaseSession,
    data: AppointmentCancelRequest | None = None,
) -> AppointmentResponse:
    """
    Cancel an appointment as its patient or its doctor.

    Args:
        appointment_id: Appointment ID
        current_actor: Authenticated patient or doctor
        db: Database session
        data: Optional cancellation reason

    Returns:
        Cancelled appointment
    """
    service = AppointmentService(db)
    reason = data.reason if data else None
    return await service.cancel(appointment_id, current_actor, reason=reason)


@router.put(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    current_doctor: CurrentDoctor,
    db: DatabaseSession,
) -> AppointmentResponse:
    """
    Update appointment status (confirm, start, complete, no-show, cancel).

    Args:
        appointment_id: Appointment ID
        data: Target status and optional notes
        current_doctor: Authenticated doctor
        db: Database session

    Returns:
        Updated appointment
    """
    service = AppointmentService(db)
    return await service.update_status(appointment_id, current_doctor, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Appointments"],
    summary="Archive appointment",
)
async def archive_appointment(
    appointment_id: UUID,
    current_actor: CurrentActor,
    db: DatabaseSession,
) -> None:
    """
    Hide a completed, cancelled or no-show appointment from listings.

    Raises:
        HTTPException: If appointment not found, access denied, or still open
    """
    service = AppointmentService(db)
    await service.archive(appointment_id, current_actor)
