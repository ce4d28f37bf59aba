"""Tests for availability resolution."""

from datetime import date, timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.config import settings
from app.core.exceptions import NotFoundException, ValidationException
from app.schemas.appointments import AppointmentBookRequest
from app.schemas.auth import Actor, UserRole
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService, clinic_today
from app.services.schedule_service import virtual_location_id


def next_weekday(weekday: int, start: date) -> date:
    """First date on ``weekday`` (Monday=0) at least a week after ``start``."""
    return start + timedelta(days=7 + (weekday - start.weekday()) % 7)


async def test_offer_for_open_location(db_session, doctor, location, booking_date):
    service = AvailabilityService(db_session)

    availability = await service.get_availability(doctor["id"], booking_date)

    assert availability.doctor_id == doctor["id"]
    assert availability.date == booking_date
    (offer,) = availability.offers
    assert offer.location_id == location["id"]
    assert offer.location_name == "City Clinic"
    assert offer.time_slot.start_time == "09:00"
    assert offer.available_spots == 3
    assert offer.total_capacity == 3
    assert offer.current_bookings == 0
    assert offer.next_queue_number == 1
    assert offer.estimated_wait_minutes == 0
    # Location without its own fee inherits the doctor's
    assert offer.consultation_fee == doctor["consultation_fee"]
    assert availability.total_available_slots == 3


async def test_offer_reflects_bookings(
    db_session, make_user, doctor, location, booking_date
):
    booking = AppointmentService(db_session)
    for name in ("Anil", "Bela"):
        user = await make_user(full_name=name)
        await booking.book(
            Actor(user_id=user["id"], role=UserRole.PATIENT),
            doctor["id"],
            AppointmentBookRequest(appointment_date=booking_date, location_id=location["id"]),
        )

    availability = await AvailabilityService(db_session).get_availability(
        doctor["id"], booking_date
    )

    (offer,) = availability.offers
    assert offer.current_bookings == 2
    assert offer.available_spots == 1
    assert offer.next_queue_number == 3
    assert offer.estimated_wait_minutes == 2 * settings.minutes_per_patient
    assert offer.estimated_wait_time == f"{2 * settings.minutes_per_patient} minutes"


async def test_locations_without_slot_that_day_are_omitted(
    db_session, make_doctor, make_location
):
    doctor = await make_doctor()
    await make_location(
        doctor,
        name="Monday Clinic",
        available_slots=[{"day": "mon", "start_time": "09:00", "end_time": "12:00"}],
    )
    tuesday_clinic = await make_location(
        doctor,
        name="Tuesday Clinic",
        available_slots=[{"day": "tue", "start_time": "14:00", "end_time": "18:00"}],
    )
    tuesday = next_weekday(1, clinic_today())

    availability = await AvailabilityService(db_session).get_availability(doctor["id"], tuesday)

    assert [offer.location_id for offer in availability.offers] == [tuesday_clinic["id"]]
    assert availability.offers[0].time_slot.end_time == "18:00"


async def test_doctor_not_working_that_day_gets_empty_offers(
    db_session, make_doctor, make_location
):
    doctor = await make_doctor()
    await make_location(
        doctor, available_slots=[{"day": "wed", "start_time": "09:00", "end_time": "12:00"}]
    )
    thursday = next_weekday(3, clinic_today())

    availability = await AvailabilityService(db_session).get_availability(doctor["id"], thursday)

    assert availability.offers == []
    assert availability.total_available_slots == 0


async def test_full_location_is_omitted(
    db_session, make_user, make_doctor, make_location, booking_date
):
    doctor = await make_doctor()
    small = await make_location(doctor, name="Small", patients_per_day=1)
    large = await make_location(doctor, name="Large", patients_per_day=5)
    user = await make_user()
    await AppointmentService(db_session).book(
        Actor(user_id=user["id"], role=UserRole.PATIENT),
        doctor["id"],
        AppointmentBookRequest(appointment_date=booking_date, location_id=small["id"]),
    )

    availability = await AvailabilityService(db_session).get_availability(
        doctor["id"], booking_date
    )

    assert [offer.location_id for offer in availability.offers] == [large["id"]]


async def test_virtual_location_offer(db_session, make_doctor, booking_date):
    doctor = await make_doctor(
        available_slots=[{"day": day, "start_time": "10:00"} for day in range(7)]
    )

    availability = await AvailabilityService(db_session).get_availability(
        doctor["id"], booking_date
    )

    (offer,) = availability.offers
    assert offer.is_virtual_location
    assert offer.location_id == virtual_location_id(doctor["id"])
    assert offer.total_capacity == settings.default_daily_capacity
    assert offer.time_slot.start_time == "10:00"
    assert offer.time_slot.end_time == "17:00"


async def test_booking_window(db_session, doctor, location):
    service = AvailabilityService(db_session)
    today = clinic_today()

    with pytest.raises(ValidationException):
        await service.get_availability(doctor["id"], today - timedelta(days=1))

    with pytest.raises(ValidationException):
        await service.get_availability(
            doctor["id"], today + timedelta(days=settings.booking_window_days + 1)
        )

    last_day = await service.get_availability(
        doctor["id"], today + timedelta(days=settings.booking_window_days)
    )
    assert len(last_day.offers) == 1

    same_day = await service.get_availability(doctor["id"], today)
    assert len(same_day.offers) == 1


async def test_unknown_doctor(db_session, booking_date):
    with pytest.raises(NotFoundException):
        await AvailabilityService(db_session).get_availability(uuid4(), booking_date)


async def test_availability_endpoint_is_public(
    client: AsyncClient, doctor, location, booking_date
):
    response = await client.get(
        f"/api/v1/appointments/doctors/{doctor['id']}/availability",
        params={"date": booking_date.isoformat()},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["doctor_name"] == doctor["full_name"]
    assert data["offers"][0]["location_id"] == str(location["id"])
    assert data["offers"][0]["consultation_fee"] == 800.0
    assert data["offers"][0]["estimated_wait_time"] == "0 minutes"


async def test_availability_endpoint_errors(client: AsyncClient, doctor, location):
    url = f"/api/v1/appointments/doctors/{doctor['id']}/availability"

    past = (clinic_today() - timedelta(days=1)).isoformat()
    response = await client.get(url, params={"date": past})
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationException"

    response = await client.get(url, params={"date": "not-a-date"})
    assert response.status_code == 422

    response = await client.get(
        f"/api/v1/appointments/doctors/{uuid4()}/availability",
        params={"date": clinic_today().isoformat()},
    )
    assert response.status_code == 404
