"""Tests for cancellation eligibility."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidTransitionException,
)
from app.schemas.appointments import CancelledBy
from app.schemas.auth import Actor, UserRole
from app.services.cancellation_policy import (
    appointment_start,
    can_cancel,
    cancellation_actor,
    ensure_cancellable,
)


@pytest.fixture
def appointment() -> dict:
    return {
        "patient_id": uuid4(),
        "doctor_id": uuid4(),
        "status": "scheduled",
        "appointment_date": date(2026, 10, 20),
        "slot_start": "09:00",
    }


def _start(appointment: dict):
    return appointment_start(appointment["appointment_date"], appointment["slot_start"])


def test_appointment_start_is_timezone_aware(appointment):
    starts_at = _start(appointment)
    assert starts_at.tzinfo is not None
    assert (starts_at.hour, starts_at.minute) == (9, 0)


def test_can_cancel_outside_cutoff(appointment):
    now = _start(appointment) - timedelta(hours=2, minutes=1)
    assert can_cancel(appointment, now)


def test_cannot_cancel_at_or_inside_cutoff(appointment):
    assert not can_cancel(appointment, _start(appointment) - timedelta(hours=2))
    assert not can_cancel(appointment, _start(appointment) - timedelta(minutes=30))
    assert not can_cancel(appointment, _start(appointment) + timedelta(hours=1))


def test_confirmed_can_be_cancelled(appointment):
    appointment["status"] = "confirmed"
    assert can_cancel(appointment, _start(appointment) - timedelta(days=1))


def test_ensure_cancellable_rejects_status_first(appointment):
    """A finished appointment fails on status, regardless of time."""
    appointment["status"] = "completed"
    with pytest.raises(InvalidTransitionException) as exc_info:
        ensure_cancellable(appointment, _start(appointment) - timedelta(days=3))
    assert exc_info.value.message == "Cannot cancel an appointment that is completed"


def test_ensure_cancellable_rejects_late_cancellation(appointment):
    with pytest.raises(ConflictException) as exc_info:
        ensure_cancellable(appointment, _start(appointment) - timedelta(hours=1))
    assert not isinstance(exc_info.value, InvalidTransitionException)
    assert "2 hours" in exc_info.value.message


def test_cancellation_actor(appointment):
    patient = Actor(user_id=appointment["patient_id"], role=UserRole.PATIENT)
    doctor = Actor(user_id=uuid4(), role=UserRole.DOCTOR, doctor_id=appointment["doctor_id"])
    assert cancellation_actor(appointment, patient) == CancelledBy.PATIENT
    assert cancellation_actor(appointment, doctor) == CancelledBy.DOCTOR


@pytest.mark.parametrize(
    "actor",
    [
        Actor(user_id=uuid4(), role=UserRole.PATIENT),
        Actor(user_id=uuid4(), role=UserRole.DOCTOR, doctor_id=uuid4()),
        Actor(user_id=uuid4(), role=UserRole.ADMIN),
    ],
)
def test_cancellation_actor_rejects_strangers(appointment, actor):
    with pytest.raises(ForbiddenException):
        cancellation_actor(appointment, actor)
