"""Tests for the appointment lifecycle rules."""

import pytest

from app.core.exceptions import BadRequestException, InvalidTransitionException
from app.schemas.appointments import AppointmentStatus
from app.services.booking_state import (
    BookingAction,
    action_for_status,
    can_transition,
    is_terminal,
    next_status,
)


def test_happy_path():
    """Scheduled appointments move through the consultation."""
    status = AppointmentStatus.SCHEDULED
    status = next_status(status, BookingAction.CONFIRM)
    assert status == AppointmentStatus.CONFIRMED
    status = next_status(status, BookingAction.START)
    assert status == AppointmentStatus.IN_PROGRESS
    status = next_status(status, BookingAction.COMPLETE)
    assert status == AppointmentStatus.COMPLETED


def test_start_without_confirmation():
    """A scheduled appointment can be started directly."""
    assert next_status("scheduled", BookingAction.START) == AppointmentStatus.IN_PROGRESS


@pytest.mark.parametrize("current", ["scheduled", "confirmed", "in_progress"])
def test_no_show_from_open_statuses(current):
    """Any open appointment can be marked no-show."""
    assert next_status(current, BookingAction.MARK_NO_SHOW) == AppointmentStatus.NO_SHOW


@pytest.mark.parametrize("current", ["scheduled", "confirmed"])
def test_cancel_allowed(current):
    """Only not-yet-started appointments can be cancelled."""
    assert can_transition(current, BookingAction.CANCEL)


@pytest.mark.parametrize("current", ["in_progress", "completed", "cancelled", "no_show"])
def test_cancel_rejected(current):
    """Started or finished appointments cannot be cancelled."""
    assert not can_transition(current, BookingAction.CANCEL)
    with pytest.raises(InvalidTransitionException):
        next_status(current, BookingAction.CANCEL)


@pytest.mark.parametrize("terminal", ["completed", "cancelled", "no_show"])
@pytest.mark.parametrize("action", list(BookingAction))
def test_terminal_statuses_are_final(terminal, action):
    """Nothing leaves a terminal status."""
    assert is_terminal(terminal)
    assert not can_transition(terminal, action)


def test_invalid_transition_message():
    """Errors name the action and the current status."""
    with pytest.raises(InvalidTransitionException) as exc_info:
        next_status("completed", BookingAction.MARK_NO_SHOW)
    assert exc_info.value.message == "Cannot mark no show an appointment that is completed"
    assert exc_info.value.status_code == 409


def test_complete_requires_in_progress():
    """Completing needs a started consultation."""
    with pytest.raises(InvalidTransitionException):
        next_status("confirmed", BookingAction.COMPLETE)


def test_action_for_status():
    """Target statuses map onto their actions."""
    assert action_for_status(AppointmentStatus.CONFIRMED) == BookingAction.CONFIRM
    assert action_for_status(AppointmentStatus.CANCELLED) == BookingAction.CANCEL
    assert action_for_status(AppointmentStatus.NO_SHOW) == BookingAction.MARK_NO_SHOW
    with pytest.raises(BadRequestException):
        action_for_status(AppointmentStatus.SCHEDULED)
