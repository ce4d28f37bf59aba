"""Appointment lifecycle rules.

    scheduled -> confirmed -> in_progress -> completed
    scheduled | confirmed -> cancelled
    scheduled | confirmed | in_progress -> no_show

completed, cancelled and no_show are terminal.
"""

from enum import Enum

from app.core.exceptions import BadRequestException, InvalidTransitionException
from app.schemas.appointments import AppointmentStatus


class BookingAction(str, Enum):
    """Lifecycle operations on an existing appointment."""

    CONFIRM = "confirm"
    START = "start"
    COMPLETE = "complete"
    MARK_NO_SHOW = "mark_no_show"
    CANCEL = "cancel"


TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)

# Statuses that occupy a place in the day's capacity
COMMITTED_STATUSES = frozenset(
    set(AppointmentStatus) - {AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)

CANCELLABLE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})

_TRANSITIONS: dict[BookingAction, tuple[frozenset[AppointmentStatus], AppointmentStatus]] = {
    BookingAction.CONFIRM: (
        frozenset({AppointmentStatus.SCHEDULED}),
        AppointmentStatus.CONFIRMED,
    ),
    BookingAction.START: (
        frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED}),
        AppointmentStatus.IN_PROGRESS,
    ),
    BookingAction.COMPLETE: (
        frozenset({AppointmentStatus.IN_PROGRESS}),
        AppointmentStatus.COMPLETED,
    ),
    BookingAction.MARK_NO_SHOW: (
        frozenset(set(AppointmentStatus) - TERMINAL_STATUSES),
        AppointmentStatus.NO_SHOW,
    ),
    BookingAction.CANCEL: (CANCELLABLE_STATUSES, AppointmentStatus.CANCELLED),
}

_ACTION_BY_TARGET = {target: action for action, (_, target) in _TRANSITIONS.items()}


def next_status(current: AppointmentStatus | str, action: BookingAction) -> AppointmentStatus:
    """
    Resolve the status an action moves an appointment to.

    Args:
        current: Current appointment status
        action: Requested lifecycle operation

    Returns:
        Status after the transition

    Raises:
        InvalidTransitionException: If the action is not allowed from ``current``
    """
    current = AppointmentStatus(current)
    allowed_from, target = _TRANSITIONS[action]
    if current not in allowed_from:
        raise InvalidTransitionException(current.value, action.value.replace("_", " "))
    return target


def can_transition(current: AppointmentStatus | str, action: BookingAction) -> bool:
    """Check whether an action is allowed from the current status."""
    allowed_from, _ = _TRANSITIONS[action]
    return AppointmentStatus(current) in allowed_from


def action_for_status(target: AppointmentStatus) -> BookingAction:
    """
    Map a requested target status onto the action that reaches it.

    Raises:
        BadRequestException: If no action leads to ``target`` (e.g. scheduled)
    """
    try:
        return _ACTION_BY_TARGET[target]
    except KeyError:
        raise BadRequestException(f"Status cannot be set to {target.value}") from None


def is_terminal(status: AppointmentStatus | str) -> bool:
    """Check whether no further transitions are possible."""
    return AppointmentStatus(status) in TERMINAL_STATUSES
