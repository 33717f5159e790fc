"""Appointment status state machine.

The store calls ``transition`` before every status write, so an illegal
change is rejected the same way whichever screen or client asked for it.
"""

import enum

from clinic_backend.scheduling.errors import InvalidTransitionError


class AppointmentStatus(str, enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class AppointmentSource(str, enum.Enum):
    CLINIC = 'clinic'
    BOOKING = 'booking'


ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})


def _coerce(status) -> AppointmentStatus:
    try:
        return AppointmentStatus(status)
    except ValueError as exc:
        raise InvalidTransitionError(f'Unknown appointment status: {status!r}') from exc


def can_transition(current, requested) -> bool:
    try:
        transition(current, requested)
    except InvalidTransitionError:
        return False
    return True


def transition(current, requested) -> AppointmentStatus:
    current_status = _coerce(current)
    requested_status = _coerce(requested)

    if current_status == requested_status:
        return current_status

    if requested_status not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidTransitionError(
            f'Cannot change an appointment from {current_status.value} to {requested_status.value}.'
        )

    return requested_status


def allowed_next_statuses(current) -> list[AppointmentStatus]:
    current_status = _coerce(current)
    return sorted(ALLOWED_TRANSITIONS[current_status], key=lambda status: list(AppointmentStatus).index(status))


def is_terminal(status) -> bool:
    return _coerce(status) in TERMINAL_STATUSES


def initial_status_for(source, requested=None) -> AppointmentStatus:
    """Online bookings wait for the clinic; staff bookings are pre-verified."""
    source = AppointmentSource(source)

    if source is AppointmentSource.BOOKING:
        return AppointmentStatus.PENDING

    if requested is None:
        return AppointmentStatus.CONFIRMED

    status = _coerce(requested)
    if status not in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED):
        raise InvalidTransitionError(f'New appointments cannot start as {status.value}.')

    return status
