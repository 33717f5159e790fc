"""Named scheduling failures.

Each error carries the HTTP status the route layer answers with, so callers
can render a precise message instead of a generic failure.
"""


class SchedulingError(Exception):
    status_code = 400
    default_message = 'Scheduling request rejected.'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PastDateError(SchedulingError):
    default_message = 'Appointments cannot be booked on a past date.'


class PastTimeError(SchedulingError):
    default_message = 'This time has already passed. Choose a later time.'


class ClinicClosedError(SchedulingError):
    default_message = 'The clinic is closed on this day.'


class OutsideWorkingHoursError(SchedulingError):
    default_message = 'The selected time is outside the clinic working hours.'


class InvalidTimeLabelError(SchedulingError):
    default_message = 'Time must look like "09:30 AM".'


class MalformedWorkingHoursError(SchedulingError):
    """Bad working-hours configuration. Recovered by the slot template fallback."""

    default_message = 'Working hours must use the 24-hour HH:MM format.'


class InvalidTransitionError(SchedulingError):
    status_code = 409
    default_message = 'This status change is not allowed.'


class SlotTakenError(SchedulingError):
    status_code = 409
    default_message = 'This time was just booked. Refresh the available times and pick another.'


class AppointmentNotFoundError(SchedulingError):
    status_code = 404
    default_message = 'Appointment not found.'


class ClinicNotFoundError(SchedulingError):
    status_code = 404
    default_message = 'Clinic not found.'
