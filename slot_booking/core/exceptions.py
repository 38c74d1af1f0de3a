"""
Error taxonomy for the scheduling core.

Every failure the core surfaces is a ``SchedulingError``; callers branch on the
class (or on ``code``) rather than on the message text.
"""


class SchedulingError(Exception):
    """Base class for all scheduling errors."""

    status_code = 400
    code = "scheduling_error"
    default_message = "Scheduling request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ScheduleValidationError(SchedulingError):
    """Raised for malformed times or out-of-range durations."""

    status_code = 400
    code = "validation_error"
    default_message = "Invalid scheduling input."


class NotFoundError(SchedulingError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class SlotNotFound(NotFoundError):
    code = "slot_not_found"
    default_message = "Time slot not found."


class AppointmentNotFound(NotFoundError):
    """Also raised when a requester addresses someone else's appointment."""

    code = "appointment_not_found"
    default_message = "Appointment not found."


class StateError(SchedulingError):
    """The request conflicts with the current slot, day or appointment state."""

    status_code = 409
    code = "conflict"
    default_message = "Request conflicts with the current state."


class SlotUnavailable(StateError):
    code = "slot_unavailable"
    default_message = "Time slot is not available."


class SlotBooked(StateError):
    """Raised when an admin tries to rewrite or remove a booked slot."""

    code = "slot_booked"
    default_message = "Time slot is already booked."


class SlotOverlap(StateError):
    code = "slot_overlap"
    default_message = "Time slot overlaps another slot on the same day."


class DayClosed(StateError):
    code = "day_closed"
    default_message = "The date is marked as an off day."


class InvalidTransition(StateError):
    code = "invalid_transition"
    default_message = "Appointment status change is not allowed."
