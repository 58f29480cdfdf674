from fastapi import HTTPException


class AppointmentError(HTTPException):
    """Base for every appointment-engine failure.

    ``kind`` is the stable, client-facing error name; ``detail`` is the
    single-line operator-readable message.
    """

    kind = "InternalFailure"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str = None):
        super().__init__(status_code=self.status_code, detail=message or self.default_message)

    @property
    def message(self) -> str:
        return self.detail


class InvalidDateTime(AppointmentError):
    kind = "InvalidDateTime"
    status_code = 400
    default_message = "Invalid appointment date/time format"


class TooSoon(AppointmentError):
    kind = "TooSoon"
    status_code = 400
    default_message = "Appointment must be scheduled at least 1 hour in advance"


class PastDate(AppointmentError):
    kind = "PastDate"
    status_code = 400
    default_message = "Cannot book appointments for past dates"


class WeekendClosed(AppointmentError):
    kind = "WeekendClosed"
    status_code = 400
    default_message = "Appointments are not available on weekends"


class OutsideWorkingHours(AppointmentError):
    kind = "OutsideWorkingHours"
    status_code = 400
    default_message = "Appointment time is outside working hours"


class SlotFull(AppointmentError):
    kind = "SlotFull"
    status_code = 400
    default_message = "Time slot is full. Please choose another time."


class DuplicateForDay(AppointmentError):
    kind = "DuplicateForDay"
    status_code = 400
    default_message = "You already have an appointment on the selected date"


class InvalidPatient(AppointmentError):
    kind = "InvalidPatient"
    status_code = 400
    default_message = "Invalid patient account"


class DoctorUnavailable(AppointmentError):
    kind = "DoctorUnavailable"
    status_code = 400
    default_message = "Doctor not available"


class WorkingHoursNotConfigured(AppointmentError):
    kind = "WorkingHoursNotConfigured"
    status_code = 400
    default_message = "Working hours not configured"


class PricingNotConfigured(AppointmentError):
    kind = "PricingNotConfigured"
    status_code = 400
    default_message = "Virtual appointment price is not configured"


class VideoProvisioningFailed(AppointmentError):
    kind = "VideoProvisioningFailed"
    status_code = 502
    default_message = "Failed to setup video call service. Please try again."


class InvalidTransition(AppointmentError):
    kind = "InvalidTransition"
    status_code = 400
    default_message = "This action is not allowed in the appointment's current state"


class NotAuthorized(AppointmentError):
    kind = "NotAuthorized"
    status_code = 403
    default_message = "You are not authorized to perform this action"


class NotFound(AppointmentError):
    kind = "NotFound"
    status_code = 404
    default_message = "Appointment not found"


class RescheduleTooLate(AppointmentError):
    kind = "RescheduleTooLate"
    status_code = 400
    default_message = "Appointments can only be rescheduled at least 24 hours in advance"


class InternalFailure(AppointmentError):
    pass
