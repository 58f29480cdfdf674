from enum import Enum


class AppointmentEvent(Enum):
    BOOK = "book"
    CONFIRM = "confirm"
    REJECT = "reject"
    REQUEST_RESCHEDULE = "reschedule"
    APPROVE_RESCHEDULE = "approve-reschedule"
    REJECT_RESCHEDULE = "reject-reschedule"
    CANCEL = "cancel"
    COMPLETE = "complete"
    REMINDER = "reminder"
