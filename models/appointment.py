from tortoise import fields
from tortoise.models import Model
from enum import Enum


class AppointmentStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    RESCHEDULE_REQUESTED = "reschedule_requested"
    REJECTED = "rejected"
    CANCELED = "canceled"
    COMPLETED = "completed"


class AppointmentType(Enum):
    PHYSICAL = "physical"
    VIRTUAL = "virtual"


class CanceledBy(Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class AppointmentPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AppointmentSource(Enum):
    WEB = "web"
    MOBILE = "mobile"
    ADMIN = "admin"

# statuses that hold a seat in a slot
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.RESCHEDULE_REQUESTED,
)


class Appointment(Model):
    id = fields.IntField(primary_key=True)
    patient = fields.ForeignKeyField("models.User", related_name="patient_appointments")
    doctor = fields.ForeignKeyField("models.Doctor", related_name="appointments", null=True)
    virtual_doctor = fields.ForeignKeyField("models.VirtualDoctor", related_name="appointments", null=True)

    type = fields.CharEnumField(enum_type=AppointmentType, max_length=10, default=AppointmentType.PHYSICAL)
    status = fields.CharEnumField(enum_type=AppointmentStatus, max_length=25, default=AppointmentStatus.PENDING)
    priority = fields.CharEnumField(enum_type=AppointmentPriority, max_length=10, default=AppointmentPriority.MEDIUM)
    source = fields.CharEnumField(enum_type=AppointmentSource, max_length=10, default=AppointmentSource.WEB)

    appointment_date_time = fields.DatetimeField()
    booking_date = fields.DatetimeField()
    notes = fields.TextField(null=True)

    confirmed_at = fields.DatetimeField(null=True)
    rejected_at = fields.DatetimeField(null=True)
    reschedule_requested_at = fields.DatetimeField(null=True)
    reschedule_approved_at = fields.DatetimeField(null=True)
    reschedule_rejected_at = fields.DatetimeField(null=True)
    canceled_at = fields.DatetimeField(null=True)
    completed_at = fields.DatetimeField(null=True)

    original_date_time = fields.DatetimeField(null=True, description="Time held before the reschedule request")
    requested_date_time = fields.DatetimeField(null=True, description="Time proposed by the reschedule request")
    reschedule_reason = fields.TextField(null=True)
    reschedule_rejection_reason = fields.TextField(null=True)

    rejection_reason = fields.TextField(null=True)
    cancel_reason = fields.TextField(null=True)
    canceled_by = fields.CharEnumField(enum_type=CanceledBy, max_length=10, null=True)

    consultation_notes = fields.TextField(null=True)
    prescription = fields.TextField(null=True)

    room_id = fields.CharField(max_length=64, unique=True, null=True)
    video_call_link = fields.CharField(max_length=255, null=True)
    patient_comm_user_id = fields.CharField(max_length=255, null=True)
    patient_token = fields.TextField(null=True)
    patient_token_expiry = fields.DatetimeField(null=True)
    doctor_comm_user_id = fields.CharField(max_length=255, null=True)
    doctor_token = fields.TextField(null=True)
    doctor_token_expiry = fields.DatetimeField(null=True)

    payment_required = fields.BooleanField(default=False)
    payment_status = fields.CharEnumField(enum_type=PaymentStatus, max_length=10, null=True)
    payment_amount = fields.DecimalField(max_digits=10, decimal_places=2, null=True)

    reminder_sent_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "appointments"
        indexes = (
            ("doctor_id", "appointment_date_time"),
            ("patient_id", "appointment_date_time"),
            ("status",),
        )
