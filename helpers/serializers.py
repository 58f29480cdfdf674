from typing import Dict, List, Optional

from helpers import clock
from models.appointment import Appointment


RELATED = ("patient", "doctor__user", "virtual_doctor__user")


async def with_parties(appointments: List[Appointment], using_db=None) -> List[Appointment]:
    if appointments:
        await Appointment.fetch_for_list(appointments, *RELATED, using_db=using_db)
    return appointments


def _enum(value) -> Optional[str]:
    return value.value if value is not None else None


def _person(user) -> Optional[Dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email, "phone": user.phone}


def appointment_to_dict(a: Appointment) -> Dict:
    """Wire form of an appointment. Participant tokens never leave through here."""
    doctor = a.doctor
    virtual_doctor = a.virtual_doctor
    return {
        "id": a.id,
        "patientId": a.patient_id,
        "doctorId": a.doctor_id,
        "virtualDoctorId": a.virtual_doctor_id,
        "type": _enum(a.type),
        "status": _enum(a.status),
        "priority": _enum(a.priority),
        "source": _enum(a.source),
        "appointmentDateTime": clock.isoformat(a.appointment_date_time),
        "appointmentDateTimeDisplay": clock.format_display(a.appointment_date_time),
        "bookingDate": clock.isoformat(a.booking_date),
        "notes": a.notes,
        "confirmedAt": clock.isoformat(a.confirmed_at),
        "rejectedAt": clock.isoformat(a.rejected_at),
        "rescheduleRequestedAt": clock.isoformat(a.reschedule_requested_at),
        "rescheduleApprovedAt": clock.isoformat(a.reschedule_approved_at),
        "rescheduleRejectedAt": clock.isoformat(a.reschedule_rejected_at),
        "canceledAt": clock.isoformat(a.canceled_at),
        "completedAt": clock.isoformat(a.completed_at),
        "originalDateTime": clock.isoformat(a.original_date_time),
        "requestedDateTime": clock.isoformat(a.requested_date_time),
        "rescheduleReason": a.reschedule_reason,
        "rescheduleRejectionReason": a.reschedule_rejection_reason,
        "rejectionReason": a.rejection_reason,
        "cancelReason": a.cancel_reason,
        "canceledBy": _enum(a.canceled_by),
        "consultationNotes": a.consultation_notes,
        "prescription": a.prescription,
        "roomId": a.room_id,
        "videoCallLink": a.video_call_link,
        "paymentRequired": a.payment_required,
        "paymentStatus": _enum(a.payment_status),
        "paymentAmount": float(a.payment_amount) if a.payment_amount is not None else None,
        "reminderSentAt": clock.isoformat(a.reminder_sent_at),
        "createdAt": clock.isoformat(a.created_at),
        "updatedAt": clock.isoformat(a.updated_at),
        "patient": _person(a.patient),
        "doctor": {
            "id": doctor.id,
            "specialty": doctor.specialty,
            "user": _person(doctor.user),
        } if doctor else None,
        "virtualDoctor": {
            "id": virtual_doctor.id,
            "user": _person(virtual_doctor.user),
        } if virtual_doctor else None,
    }


async def appointment_detail(appointment: Appointment) -> Dict:
    await with_parties([appointment])
    return appointment_to_dict(appointment)
