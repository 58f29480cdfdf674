"""Post-commit fan-out of appointment events.

For every event a list of deliveries is planned: who gets told, with which
email template, and what the in-app/push title and body say. Each channel
of each delivery runs on its own; a failing channel is logged and the rest
carry on. Nothing here raises back into the state machine.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from helpers import clock, parties
from helpers.config import OUTBOUND_TIMEOUT_SECONDS
from helpers.events import AppointmentEvent
from helpers.parties import PartyRole
from helpers.push import InvalidDeviceToken
from models.appointment import Appointment
from models.notification import Notification, NotificationKind
from models.user import User


logger = logging.getLogger(__name__)


@dataclass
class Delivery:
    user: User
    email_to: Optional[str]
    template: Optional[str]
    title: Optional[str] = None
    body: Optional[str] = None
    push: bool = True
    extra: Dict = field(default_factory=dict)


@dataclass
class Outcome:
    channel: str
    user_id: int
    ok: bool


def _variables(appointment: Appointment, patient: User, doctor: Optional[User]) -> Dict:
    when = appointment.appointment_date_time
    return {
        "patientName": patient.name,
        "doctorName": doctor.name if doctor else "Virtual Doctor",
        "appointmentDate": clock.format_date(when),
        "appointmentTime": clock.format_time(when),
        "appointmentType": appointment.type.value,
        "appointmentId": str(appointment.id),
        "notes": appointment.notes or "No additional notes",
        "videoCallLink": appointment.video_call_link,
        "originalDate": clock.format_date(appointment.original_date_time) if appointment.original_date_time else None,
        "originalTime": clock.format_time(appointment.original_date_time) if appointment.original_date_time else None,
        "newDate": clock.format_date(appointment.requested_date_time) if appointment.requested_date_time else None,
        "newTime": clock.format_time(appointment.requested_date_time) if appointment.requested_date_time else None,
        "rescheduleReason": appointment.reschedule_reason,
        "rejectionReason": appointment.rejection_reason or appointment.reschedule_rejection_reason,
        "cancelReason": appointment.cancel_reason or "No reason provided",
        "consultationNotes": appointment.consultation_notes,
        "prescription": appointment.prescription,
    }


class NotificationOrchestrator:
    def __init__(self, email_gateway, push_gateway):
        self.email = email_gateway
        self.push = push_gateway

    async def dispatch(
        self,
        event: AppointmentEvent,
        appointment: Appointment,
        actor_role: Optional[PartyRole] = None,
    ) -> List[Outcome]:
        try:
            deliveries = await self._plan(event, appointment, actor_role)
        except Exception:
            logger.exception("could not plan notifications event=%s appointment_id=%s", event.value, appointment.id)
            return [Outcome(channel="plan", user_id=appointment.patient_id, ok=False)]

        outcomes = []
        for delivery in deliveries:
            outcomes.extend(await self._deliver(event, appointment, delivery))
        return outcomes

    async def _plan(self, event: AppointmentEvent, appointment: Appointment, actor_role: Optional[PartyRole]) -> List[Delivery]:
        patient = await User.get(id=appointment.patient_id)
        doctor = await parties.doctor_user(appointment)
        doctor_mail = await parties.doctor_email(appointment, doctor)
        v = _variables(appointment, patient, doctor)
        when = f"{v['appointmentDate']} at {v['appointmentTime']}"

        def to_patient(template, title=None, body=None, push=True, **extra):
            return Delivery(patient, patient.email, template, title, body, push, extra)

        def to_doctor(template, title=None, body=None, push=True, **extra):
            return Delivery(doctor, doctor_mail, template, title, body, push, extra)

        plan: List[Delivery] = []
        if event is AppointmentEvent.BOOK:
            plan.append(to_patient(
                "appointment_requested", "Appointment Requested",
                f"Your appointment request for {when} has been submitted", push=False,
            ))
            if doctor:
                plan.append(to_doctor(
                    "new_appointment_request", "New Appointment Request",
                    f"You have a new appointment request from {patient.name}",
                ))
        elif event is AppointmentEvent.CONFIRM:
            plan.append(to_patient(
                "appointment_confirmed", "Appointment Confirmed",
                f"Your appointment with Dr. {v['doctorName']} has been confirmed",
            ))
        elif event is AppointmentEvent.REJECT:
            plan.append(to_patient(
                "appointment_rejected", "Appointment Rejected",
                f"Your appointment request for {when} was rejected",
            ))
        elif event is AppointmentEvent.REQUEST_RESCHEDULE:
            if doctor:
                plan.append(to_doctor(
                    "reschedule_request_doctor", "Reschedule Request",
                    f"{patient.name} has requested to reschedule the appointment on {when}",
                ))
            plan.append(to_patient("reschedule_request_patient"))
        elif event is AppointmentEvent.APPROVE_RESCHEDULE:
            plan.append(to_patient(
                "reschedule_approved", "Reschedule Approved",
                f"Dr. {v['doctorName']} has approved your reschedule request",
            ))
        elif event is AppointmentEvent.REJECT_RESCHEDULE:
            plan.append(to_patient(
                "reschedule_rejected", "Reschedule Rejected",
                f"Dr. {v['doctorName']} has rejected your reschedule request",
            ))
        elif event is AppointmentEvent.CANCEL:
            plan.extend(self._plan_cancel(actor_role, patient, doctor, v, to_patient, to_doctor))
        elif event is AppointmentEvent.COMPLETE:
            plan.append(to_patient(
                "appointment_completed", "Appointment Completed",
                f"Your appointment with Dr. {v['doctorName']} has been completed",
            ))
        elif event is AppointmentEvent.REMINDER:
            plan.append(to_patient(
                "appointment_reminder", "Appointment Reminder",
                f"Reminder: your appointment is on {when}",
            ))

        for delivery in plan:
            delivery.extra = {**v, **delivery.extra}
        return plan

    @staticmethod
    def _plan_cancel(actor_role, patient, doctor, v, to_patient, to_doctor) -> List[Delivery]:
        doctor_label = f"Dr. {v['doctorName']}"
        plan = []
        if actor_role is PartyRole.DOCTOR:
            plan.append(to_patient(
                "appointment_canceled_by_doctor", "Appointment Canceled",
                f"{doctor_label} has canceled the appointment",
                recipientName=patient.name, cancelerName=doctor_label,
            ))
            if doctor:
                plan.append(to_doctor(
                    "cancellation_confirmation_doctor", push=False,
                    cancelerName=doctor_label, otherPartyName=patient.name,
                ))
            return plan

        if doctor:
            plan.append(to_doctor(
                "appointment_canceled_by_patient", "Appointment Canceled",
                f"{patient.name} has canceled the appointment",
                recipientName=v["doctorName"], cancelerName=patient.name,
            ))
        plan.append(to_patient(
            "cancellation_confirmation_patient", push=False,
            cancelerName=patient.name, otherPartyName=doctor_label,
        ))
        return plan

    async def _deliver(self, event: AppointmentEvent, appointment: Appointment, delivery: Delivery) -> List[Outcome]:
        user = delivery.user
        outcomes = []

        if delivery.title:
            outcomes.append(await self._in_app(event, appointment, delivery))
            if delivery.push and user.notification_enabled and user.fcm_token:
                outcomes.append(await self._push(event, appointment, delivery))

        if delivery.template:
            if delivery.email_to:
                outcomes.append(await self._email(appointment, delivery))
            else:
                logger.info(
                    "no email address for user_id=%s, skipping %s for appointment_id=%s",
                    user.id, delivery.template, appointment.id,
                )
        return outcomes

    async def _in_app(self, event, appointment, delivery) -> Outcome:
        try:
            await Notification.create(
                user_id=delivery.user.id,
                title=delivery.title,
                message=delivery.body or "",
                kind=NotificationKind.APPOINTMENT,
                event=event.value,
                related_appointment_id=appointment.id,
                data={"appointmentId": str(appointment.id), "type": event.value},
            )
            return Outcome("in_app", delivery.user.id, True)
        except Exception as e:
            logger.warning(
                "in-app notification failed user_id=%s appointment_id=%s: %s",
                delivery.user.id, appointment.id, e,
            )
            return Outcome("in_app", delivery.user.id, False)

    async def _push(self, event, appointment, delivery) -> Outcome:
        user = delivery.user
        data = {"appointmentId": str(appointment.id), "type": event.value}
        try:
            await asyncio.wait_for(
                self.push.send(user.fcm_token, delivery.title, delivery.body or "", data),
                OUTBOUND_TIMEOUT_SECONDS,
            )
            return Outcome("push", user.id, True)
        except InvalidDeviceToken as e:
            logger.warning("clearing invalid push token for user_id=%s: %s", user.id, e)
            await self._clear_token(user)
        except Exception as e:
            logger.warning("push failed user_id=%s appointment_id=%s: %s", user.id, appointment.id, e)
        return Outcome("push", user.id, False)

    @staticmethod
    async def _clear_token(user: User) -> None:
        try:
            await User.filter(id=user.id, fcm_token=user.fcm_token).update(fcm_token=None)
            user.fcm_token = None
        except Exception as e:
            logger.warning("could not clear push token for user_id=%s: %s", user.id, e)

    async def _email(self, appointment, delivery) -> Outcome:
        user_id = delivery.user.id
        try:
            sent = await asyncio.wait_for(
                self.email.send(delivery.email_to, delivery.template, delivery.extra),
                OUTBOUND_TIMEOUT_SECONDS,
            )
        except Exception as e:
            logger.warning(
                "email %s failed user_id=%s appointment_id=%s: %s",
                delivery.template, user_id, appointment.id, e,
            )
            return Outcome("email", user_id, False)
        if not sent:
            logger.warning("email %s not sent user_id=%s appointment_id=%s", delivery.template, user_id, appointment.id)
        return Outcome("email", user_id, bool(sent))
