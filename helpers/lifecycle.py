"""Appointment state machine.

``TRANSITIONS`` is the only place that says which event may move an
appointment from which status, and who may ask for it. ``apply`` loads
the appointment under a row lock, checks actor and state, runs the
event's effect and saves, all in one transaction; notifications go out
after the commit.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, FrozenSet, Optional

from tortoise.transactions import in_transaction

from helpers import admission, clock, parties, video
from helpers.config import RESCHEDULE_NOTICE_HOURS, VIRTUAL_PRICE_SERVICE_NAME
from helpers.db import scoped
from helpers.errors import (
    InvalidTransition,
    NotAuthorized,
    NotFound,
    PricingNotConfigured,
    RescheduleTooLate,
)
from helpers.events import AppointmentEvent
from helpers.parties import PartyRole
from helpers.slots import Provider, ProviderKind, load_active_setting, load_doctor
from models.appointment import (
    Appointment,
    AppointmentPriority,
    AppointmentSource,
    AppointmentStatus,
    AppointmentType,
    CanceledBy,
    PaymentStatus,
)
from models.price import Price
from models.user import User
from models.virtual_doctor import VirtualDoctor


logger = logging.getLogger(__name__)

Status = AppointmentStatus


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[AppointmentStatus]
    target: AppointmentStatus
    actors: FrozenSet[PartyRole]


TRANSITIONS: Dict[AppointmentEvent, Transition] = {
    AppointmentEvent.CONFIRM: Transition(
        frozenset({Status.PENDING}), Status.CONFIRMED, frozenset({PartyRole.DOCTOR})
    ),
    AppointmentEvent.REJECT: Transition(
        frozenset({Status.PENDING}), Status.REJECTED, frozenset({PartyRole.DOCTOR})
    ),
    AppointmentEvent.REQUEST_RESCHEDULE: Transition(
        frozenset({Status.PENDING, Status.CONFIRMED}), Status.RESCHEDULE_REQUESTED, frozenset({PartyRole.PATIENT})
    ),
    AppointmentEvent.APPROVE_RESCHEDULE: Transition(
        frozenset({Status.RESCHEDULE_REQUESTED}), Status.CONFIRMED, frozenset({PartyRole.DOCTOR})
    ),
    AppointmentEvent.REJECT_RESCHEDULE: Transition(
        frozenset({Status.RESCHEDULE_REQUESTED}), Status.CONFIRMED, frozenset({PartyRole.DOCTOR})
    ),
    AppointmentEvent.CANCEL: Transition(
        frozenset({Status.PENDING, Status.CONFIRMED, Status.RESCHEDULE_REQUESTED}),
        Status.CANCELED,
        frozenset({PartyRole.PATIENT, PartyRole.DOCTOR}),
    ),
    AppointmentEvent.COMPLETE: Transition(
        frozenset({Status.CONFIRMED}), Status.COMPLETED, frozenset({PartyRole.DOCTOR})
    ),
}


@dataclass
class BookingInput:
    patient_id: int
    appointment_date_time: str
    type: AppointmentType = AppointmentType.PHYSICAL
    doctor_id: Optional[int] = None
    virtual_doctor_id: Optional[int] = None
    notes: Optional[str] = None
    priority: AppointmentPriority = AppointmentPriority.MEDIUM
    source: AppointmentSource = AppointmentSource.WEB


@dataclass
class TransitionInput:
    rejection_reason: Optional[str] = None
    new_date_time: Optional[str] = None
    reschedule_reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    consultation_notes: Optional[str] = None
    prescription: Optional[str] = None


async def _virtual_price(using_db=None):
    price = await scoped(
        Price.filter(service_name=VIRTUAL_PRICE_SERVICE_NAME, is_active=True).order_by("-updated_at", "-id"),
        using_db,
    ).first()
    if price is None or price.price is None:
        raise PricingNotConfigured()
    return price.price


async def book(request: BookingInput, notifier, video_gateway) -> Appointment:
    instant = clock.parse_datetime(request.appointment_date_time)

    async with in_transaction() as conn:
        admitted = await admission.admit(
            patient_id=request.patient_id,
            kind=request.type,
            instant=instant,
            doctor_id=request.doctor_id,
            virtual_doctor_id=request.virtual_doctor_id,
            using_db=conn,
        )

        fields = {}
        if admitted.provider.kind is ProviderKind.VIRTUAL_POOL:
            fields.update(
                payment_required=True,
                payment_status=PaymentStatus.PENDING,
                payment_amount=await _virtual_price(using_db=conn),
            )

        if admitted.kind == AppointmentType.VIRTUAL:
            fields.update(await video.provision_room(video_gateway))

        appointment = await Appointment.create(
            using_db=conn,
            patient_id=admitted.patient.id,
            doctor_id=admitted.provider.doctor_id,
            virtual_doctor_id=admitted.virtual_doctor.id if admitted.virtual_doctor else None,
            type=admitted.kind,
            status=Status.PENDING,
            appointment_date_time=clock.to_utc(instant),
            booking_date=clock.to_utc(clock.local_now()),
            notes=request.notes,
            priority=request.priority,
            source=request.source,
            **fields,
        )

    logger.info(
        "event=%s appointment_id=%s actor_id=%s type=%s at=%s",
        AppointmentEvent.BOOK.value, appointment.id, request.patient_id, admitted.kind.value, instant.isoformat(),
    )
    await notifier.dispatch(AppointmentEvent.BOOK, appointment, PartyRole.PATIENT)
    return appointment


async def _confirm(appointment, data, now, role, conn):
    appointment.confirmed_at = clock.to_utc(now)


async def _reject(appointment, data, now, role, conn):
    appointment.rejected_at = clock.to_utc(now)
    appointment.rejection_reason = data.rejection_reason


async def _request_reschedule(appointment, data, now, role, conn):
    if clock.to_local(appointment.appointment_date_time) - now < timedelta(hours=RESCHEDULE_NOTICE_HOURS):
        raise RescheduleTooLate()
    new_instant = clock.parse_datetime(data.new_date_time)
    await admission.admit_reschedule(appointment, new_instant, using_db=conn)

    appointment.original_date_time = appointment.appointment_date_time
    appointment.requested_date_time = clock.to_utc(new_instant)
    appointment.reschedule_reason = data.reschedule_reason
    appointment.reschedule_requested_at = clock.to_utc(now)


async def _approve_reschedule(appointment, data, now, role, conn):
    if appointment.requested_date_time is None:
        raise InvalidTransition("No reschedule request found for this appointment")

    if appointment.doctor_id is not None:
        provider = Provider(kind=ProviderKind.DOCTOR, doctor=await load_doctor(appointment.doctor_id, conn, lock=True))
    else:
        provider = Provider(kind=ProviderKind.VIRTUAL_POOL, setting=await load_active_setting(conn, lock=True))
    requested = clock.to_local(appointment.requested_date_time)
    await admission.check_capacity(provider, appointment.type, requested, exclude_id=appointment.id, using_db=conn)
    await admission.check_unique_day(
        appointment.patient_id, provider, requested, exclude_id=appointment.id, using_db=conn
    )

    appointment.appointment_date_time = appointment.requested_date_time
    appointment.reschedule_approved_at = clock.to_utc(now)


async def _reject_reschedule(appointment, data, now, role, conn):
    if appointment.original_date_time is not None:
        appointment.appointment_date_time = appointment.original_date_time
    appointment.requested_date_time = None
    appointment.reschedule_rejection_reason = data.rejection_reason
    appointment.reschedule_rejected_at = clock.to_utc(now)


async def _cancel(appointment, data, now, role, conn):
    appointment.canceled_at = clock.to_utc(now)
    appointment.cancel_reason = data.cancel_reason
    appointment.canceled_by = CanceledBy.PATIENT if role is PartyRole.PATIENT else CanceledBy.DOCTOR


async def _complete(appointment, data, now, role, conn):
    appointment.completed_at = clock.to_utc(now)
    appointment.consultation_notes = data.consultation_notes
    appointment.prescription = data.prescription


EFFECTS = {
    AppointmentEvent.CONFIRM: _confirm,
    AppointmentEvent.REJECT: _reject,
    AppointmentEvent.REQUEST_RESCHEDULE: _request_reschedule,
    AppointmentEvent.APPROVE_RESCHEDULE: _approve_reschedule,
    AppointmentEvent.REJECT_RESCHEDULE: _reject_reschedule,
    AppointmentEvent.CANCEL: _cancel,
    AppointmentEvent.COMPLETE: _complete,
}


async def apply(
    appointment_id: int,
    event: AppointmentEvent,
    actor: User,
    data: Optional[TransitionInput] = None,
    notifier=None,
) -> Appointment:
    rule = TRANSITIONS.get(event)
    if rule is None:
        raise InvalidTransition(f"Unknown appointment action: {event.value}")
    data = data or TransitionInput()

    async with in_transaction() as conn:
        appointment = await scoped(Appointment.filter(id=appointment_id).select_for_update(), conn).first()
        if appointment is None:
            raise NotFound()

        role = await parties.role_of(appointment, actor, using_db=conn)
        if role is None or role not in rule.actors:
            raise NotAuthorized(f"You are not authorized to {event.value} this appointment")

        previous = appointment.status
        if previous not in rule.sources:
            raise InvalidTransition(f"Cannot {event.value} appointment. Current status: {previous.value}")

        await EFFECTS[event](appointment, data, clock.local_now(), role, conn)
        appointment.status = rule.target

        # the first virtual doctor to act on a pool appointment takes it
        if role is PartyRole.DOCTOR and parties.is_pool(appointment) and appointment.virtual_doctor_id is None:
            profile = await parties.doctor_of_record(appointment, actor, using_db=conn)
            if isinstance(profile, VirtualDoctor):
                appointment.virtual_doctor_id = profile.id

        await appointment.save(using_db=conn)

    logger.info(
        "event=%s appointment_id=%s actor_id=%s from=%s to=%s",
        event.value, appointment.id, actor.id, previous.value, appointment.status.value,
    )
    if notifier is not None:
        await notifier.dispatch(event, appointment, role)
    return appointment
