"""Booking admission checks.

Each check raises its own ``AppointmentError`` subclass; ``admit`` runs them
in a fixed order and stops at the first failure. Capacity and per-day
uniqueness are only meaningful under the provider row lock taken by
``admit``, so callers run it inside a transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from helpers import clock
from helpers.config import BOOKING_LEAD_HOURS
from helpers.db import scoped
from helpers.errors import (
    DoctorUnavailable,
    DuplicateForDay,
    InvalidPatient,
    OutsideWorkingHours,
    SlotFull,
    TooSoon,
    WeekendClosed,
)
from helpers.slots import Provider, ProviderKind, capacity_for, count_in_slot, load_active_setting, load_doctor
from models.appointment import Appointment, AppointmentStatus, AppointmentType
from models.user import User, UserRole
from models.virtual_doctor import VirtualDoctor


logger = logging.getLogger(__name__)

# statuses that still count towards the one-per-day rule
_DAY_BLOCKING_EXCLUDED = [AppointmentStatus.CANCELED, AppointmentStatus.REJECTED]


@dataclass
class Admission:
    patient: User
    provider: Provider
    kind: AppointmentType
    instant: datetime
    virtual_doctor: Optional[VirtualDoctor] = None


def check_horizon(instant: datetime, now: datetime) -> None:
    if instant < now + timedelta(hours=BOOKING_LEAD_HOURS):
        raise TooSoon()


async def load_patient(patient_id: int, using_db=None) -> User:
    patient = await scoped(User.filter(id=patient_id), using_db).first()
    if patient is None or patient.role != UserRole.PATIENT:
        raise InvalidPatient()
    return patient


async def resolve_provider(
    kind: AppointmentType,
    doctor_id: Optional[int],
    virtual_doctor_id: Optional[int],
    using_db=None,
    lock: bool = True,
):
    """Locate and lock the provider row that serialises bookings."""
    if doctor_id:
        doctor = await load_doctor(doctor_id, using_db=using_db, lock=lock)
        if doctor is None or not doctor.is_approved:
            raise DoctorUnavailable()
        owner = await scoped(User.filter(id=doctor.user_id), using_db).first()
        if owner is None or owner.role != UserRole.DOCTOR:
            raise DoctorUnavailable()
        return Provider(kind=ProviderKind.DOCTOR, doctor=doctor), None

    if kind != AppointmentType.VIRTUAL:
        raise DoctorUnavailable("A doctor is required for physical appointments")

    virtual_doctor = None
    if virtual_doctor_id:
        virtual_doctor = await scoped(
            VirtualDoctor.filter(id=virtual_doctor_id, is_approved=True, is_active=True), using_db
        ).first()
        if virtual_doctor is None:
            raise DoctorUnavailable("Virtual doctor not available")

    setting = await load_active_setting(using_db=using_db, lock=lock)
    return Provider(kind=ProviderKind.VIRTUAL_POOL, setting=setting), virtual_doctor


def check_window(provider: Provider, instant: datetime) -> None:
    start_time, end_time = provider.window()
    local = clock.to_local(instant)
    if clock.is_weekend(local.date()) and not provider.weekends_open:
        raise WeekendClosed()
    wall = local.time().replace(tzinfo=None)
    if not (start_time <= wall < end_time):
        raise OutsideWorkingHours(
            f"Appointments are only available between {start_time.strftime('%I:%M %p')} "
            f"and {end_time.strftime('%I:%M %p')}"
        )


async def check_capacity(
    provider: Provider,
    kind: AppointmentType,
    instant: datetime,
    exclude_id: Optional[int] = None,
    using_db=None,
) -> None:
    booked = await count_in_slot(provider, instant, exclude_id=exclude_id, using_db=using_db)
    if booked >= capacity_for(kind):
        raise SlotFull()


async def check_unique_day(
    patient_id: int,
    provider: Provider,
    instant: datetime,
    exclude_id: Optional[int] = None,
    using_db=None,
) -> None:
    day_start, day_end = clock.day_bounds(clock.to_local(instant).date())
    query = Appointment.filter(
        patient_id=patient_id,
        appointment_date_time__gte=clock.to_utc(day_start),
        appointment_date_time__lt=clock.to_utc(day_end),
        **provider.occupancy_filter(),
    ).exclude(status__in=_DAY_BLOCKING_EXCLUDED)
    if exclude_id is not None:
        query = query.exclude(id=exclude_id)
    if await scoped(query, using_db).exists():
        if provider.kind is ProviderKind.VIRTUAL_POOL:
            raise DuplicateForDay("You already have a virtual appointment on the selected date")
        raise DuplicateForDay("You already have an appointment with this doctor on the selected date")


async def admit(
    patient_id: int,
    kind: AppointmentType,
    instant: datetime,
    doctor_id: Optional[int] = None,
    virtual_doctor_id: Optional[int] = None,
    using_db=None,
) -> Admission:
    check_horizon(instant, clock.local_now())
    patient = await load_patient(patient_id, using_db=using_db)
    provider, virtual_doctor = await resolve_provider(kind, doctor_id, virtual_doctor_id, using_db=using_db)
    check_window(provider, instant)
    await check_capacity(provider, kind, instant, using_db=using_db)
    await check_unique_day(patient.id, provider, instant, using_db=using_db)
    return Admission(
        patient=patient,
        provider=provider,
        kind=kind,
        instant=instant,
        virtual_doctor=virtual_doctor,
    )


async def admit_reschedule(appointment: Appointment, instant: datetime, using_db=None) -> None:
    """Run the booking checks for a proposed new time, ignoring the appointment being moved."""
    check_horizon(instant, clock.local_now())
    await load_patient(appointment.patient_id, using_db=using_db)
    provider, _ = await resolve_provider(
        appointment.type, appointment.doctor_id, appointment.virtual_doctor_id, using_db=using_db, lock=False
    )

    check_window(provider, instant)
    await check_capacity(provider, appointment.type, instant, exclude_id=appointment.id, using_db=using_db)
    await check_unique_day(appointment.patient_id, provider, instant, exclude_id=appointment.id, using_db=using_db)
