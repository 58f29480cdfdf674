"""Who is who on an appointment.

A doctor-bound appointment has exactly one doctor of record: the user
behind its ``Doctor`` profile. A pool-virtual appointment is owned by its
assigned virtual doctor, or by any approved virtual doctor while nobody
has picked it up yet.
"""
from enum import Enum
from typing import Optional, Union

from helpers.db import scoped
from models.appointment import Appointment, AppointmentType
from models.doctor import Doctor
from models.user import User, UserRole
from models.virtual_doctor import VirtualDoctor


class PartyRole(Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


def is_pool(appointment: Appointment) -> bool:
    return appointment.type == AppointmentType.VIRTUAL and appointment.doctor_id is None


async def doctor_of_record(appointment: Appointment, user: User, using_db=None) -> Optional[Union[Doctor, VirtualDoctor]]:
    """Return the caller's doctor-side profile if they may act for this appointment."""
    if not is_pool(appointment):
        if user.role != UserRole.DOCTOR:
            return None
        return await scoped(Doctor.filter(id=appointment.doctor_id, user_id=user.id), using_db).first()

    if user.role != UserRole.VIRTUAL_DOCTOR:
        return None
    profile = await scoped(
        VirtualDoctor.filter(user_id=user.id, is_approved=True, is_active=True), using_db
    ).first()
    if profile is None:
        return None
    if appointment.virtual_doctor_id is not None and appointment.virtual_doctor_id != profile.id:
        return None
    return profile


async def role_of(appointment: Appointment, user: User, using_db=None) -> Optional[PartyRole]:
    if appointment.patient_id == user.id:
        return PartyRole.PATIENT
    if await doctor_of_record(appointment, user, using_db) is not None:
        return PartyRole.DOCTOR
    return None


async def doctor_user(appointment: Appointment, using_db=None) -> Optional[User]:
    """The user on the doctor side, if there is one yet."""
    if appointment.doctor_id is not None:
        doctor = await scoped(Doctor.filter(id=appointment.doctor_id), using_db).first()
        if doctor is None:
            return None
        return await scoped(User.filter(id=doctor.user_id), using_db).first()
    if appointment.virtual_doctor_id is not None:
        profile = await scoped(VirtualDoctor.filter(id=appointment.virtual_doctor_id), using_db).first()
        if profile is None:
            return None
        return await scoped(User.filter(id=profile.user_id), using_db).first()
    return None


async def doctor_email(appointment: Appointment, user: Optional[User], using_db=None) -> Optional[str]:
    """Profile email first, then the login email."""
    if appointment.doctor_id is not None:
        doctor = await scoped(Doctor.filter(id=appointment.doctor_id), using_db).first()
        if doctor and doctor.email:
            return doctor.email
    elif appointment.virtual_doctor_id is not None:
        profile = await scoped(VirtualDoctor.filter(id=appointment.virtual_doctor_id), using_db).first()
        if profile and profile.email:
            return profile.email
    return user.email if user else None
