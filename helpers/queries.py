import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from helpers import clock, parties
from helpers.errors import NotAuthorized, NotFound
from helpers.serializers import appointment_to_dict, with_parties
from models.appointment import Appointment, AppointmentStatus, AppointmentType
from models.doctor import Doctor
from models.user import User, UserRole
from models.virtual_doctor import VirtualDoctor


@dataclass
class ListFilters:
    status: Optional[AppointmentStatus] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    page: int = 1
    limit: int = 10


def _is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


async def _paginate(query, filters: ListFilters) -> Dict:
    if filters.status is not None:
        query = query.filter(status=filters.status)
    if filters.from_date is not None:
        query = query.filter(appointment_date_time__gte=clock.to_utc(clock.day_bounds(filters.from_date)[0]))
    if filters.to_date is not None:
        query = query.filter(appointment_date_time__lte=clock.to_utc(clock.end_of_day(filters.to_date)))

    total = await query.count()
    offset = (filters.page - 1) * filters.limit
    rows = await query.order_by("-appointment_date_time", "-id").offset(offset).limit(filters.limit)
    await with_parties(rows)
    return {
        "appointments": [appointment_to_dict(row) for row in rows],
        "pagination": {
            "total": total,
            "page": filters.page,
            "limit": filters.limit,
            "totalPages": math.ceil(total / filters.limit) if filters.limit else 0,
        },
    }


async def list_for_patient(user_id: int, actor: User, filters: ListFilters) -> Dict:
    if not await User.exists(id=user_id):
        raise NotFound("User not found")
    if actor.id != user_id and not _is_admin(actor):
        raise NotAuthorized("Unauthorized access")
    return await _paginate(Appointment.filter(patient_id=user_id), filters)


async def list_for_doctor(doctor_id: int, actor: User, filters: ListFilters) -> Dict:
    doctor = await Doctor.get_or_none(id=doctor_id)
    if doctor is None:
        raise NotFound("Doctor not found")
    if doctor.user_id != actor.id and not _is_admin(actor):
        raise NotAuthorized("Unauthorized access")
    return await _paginate(Appointment.filter(doctor_id=doctor.id), filters)


async def _virtual_profile(actor: User) -> Optional[VirtualDoctor]:
    if actor.role != UserRole.VIRTUAL_DOCTOR:
        return None
    return await VirtualDoctor.filter(user_id=actor.id, is_approved=True).first()


async def list_for_virtual(actor: User, filters: ListFilters, assigned_only: bool = False) -> Dict:
    profile = await _virtual_profile(actor)
    if profile is None and not _is_admin(actor):
        raise NotAuthorized("Only virtual doctors can access virtual appointments")

    query = Appointment.filter(doctor_id__isnull=True, type=AppointmentType.VIRTUAL)
    if assigned_only and profile is not None:
        query = query.filter(virtual_doctor_id=profile.id)
    return await _paginate(query, filters)


async def get_by_id(appointment_id: int, actor: User) -> Dict:
    appointment = await Appointment.get_or_none(id=appointment_id)
    if appointment is None:
        raise NotFound()
    if not _is_admin(actor) and await parties.role_of(appointment, actor) is None:
        raise NotAuthorized("You are not authorized to view this appointment")
    await with_parties([appointment])
    return appointment_to_dict(appointment)


async def _stats_scope(scope: str, subject_id: Optional[int], actor: User) -> Dict:
    if scope == "patient":
        subject = subject_id or actor.id
        if subject != actor.id and not _is_admin(actor):
            raise NotAuthorized("Unauthorized access")
        return {"patient_id": subject}

    if scope == "doctor":
        subject = subject_id or actor.id
        if subject != actor.id and not _is_admin(actor):
            raise NotAuthorized("Unauthorized access")
        doctor = await Doctor.filter(user_id=subject).first()
        if doctor is None:
            raise NotFound("Doctor not found")
        return {"doctor_id": doctor.id}

    if scope == "virtual":
        if await _virtual_profile(actor) is None and not _is_admin(actor):
            raise NotAuthorized("Only virtual doctors can access virtual appointment stats")
        return {"doctor_id__isnull": True, "type": AppointmentType.VIRTUAL}

    raise NotFound(f"Unknown stats scope: {scope}")


async def stats(scope: str, subject_id: Optional[int], actor: User) -> Dict:
    """Counts by status and by local day, ISO week and calendar month."""
    base = await _stats_scope(scope, subject_id, actor)
    today = clock.local_now().date()

    def between(bounds):
        start, end = bounds
        return Appointment.filter(
            appointment_date_time__gte=clock.to_utc(start),
            appointment_date_time__lt=clock.to_utc(end),
            **base,
        ).count()

    def with_status(status):
        return Appointment.filter(status=status, **base).count()

    return {
        "total": await Appointment.filter(**base).count(),
        "pending": await with_status(AppointmentStatus.PENDING),
        "confirmed": await with_status(AppointmentStatus.CONFIRMED),
        "completed": await with_status(AppointmentStatus.COMPLETED),
        "canceled": await with_status(AppointmentStatus.CANCELED),
        "rejected": await with_status(AppointmentStatus.REJECTED),
        "rescheduleRequests": await with_status(AppointmentStatus.RESCHEDULE_REQUESTED),
        "today": await between(clock.day_bounds(today)),
        "thisWeek": await between(clock.week_bounds(today)),
        "thisMonth": await between(clock.month_bounds(today)),
    }
