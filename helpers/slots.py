import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

from helpers import clock
from helpers.config import (
    BOOKING_LEAD_HOURS,
    PHYSICAL_SLOT_CAPACITY,
    SLOT_MINUTES,
    VIRTUAL_SLOT_CAPACITY,
)
from helpers.db import scoped
from helpers.errors import PastDate, WorkingHoursNotConfigured
from models.admin_setting import AdminSetting
from models.appointment import ACTIVE_STATUSES, Appointment, AppointmentType
from models.doctor import Doctor


logger = logging.getLogger(__name__)


class ProviderKind(Enum):
    DOCTOR = "doctor"
    VIRTUAL_POOL = "virtual_pool"


# whether a provider kind takes bookings on Saturday and Sunday
WEEKENDS_OPEN = {
    ProviderKind.DOCTOR: False,
    ProviderKind.VIRTUAL_POOL: True,
}

CAPACITY = {
    AppointmentType.PHYSICAL: PHYSICAL_SLOT_CAPACITY,
    AppointmentType.VIRTUAL: VIRTUAL_SLOT_CAPACITY,
}


def capacity_for(kind: AppointmentType) -> int:
    return CAPACITY[kind]


@dataclass
class Provider:
    kind: ProviderKind
    doctor: Optional[Doctor] = None
    setting: Optional[AdminSetting] = None

    @property
    def doctor_id(self) -> Optional[int]:
        return self.doctor.id if self.doctor else None

    @property
    def weekends_open(self) -> bool:
        return WEEKENDS_OPEN[self.kind]

    def window(self) -> Tuple[time, time]:
        if self.kind is ProviderKind.DOCTOR:
            raw_start, raw_end = self.doctor.start_time, self.doctor.end_time
        elif self.setting is not None:
            raw_start = self.setting.virtual_appointment_start_time
            raw_end = self.setting.virtual_appointment_end_time
        else:
            raise WorkingHoursNotConfigured("Virtual appointment hours are not configured")

        start, end = clock.parse_clock_time(raw_start), clock.parse_clock_time(raw_end)
        if start is None or end is None:
            raise WorkingHoursNotConfigured("Working hours not configured")
        if start >= end:
            raise WorkingHoursNotConfigured("Invalid working hours configuration")
        return start, end

    def occupancy_filter(self) -> Dict:
        if self.kind is ProviderKind.DOCTOR:
            return {"doctor_id": self.doctor_id}
        return {"doctor_id__isnull": True, "type": AppointmentType.VIRTUAL}


@dataclass
class Slot:
    start: datetime
    end: datetime
    booked_count: int
    capacity: int

    @property
    def available(self) -> bool:
        return self.booked_count < self.capacity

    def to_dict(self) -> Dict:
        return {
            "startTime": clock.isoformat(self.start),
            "endTime": clock.isoformat(self.end),
            "time": clock.format_time(self.start),
            "bookedCount": self.booked_count,
            "capacity": self.capacity,
            "available": self.available,
        }


async def load_doctor(doctor_id: int, using_db=None, lock: bool = False) -> Optional[Doctor]:
    query = Doctor.filter(id=doctor_id)
    if lock:
        query = query.select_for_update()
    return await scoped(query, using_db).first()


async def load_active_setting(using_db=None, lock: bool = False) -> Optional[AdminSetting]:
    """Most recent active admin settings row; it defines the virtual pool window."""
    query = AdminSetting.filter(is_active=True).order_by("-created_at", "-id")
    if lock:
        query = query.select_for_update()
    return await scoped(query, using_db).first()


def slot_bounds(instant: datetime) -> Tuple[datetime, datetime]:
    start = clock.floor_to_slot(instant, SLOT_MINUTES)
    return start, clock.to_local(start + timedelta(minutes=SLOT_MINUTES))


async def occupied_times(
    provider: Provider,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
    using_db=None,
) -> List[datetime]:
    """Local start times of every seat-holding appointment in ``[start, end)``."""
    query = Appointment.filter(
        status__in=list(ACTIVE_STATUSES),
        appointment_date_time__gte=clock.to_utc(start),
        appointment_date_time__lt=clock.to_utc(end),
        **provider.occupancy_filter(),
    )
    if exclude_id is not None:
        query = query.exclude(id=exclude_id)
    rows = await scoped(query, using_db)
    return [clock.to_local(row.appointment_date_time) for row in rows]


async def count_in_slot(provider: Provider, instant: datetime, exclude_id: Optional[int] = None, using_db=None) -> int:
    start, end = slot_bounds(instant)
    return len(await occupied_times(provider, start, end, exclude_id=exclude_id, using_db=using_db))


async def available_slots(provider: Provider, day: date, kind: AppointmentType) -> Dict:
    now = clock.local_now()
    if day < now.date():
        raise PastDate()
    start_time, end_time = provider.window()

    result = {
        "date": day.isoformat(),
        "type": kind.value,
        "workingHours": {
            "start": start_time.strftime("%H:%M"),
            "end": end_time.strftime("%H:%M"),
        },
        "weekend": clock.is_weekend(day),
        "slots": [],
    }
    if clock.is_weekend(day) and not provider.weekends_open:
        result["message"] = "No appointments available on weekends"
        return result

    window_start = clock.at_local(day, start_time)
    window_end = clock.at_local(day, end_time)
    booked = await occupied_times(provider, window_start, window_end)

    earliest = now + timedelta(hours=BOOKING_LEAD_HOURS) if day == now.date() else None
    capacity = capacity_for(kind)
    step = timedelta(minutes=SLOT_MINUTES)

    slots = []
    cursor = window_start
    while cursor + step <= window_end:
        slot_end = clock.to_local(cursor + step)
        if earliest is None or cursor >= earliest:
            count = sum(1 for booked_at in booked if cursor <= booked_at < slot_end)
            slots.append(Slot(start=cursor, end=slot_end, booked_count=count, capacity=capacity))
        cursor = slot_end

    logger.debug("computed %d slots for %s provider on %s", len(slots), provider.kind.value, day)
    result["slots"] = [slot.to_dict() for slot in slots]
    return result
