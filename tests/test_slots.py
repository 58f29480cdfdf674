from datetime import date

import pytest

from helpers import slots
from helpers.errors import PastDate, WorkingHoursNotConfigured
from models.appointment import AppointmentStatus, AppointmentType


def doctor_provider(doctor):
    return slots.Provider(kind=slots.ProviderKind.DOCTOR, doctor=doctor)


@pytest.mark.asyncio
async def test_full_day_grid_for_a_free_doctor(seed, set_now):
    set_now("2024-12-23T09:00:00+05:30")
    doctor = await seed.doctor()

    result = await slots.available_slots(doctor_provider(doctor), date(2024, 12, 25), AppointmentType.PHYSICAL)

    assert result["weekend"] is False
    assert len(result["slots"]) == 18
    first, last = result["slots"][0], result["slots"][-1]
    assert first["time"] == "09:00 AM"
    assert first["startTime"] == "2024-12-25T09:00:00+05:30"
    assert last["endTime"] == "2024-12-25T18:00:00+05:30"
    assert all(slot["available"] and slot["capacity"] == 1 for slot in result["slots"])


@pytest.mark.asyncio
async def test_booked_count_uses_half_open_slots(seed, set_now):
    set_now("2024-12-23T09:00:00+05:30")
    doctor = await seed.doctor()
    patient = await seed.user()
    await seed.appointment(patient, "2024-12-25T10:45:00", doctor=doctor)
    await seed.appointment(patient, "2024-12-25T11:00:00", doctor=doctor, status=AppointmentStatus.PENDING)

    result = await slots.available_slots(doctor_provider(doctor), date(2024, 12, 25), AppointmentType.PHYSICAL)
    by_time = {slot["time"]: slot for slot in result["slots"]}

    assert by_time["10:30 AM"]["bookedCount"] == 1
    assert by_time["10:30 AM"]["available"] is False
    assert by_time["11:00 AM"]["bookedCount"] == 1
    assert by_time["10:00 AM"]["bookedCount"] == 0


@pytest.mark.asyncio
async def test_terminal_appointments_free_their_seat(seed, set_now):
    set_now("2024-12-23T09:00:00+05:30")
    doctor = await seed.doctor()
    patient = await seed.user()
    for status in (AppointmentStatus.CANCELED, AppointmentStatus.REJECTED, AppointmentStatus.COMPLETED):
        await seed.appointment(patient, "2024-12-25T10:30:00", doctor=doctor, status=status)

    result = await slots.available_slots(doctor_provider(doctor), date(2024, 12, 25), AppointmentType.PHYSICAL)
    by_time = {slot["time"]: slot for slot in result["slots"]}

    assert by_time["10:30 AM"]["bookedCount"] == 0
    assert by_time["10:30 AM"]["available"] is True


@pytest.mark.asyncio
async def test_virtual_kind_has_three_seats(seed, set_now):
    set_now("2024-12-23T09:00:00+05:30")
    doctor = await seed.doctor()
    for n in range(2):
        patient = await seed.user(f"Patient {n}")
        await seed.appointment(patient, "2024-12-25T14:10:00", doctor=doctor, type=AppointmentType.VIRTUAL)

    result = await slots.available_slots(doctor_provider(doctor), date(2024, 12, 25), AppointmentType.VIRTUAL)
    slot = next(s for s in result["slots"] if s["time"] == "02:00 PM")

    assert slot["capacity"] == 3
    assert slot["bookedCount"] == 2
    assert slot["available"] is True


@pytest.mark.asyncio
async def test_doctor_weekend_is_empty_with_flag(seed, set_now):
    set_now("2024-12-20T09:00:00+05:30")
    doctor = await seed.doctor()

    result = await slots.available_slots(doctor_provider(doctor), date(2024, 12, 21), AppointmentType.PHYSICAL)

    assert result["slots"] == []
    assert result["weekend"] is True
    assert "weekend" in result["message"]


@pytest.mark.asyncio
async def test_virtual_pool_is_open_on_weekends(seed, set_now):
    set_now("2024-12-20T09:00:00+05:30")
    setting = await seed.pool(start="10:00:00", end="12:00:00")
    provider = slots.Provider(kind=slots.ProviderKind.VIRTUAL_POOL, setting=setting)

    result = await slots.available_slots(provider, date(2024, 12, 21), AppointmentType.VIRTUAL)

    assert [slot["time"] for slot in result["slots"]] == ["10:00 AM", "10:30 AM", "11:00 AM", "11:30 AM"]


@pytest.mark.asyncio
async def test_pool_occupancy_ignores_doctor_bound_virtual(seed, set_now):
    set_now("2024-12-20T09:00:00+05:30")
    setting = await seed.pool()
    doctor = await seed.doctor()
    patient = await seed.user()
    await seed.appointment(patient, "2024-12-23T10:00:00", doctor=doctor, type=AppointmentType.VIRTUAL)
    await seed.appointment(patient, "2024-12-23T10:10:00", type=AppointmentType.VIRTUAL)
    provider = slots.Provider(kind=slots.ProviderKind.VIRTUAL_POOL, setting=setting)

    result = await slots.available_slots(provider, date(2024, 12, 23), AppointmentType.VIRTUAL)
    slot = next(s for s in result["slots"] if s["time"] == "10:00 AM")

    assert slot["bookedCount"] == 1


@pytest.mark.asyncio
async def test_today_hides_slots_inside_the_lead_time(seed, set_now):
    set_now("2024-12-23T11:10:00+05:30")
    doctor = await seed.doctor()

    result = await slots.available_slots(doctor_provider(doctor), date(2024, 12, 23), AppointmentType.PHYSICAL)

    assert result["slots"][0]["time"] == "12:30 PM"
    assert all(slot["startTime"] >= "2024-12-23T12:10:00+05:30" for slot in result["slots"])


@pytest.mark.asyncio
async def test_past_dates_are_refused(seed, set_now):
    set_now("2024-12-23T09:00:00+05:30")
    doctor = await seed.doctor()

    with pytest.raises(PastDate):
        await slots.available_slots(doctor_provider(doctor), date(2024, 12, 22), AppointmentType.PHYSICAL)


@pytest.mark.asyncio
async def test_past_date_is_reported_before_missing_hours(seed, set_now):
    set_now("2024-12-23T09:00:00+05:30")
    doctor = await seed.doctor(start=None, end=None)

    with pytest.raises(PastDate):
        await slots.available_slots(doctor_provider(doctor), date(2024, 12, 20), AppointmentType.PHYSICAL)


@pytest.mark.asyncio
@pytest.mark.parametrize("start,end", [(None, "18:00"), ("09:00", None), ("18:00", "09:00"), ("09:00", "09:00")])
async def test_missing_or_inverted_hours(seed, set_now, start, end):
    set_now("2024-12-23T09:00:00+05:30")
    doctor = await seed.doctor(start=start, end=end)

    with pytest.raises(WorkingHoursNotConfigured):
        await slots.available_slots(doctor_provider(doctor), date(2024, 12, 25), AppointmentType.PHYSICAL)


@pytest.mark.asyncio
async def test_pool_without_settings_is_not_configured(db, set_now):
    set_now("2024-12-23T09:00:00+05:30")
    provider = slots.Provider(kind=slots.ProviderKind.VIRTUAL_POOL, setting=await slots.load_active_setting())

    with pytest.raises(WorkingHoursNotConfigured):
        await slots.available_slots(provider, date(2024, 12, 25), AppointmentType.VIRTUAL)


def test_slot_bounds_enclose_the_instant():
    from helpers import clock

    start, end = slots.slot_bounds(clock.parse_datetime("2024-12-25T14:59:59"))
    assert start == clock.parse_datetime("2024-12-25T14:30:00")
    assert end == clock.parse_datetime("2024-12-25T15:00:00")
