from datetime import date

import pytest

from helpers import queries
from helpers.errors import NotAuthorized, NotFound
from models.appointment import AppointmentStatus, AppointmentType
from models.user import UserRole


NOW = "2024-12-25T10:00:00+05:30"


@pytest.mark.asyncio
async def test_patient_list_is_newest_first_and_paged(seed, set_now):
    set_now(NOW)
    doctor = await seed.doctor()
    patient = await seed.user()
    for day in (26, 27, 30):
        await seed.appointment(patient, f"2024-12-{day}T10:00:00", doctor=doctor)

    first = await queries.list_for_patient(patient.id, patient, queries.ListFilters(page=1, limit=2))
    second = await queries.list_for_patient(patient.id, patient, queries.ListFilters(page=2, limit=2))

    assert [a["appointmentDateTime"][:10] for a in first["appointments"]] == ["2024-12-30", "2024-12-27"]
    assert [a["appointmentDateTime"][:10] for a in second["appointments"]] == ["2024-12-26"]
    assert first["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}


@pytest.mark.asyncio
async def test_list_filters_by_status_and_local_dates(seed, set_now):
    set_now(NOW)
    doctor = await seed.doctor()
    patient = await seed.user()
    await seed.appointment(patient, "2024-12-26T00:15:00", doctor=doctor)
    await seed.appointment(patient, "2024-12-27T23:45:00", doctor=doctor, status=AppointmentStatus.CANCELED)
    await seed.appointment(patient, "2024-12-28T10:00:00", doctor=doctor)

    by_dates = await queries.list_for_patient(
        patient.id, patient, queries.ListFilters(from_date=date(2024, 12, 26), to_date=date(2024, 12, 27))
    )
    by_status = await queries.list_for_patient(
        patient.id, patient, queries.ListFilters(status=AppointmentStatus.CANCELED)
    )

    assert by_dates["pagination"]["total"] == 2
    assert [a["status"] for a in by_status["appointments"]] == ["canceled"]


@pytest.mark.asyncio
async def test_patient_list_authorization(seed, set_now):
    set_now(NOW)
    patient = await seed.user()
    other = await seed.user("Other Patient")
    admin = await seed.user("Admin One", role=UserRole.ADMIN)

    with pytest.raises(NotAuthorized):
        await queries.list_for_patient(patient.id, other, queries.ListFilters())
    with pytest.raises(NotFound):
        await queries.list_for_patient(9999, admin, queries.ListFilters())
    result = await queries.list_for_patient(patient.id, admin, queries.ListFilters())
    assert result["appointments"] == []


@pytest.mark.asyncio
async def test_doctor_list_authorization(seed, set_now):
    set_now(NOW)
    doctor = await seed.doctor()
    await doctor.fetch_related("user")
    other = await seed.doctor("Nita Shah")
    await other.fetch_related("user")
    patient = await seed.user()
    await seed.appointment(patient, "2024-12-26T10:00:00", doctor=doctor)

    result = await queries.list_for_doctor(doctor.id, doctor.user, queries.ListFilters())
    assert result["pagination"]["total"] == 1
    assert result["appointments"][0]["doctor"]["user"]["name"] == "Ravi Kumar"
    assert result["appointments"][0]["patient"]["name"] == "Asha Patient"

    with pytest.raises(NotAuthorized):
        await queries.list_for_doctor(doctor.id, other.user, queries.ListFilters())
    with pytest.raises(NotFound):
        await queries.list_for_doctor(9999, doctor.user, queries.ListFilters())


@pytest.mark.asyncio
async def test_virtual_list_shows_the_pool(seed, set_now):
    set_now(NOW)
    doctor = await seed.doctor()
    mine = await seed.virtual_doctor()
    await mine.fetch_related("user")
    theirs = await seed.virtual_doctor("Kiran Virtual")
    patient = await seed.user()
    await seed.appointment(patient, "2024-12-26T10:00:00", type=AppointmentType.VIRTUAL, virtual_doctor=mine)
    await seed.appointment(patient, "2024-12-27T10:00:00", type=AppointmentType.VIRTUAL, virtual_doctor=theirs)
    await seed.appointment(patient, "2024-12-28T10:00:00", type=AppointmentType.VIRTUAL)
    await seed.appointment(patient, "2024-12-30T10:00:00", type=AppointmentType.VIRTUAL, doctor=doctor)

    everything = await queries.list_for_virtual(mine.user, queries.ListFilters())
    assigned = await queries.list_for_virtual(mine.user, queries.ListFilters(), assigned_only=True)

    assert everything["pagination"]["total"] == 3
    assert [a["virtualDoctorId"] for a in assigned["appointments"]] == [mine.id]

    with pytest.raises(NotAuthorized):
        await queries.list_for_virtual(patient, queries.ListFilters())


@pytest.mark.asyncio
async def test_single_appointment_is_party_only_and_hides_tokens(seed, set_now):
    set_now(NOW)
    doctor = await seed.doctor()
    patient = await seed.user()
    stranger = await seed.user("Someone Else")
    admin = await seed.user("Admin One", role=UserRole.ADMIN)
    appointment = await seed.appointment(
        patient, "2024-12-26T10:00:00", doctor=doctor, type=AppointmentType.VIRTUAL,
        room_id="room-1", patient_comm_user_id="8:acs:patient", patient_token="secret",
    )

    body = await queries.get_by_id(appointment.id, patient)
    assert body["roomId"] == "room-1"
    assert body["appointmentDateTime"] == "2024-12-26T10:00:00+05:30"
    assert "secret" not in str(body)
    assert "8:acs:patient" not in str(body)

    assert (await queries.get_by_id(appointment.id, admin))["id"] == appointment.id
    with pytest.raises(NotAuthorized):
        await queries.get_by_id(appointment.id, stranger)
    with pytest.raises(NotFound):
        await queries.get_by_id(9999, patient)


@pytest.mark.asyncio
async def test_stats_periods_are_local_and_half_open(seed, set_now):
    set_now(NOW)
    doctor = await seed.doctor()
    patient = await seed.user()
    await seed.appointment(patient, "2024-12-25T15:00:00", doctor=doctor)
    await seed.appointment(patient, "2024-12-23T00:00:00", doctor=doctor, status=AppointmentStatus.PENDING)
    await seed.appointment(patient, "2024-12-29T23:30:00", doctor=doctor, status=AppointmentStatus.RESCHEDULE_REQUESTED)
    await seed.appointment(patient, "2024-12-30T00:00:00", doctor=doctor)
    await seed.appointment(patient, "2024-12-02T10:00:00", doctor=doctor, status=AppointmentStatus.COMPLETED)
    await seed.appointment(patient, "2025-01-01T00:00:00", doctor=doctor, status=AppointmentStatus.CANCELED)

    result = await queries.stats("patient", None, patient)

    assert result == {
        "total": 6,
        "pending": 1,
        "confirmed": 2,
        "completed": 1,
        "canceled": 1,
        "rejected": 0,
        "rescheduleRequests": 1,
        "today": 1,
        "thisWeek": 3,
        "thisMonth": 5,
    }


@pytest.mark.asyncio
async def test_doctor_and_virtual_stats_scopes(seed, set_now):
    set_now(NOW)
    doctor = await seed.doctor()
    await doctor.fetch_related("user")
    virtual_doctor = await seed.virtual_doctor()
    await virtual_doctor.fetch_related("user")
    patient = await seed.user()
    await seed.appointment(patient, "2024-12-25T15:00:00", doctor=doctor)
    await seed.appointment(patient, "2024-12-26T15:00:00", type=AppointmentType.VIRTUAL)

    assert (await queries.stats("doctor", None, doctor.user))["total"] == 1
    assert (await queries.stats("virtual", None, virtual_doctor.user))["total"] == 1
    with pytest.raises(NotAuthorized):
        await queries.stats("patient", doctor.user_id, patient)
    with pytest.raises(NotAuthorized):
        await queries.stats("virtual", None, patient)
