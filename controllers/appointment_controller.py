from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from helpers import clock, lifecycle, queries, slots, video
from helpers.errors import InvalidDateTime, NotAuthorized, NotFound
from helpers.events import AppointmentEvent
from helpers.jwt_token import get_current_user
from helpers.serializers import appointment_detail
from models.appointment import AppointmentPriority, AppointmentSource, AppointmentStatus, AppointmentType
from models.user import User, UserRole


appointment_router = APIRouter(prefix="/appointments")


class BookAppointmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_id: Optional[int] = Field(default=None, alias="patientId")
    doctor_id: Optional[int] = Field(default=None, alias="doctorId")
    virtual_doctor_id: Optional[int] = Field(default=None, alias="virtualDoctorId")
    appointment_date_time: Optional[str] = Field(default=None, alias="appointmentDateTime")
    type: AppointmentType = AppointmentType.PHYSICAL
    notes: Optional[str] = None
    priority: AppointmentPriority = AppointmentPriority.MEDIUM
    source: AppointmentSource = AppointmentSource.WEB


class TransitionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rejection_reason: Optional[str] = Field(default=None, alias="rejectionReason")
    new_date_time: Optional[str] = Field(default=None, alias="newDateTime")
    reschedule_reason: Optional[str] = Field(default=None, alias="rescheduleReason")
    cancel_reason: Optional[str] = Field(default=None, alias="cancelReason")
    consultation_notes: Optional[str] = Field(default=None, alias="consultationNotes")
    prescription: Optional[str] = None


TRANSITION_MESSAGES = {
    AppointmentEvent.CONFIRM: "Appointment confirmed successfully",
    AppointmentEvent.REJECT: "Appointment rejected successfully",
    AppointmentEvent.REQUEST_RESCHEDULE: "Reschedule request submitted successfully. Waiting for doctor approval.",
    AppointmentEvent.APPROVE_RESCHEDULE: "Reschedule request approved successfully",
    AppointmentEvent.REJECT_RESCHEDULE: "Reschedule request rejected. Original appointment time maintained.",
    AppointmentEvent.CANCEL: "Appointment canceled successfully",
    AppointmentEvent.COMPLETE: "Appointment completed successfully",
}


def success(data=None, message: Optional[str] = None, code: int = 200) -> dict:
    body = {"status": "success", "code": code}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def get_notifier(request: Request):
    return request.app.state.notifier


def get_video_gateway(request: Request):
    return request.app.state.video_gateway


def list_filters(
    status: Optional[AppointmentStatus] = None,
    from_date: Annotated[Optional[str], Query(alias="fromDate")] = None,
    to_date: Annotated[Optional[str], Query(alias="toDate")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> queries.ListFilters:
    return queries.ListFilters(
        status=status,
        from_date=clock.parse_date(from_date) if from_date else None,
        to_date=clock.parse_date(to_date) if to_date else None,
        page=page,
        limit=limit,
    )


@appointment_router.post("", status_code=201)
async def book_appointment(
    body: BookAppointmentRequest,
    user: Annotated[User, Depends(get_current_user)],
    notifier=Depends(get_notifier),
    video_gateway=Depends(get_video_gateway),
):
    patient_id = body.patient_id or user.id
    if user.role != UserRole.ADMIN and patient_id != user.id:
        raise NotAuthorized("You can only book appointments for yourself")

    appointment = await lifecycle.book(
        lifecycle.BookingInput(
            patient_id=patient_id,
            appointment_date_time=body.appointment_date_time,
            type=body.type,
            doctor_id=body.doctor_id,
            virtual_doctor_id=body.virtual_doctor_id,
            notes=body.notes,
            priority=body.priority,
            source=body.source,
        ),
        notifier=notifier,
        video_gateway=video_gateway,
    )
    return success(
        await appointment_detail(appointment),
        "Appointment request submitted successfully. You will be notified once the doctor confirms.",
        code=201,
    )


@appointment_router.get("/virtual/available-slots")
async def virtual_available_slots(date: Optional[str] = None):
    if not date:
        raise InvalidDateTime("Date parameter is required")
    provider = slots.Provider(kind=slots.ProviderKind.VIRTUAL_POOL, setting=await slots.load_active_setting())
    return success(await slots.available_slots(provider, clock.parse_date(date), AppointmentType.VIRTUAL))


@appointment_router.get("/doctors/{doctor_id}/available-slots")
async def doctor_available_slots(
    doctor_id: int,
    date: Optional[str] = None,
    type: AppointmentType = AppointmentType.PHYSICAL,
):
    if not date:
        raise InvalidDateTime("Date parameter is required")
    doctor = await slots.load_doctor(doctor_id)
    if doctor is None:
        raise NotFound("Doctor not found")
    provider = slots.Provider(kind=slots.ProviderKind.DOCTOR, doctor=doctor)
    return success(await slots.available_slots(provider, clock.parse_date(date), type))


@appointment_router.get("/stats/dashboard")
async def dashboard_stats(
    user: Annotated[User, Depends(get_current_user)],
    user_type: Annotated[Literal["patient", "doctor", "virtual"], Query(alias="userType")] = "patient",
    user_id: Annotated[Optional[int], Query(alias="userId")] = None,
):
    return success(await queries.stats(user_type, user_id, user))


@appointment_router.get("/virtual")
async def virtual_appointments(
    user: Annotated[User, Depends(get_current_user)],
    filters: Annotated[queries.ListFilters, Depends(list_filters)],
    assigned_only: Annotated[bool, Query(alias="assignedOnly")] = False,
):
    return success(await queries.list_for_virtual(user, filters, assigned_only=assigned_only))


@appointment_router.get("/user/{user_id}")
async def patient_appointments(
    user_id: int,
    user: Annotated[User, Depends(get_current_user)],
    filters: Annotated[queries.ListFilters, Depends(list_filters)],
):
    return success(await queries.list_for_patient(user_id, user, filters))


@appointment_router.get("/doctor/{doctor_id}")
async def doctor_appointments(
    doctor_id: int,
    user: Annotated[User, Depends(get_current_user)],
    filters: Annotated[queries.ListFilters, Depends(list_filters)],
):
    return success(await queries.list_for_doctor(doctor_id, user, filters))


@appointment_router.get("/{appointment_id}/video-credentials")
async def video_credentials(
    appointment_id: int,
    user: Annotated[User, Depends(get_current_user)],
    video_gateway=Depends(get_video_gateway),
):
    return success(await video.issue_join_credentials(appointment_id, user, video_gateway))


@appointment_router.get("/{appointment_id}")
async def get_appointment(appointment_id: int, user: Annotated[User, Depends(get_current_user)]):
    return success(await queries.get_by_id(appointment_id, user))


@appointment_router.patch("/{appointment_id}/{action}")
async def transition_appointment(
    appointment_id: int,
    action: Literal[
        "confirm", "reject", "reschedule", "approve-reschedule", "reject-reschedule", "cancel", "complete"
    ],
    user: Annotated[User, Depends(get_current_user)],
    body: Optional[TransitionRequest] = None,
    notifier=Depends(get_notifier),
):
    event = AppointmentEvent(action)
    body = body or TransitionRequest()
    appointment = await lifecycle.apply(
        appointment_id,
        event,
        user,
        lifecycle.TransitionInput(
            rejection_reason=body.rejection_reason,
            new_date_time=body.new_date_time,
            reschedule_reason=body.reschedule_reason,
            cancel_reason=body.cancel_reason,
            consultation_notes=body.consultation_notes,
            prescription=body.prescription,
        ),
        notifier=notifier,
    )
    return success(await appointment_detail(appointment), TRANSITION_MESSAGES[event])
