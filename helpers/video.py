import asyncio
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

import pytz
from azure.communication.identity import (
    CommunicationIdentityClient,
    CommunicationTokenScope,
    CommunicationUserIdentifier,
)

from helpers import clock
from helpers.config import OUTBOUND_TIMEOUT_SECONDS, VIDEO_CALL_BASE_PATH
from helpers.errors import InvalidTransition, NotAuthorized, NotFound, VideoProvisioningFailed
from helpers.parties import PartyRole, doctor_user, role_of
from models.appointment import Appointment, AppointmentStatus, AppointmentType
from models.user import User


logger = logging.getLogger(__name__)


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass
class ParticipantCredential:
    comm_user_id: str
    token: str
    expires_at: datetime


def _as_datetime(expires_on) -> datetime:
    if isinstance(expires_on, datetime):
        if expires_on.tzinfo is None:
            return pytz.utc.localize(expires_on)
        return expires_on
    return datetime.fromtimestamp(int(expires_on), tz=pytz.utc)


class VideoIdentityGateway:
    """Azure Communication Services identities with ``voip`` tokens."""

    def __init__(self, connection_string: Optional[str] = None):
        self.connection_string = connection_string or os.getenv("AZURE_COMMUNICATION_CONNECTION_STRING")
        self._client = None

    def _get_client(self) -> CommunicationIdentityClient:
        if self._client is None:
            if not self.connection_string:
                raise ValueError("AZURE_COMMUNICATION_CONNECTION_STRING environment variable is not set")
            self._client = CommunicationIdentityClient.from_connection_string(self.connection_string)
        return self._client

    async def create_user(self) -> str:
        identifier = await asyncio.to_thread(self._get_client().create_user)
        return identifier.properties["id"]

    async def issue_token(self, comm_user_id: str) -> IssuedToken:
        access = await asyncio.to_thread(
            self._get_client().get_token,
            CommunicationUserIdentifier(comm_user_id),
            [CommunicationTokenScope.VOIP],
        )
        return IssuedToken(token=access.token, expires_at=_as_datetime(access.expires_on))

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None


async def _new_participant(gateway) -> ParticipantCredential:
    comm_user_id = await gateway.create_user()
    issued = await gateway.issue_token(comm_user_id)
    return ParticipantCredential(comm_user_id=comm_user_id, token=issued.token, expires_at=issued.expires_at)


async def provision_room(gateway) -> Dict:
    """Room id, share link and a credential for each participant."""
    try:
        patient = await asyncio.wait_for(_new_participant(gateway), OUTBOUND_TIMEOUT_SECONDS)
        doctor = await asyncio.wait_for(_new_participant(gateway), OUTBOUND_TIMEOUT_SECONDS)
    except Exception as e:
        logger.error("video identity provisioning failed: %s", e)
        raise VideoProvisioningFailed()

    room_id = str(uuid.uuid4())
    return {
        "room_id": room_id,
        "video_call_link": f"{VIDEO_CALL_BASE_PATH}/{room_id}",
        "patient_comm_user_id": patient.comm_user_id,
        "patient_token": patient.token,
        "patient_token_expiry": clock.to_utc(patient.expires_at),
        "doctor_comm_user_id": doctor.comm_user_id,
        "doctor_token": doctor.token,
        "doctor_token_expiry": clock.to_utc(doctor.expires_at),
    }


def _is_expired(expiry: Optional[datetime], now: datetime) -> bool:
    return expiry is None or clock.to_local(expiry) <= now


async def issue_join_credentials(appointment_id: int, user: User, gateway) -> Dict:
    appointment = await Appointment.get_or_none(id=appointment_id)
    if appointment is None:
        raise NotFound()

    role = await role_of(appointment, user)
    if role is None:
        raise NotAuthorized("Unauthorized access to video call")
    if appointment.type != AppointmentType.VIRTUAL:
        raise InvalidTransition("This is not a virtual appointment")
    if appointment.status != AppointmentStatus.CONFIRMED:
        raise InvalidTransition("Appointment must be confirmed to access video call")

    prefix = "patient" if role is PartyRole.PATIENT else "doctor"
    comm_user_id = getattr(appointment, f"{prefix}_comm_user_id")
    token = getattr(appointment, f"{prefix}_token")
    expiry = getattr(appointment, f"{prefix}_token_expiry")

    now = clock.local_now()
    if comm_user_id is None or token is None or _is_expired(expiry, now):
        try:
            if comm_user_id is None:
                fresh = await asyncio.wait_for(_new_participant(gateway), OUTBOUND_TIMEOUT_SECONDS)
                comm_user_id = fresh.comm_user_id
                issued = IssuedToken(token=fresh.token, expires_at=fresh.expires_at)
            else:
                issued = await asyncio.wait_for(gateway.issue_token(comm_user_id), OUTBOUND_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error(
                "token renewal failed appointment_id=%s actor_id=%s role=%s: %s",
                appointment.id, user.id, prefix, e,
            )
            raise VideoProvisioningFailed("Failed to renew video call credentials. Please try again.")

        token = issued.token
        setattr(appointment, f"{prefix}_comm_user_id", comm_user_id)
        setattr(appointment, f"{prefix}_token", token)
        setattr(appointment, f"{prefix}_token_expiry", clock.to_utc(issued.expires_at))
        await appointment.save(
            update_fields=[f"{prefix}_comm_user_id", f"{prefix}_token", f"{prefix}_token_expiry"]
        )
        logger.info("renewed %s video token for appointment_id=%s", prefix, appointment.id)

    if role is PartyRole.PATIENT:
        patient = await User.get(id=appointment.patient_id)
        participant_name = patient.name
    else:
        other = await doctor_user(appointment)
        participant_name = other.name if other else user.name

    return {
        "roomId": appointment.room_id,
        "commUserId": comm_user_id,
        "token": token,
        "role": role.value,
        "appointmentId": appointment.id,
        "participantName": participant_name,
    }
