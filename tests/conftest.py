import os

os.environ.setdefault("DATABASE_URI", "sqlite://:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["CLINIC_TIMEZONE"] = "Asia/Kolkata"

from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio
import pytz
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from helpers import clock
from helpers.jwt_token import generate_user_token
from helpers.notifications import NotificationOrchestrator
from helpers.push import InvalidDeviceToken
from helpers.tortoise_config import MODELS
from helpers.video import IssuedToken
from models.admin_setting import AdminSetting
from models.appointment import Appointment, AppointmentStatus, AppointmentType
from models.doctor import Doctor
from models.price import Price
from models.user import User, UserRole
from models.virtual_doctor import VirtualDoctor


FAR_FUTURE = pytz.utc.localize(datetime(2030, 1, 1))


class FakeEmail:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to_address, template, variables):
        if self.fail:
            raise RuntimeError("smtp unavailable")
        self.sent.append((to_address, template, dict(variables)))
        return True

    def templates_for(self, address):
        return [template for to, template, _ in self.sent if to == address]


class FakePush:
    def __init__(self):
        self.sent = []
        self.invalid_tokens = set()

    async def send(self, device_token, title, body, data=None):
        if device_token in self.invalid_tokens:
            raise InvalidDeviceToken("Requested entity was not found.")
        self.sent.append((device_token, title, body, data))
        return "projects/test/messages/1"


class FakeVideo:
    def __init__(self):
        self.created = 0
        self.issued = []
        self.fail = False
        self.expires_at = FAR_FUTURE

    async def create_user(self):
        if self.fail:
            raise RuntimeError("identity service unavailable")
        self.created += 1
        return f"8:acs:user-{self.created}"

    async def issue_token(self, comm_user_id):
        if self.fail:
            raise RuntimeError("identity service unavailable")
        self.issued.append(comm_user_id)
        return IssuedToken(token=f"token-{comm_user_id}-{len(self.issued)}", expires_at=self.expires_at)

    def close(self):
        pass


class Seed:
    """Row factories for the tests."""

    async def user(self, name="Asha Patient", role=UserRole.PATIENT, **kwargs):
        email = kwargs.pop("email", f"{name.lower().replace(' ', '.')}@example.com")
        return await User.create(name=name, role=role, email=email, **kwargs)

    async def doctor(self, name="Ravi Kumar", start="09:00", end="18:00", approved=True, **kwargs):
        user = await self.user(name, role=UserRole.DOCTOR, fcm_token=kwargs.pop("fcm_token", None))
        return await Doctor.create(
            user=user,
            email=kwargs.pop("email", user.email),
            is_approved=approved,
            start_time=start,
            end_time=end,
            **kwargs,
        )

    async def virtual_doctor(self, name="Meera Virtual", approved=True):
        user = await self.user(name, role=UserRole.VIRTUAL_DOCTOR)
        return await VirtualDoctor.create(user=user, email=user.email, is_approved=approved, is_active=True)

    async def pool(self, start="09:00:00", end="18:00:00", price="499.00"):
        setting = await AdminSetting.create(
            virtual_appointment_start_time=start,
            virtual_appointment_end_time=end,
            is_active=True,
        )
        if price is not None:
            await Price.create(service_name="Virtual Appointment", price=Decimal(price), is_active=True)
        return setting

    async def appointment(
        self,
        patient,
        at,
        doctor=None,
        status=AppointmentStatus.CONFIRMED,
        type=AppointmentType.PHYSICAL,
        **kwargs,
    ):
        return await Appointment.create(
            patient=patient,
            doctor=doctor,
            type=type,
            status=status,
            appointment_date_time=clock.to_utc(clock.parse_datetime(at)),
            booking_date=clock.to_utc(clock.local_now()),
            **kwargs,
        )


@pytest_asyncio.fixture
async def db():
    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={"models": MODELS},
        use_tz=True,
        timezone="UTC",
    )
    await Tortoise.generate_schemas()
    yield
    await Tortoise.close_connections()


@pytest.fixture
def seed(db):
    return Seed()


@pytest.fixture
def set_now(monkeypatch):
    def _set(value: str):
        instant = clock.parse_datetime(value)
        monkeypatch.setattr(clock, "local_now", lambda: instant)
        return instant
    return _set


@pytest.fixture
def email():
    return FakeEmail()


@pytest.fixture
def push():
    return FakePush()


@pytest.fixture
def video():
    return FakeVideo()


@pytest.fixture
def notifier(email, push):
    return NotificationOrchestrator(email_gateway=email, push_gateway=push)


@pytest_asyncio.fixture
async def client(db, notifier, video):
    from main import app

    app.state.notifier = notifier
    app.state.video_gateway = video
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


def auth(user) -> dict:
    return {"Authorization": f"Bearer {generate_user_token({'id': user.id})}"}


@pytest.fixture
def headers():
    return auth
