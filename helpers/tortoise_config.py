from dotenv import load_dotenv
load_dotenv()
from tortoise import Tortoise
from contextlib import asynccontextmanager
import logging
import os

from helpers.email import EmailGateway
from helpers.notifications import NotificationOrchestrator
from helpers.push import PushGateway
from helpers.video import VideoIdentityGateway


logger = logging.getLogger(__name__)

db_url = os.getenv("DATABASE_URI")
if not db_url:
    raise ValueError("DATABASE_URI environment variable is not set.")


MODELS = [
    "models.user",
    "models.doctor",
    "models.virtual_doctor",
    "models.admin_setting",
    "models.price",
    "models.appointment",
    "models.notification",
]


TORTOISE_CONFIG = {
    'connections': {
        'default': db_url
    },
    "apps": {
        "models": {
            "models": MODELS + ["aerich.models"],
            "default_connection": "default",
        }
    },
    "use_tz": True,
    "timezone": "UTC",
}


@asynccontextmanager
async def lifespan(app):
    await Tortoise.init(config=TORTOISE_CONFIG)
    push = PushGateway()
    app.state.video_gateway = VideoIdentityGateway()
    app.state.notifier = NotificationOrchestrator(email_gateway=EmailGateway(), push_gateway=push)
    logger.info("database and outbound gateways ready")
    try:
        yield
    finally:
        app.state.video_gateway.close()
        push.close()
        await Tortoise.close_connections()
