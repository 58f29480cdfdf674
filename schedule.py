import asyncio
import logging
from datetime import timedelta

from helpers.tortoise_config import TORTOISE_CONFIG
from tortoise import Tortoise

from helpers import clock
from helpers.config import LOG_LEVEL, REMINDER_INTERVAL_SECONDS, REMINDER_LOOKAHEAD_HOURS
from helpers.email import EmailGateway
from helpers.events import AppointmentEvent
from helpers.notifications import NotificationOrchestrator
from helpers.push import PushGateway
from models.appointment import Appointment, AppointmentStatus


logger = logging.getLogger(__name__)


async def init_db():
    await Tortoise.init(config=TORTOISE_CONFIG)


async def close_db():
    await Tortoise.close_connections()


async def process_due_reminders(notifier) -> int:
    """Remind patients of confirmed appointments starting within the lookahead window."""
    now = clock.local_now()
    horizon = now + timedelta(hours=REMINDER_LOOKAHEAD_HOURS)
    due = await Appointment.filter(
        status=AppointmentStatus.CONFIRMED,
        reminder_sent_at__isnull=True,
        appointment_date_time__gt=clock.to_utc(now),
        appointment_date_time__lte=clock.to_utc(horizon),
    ).order_by("appointment_date_time")

    sent = 0
    for appointment in due:
        outcomes = await notifier.dispatch(AppointmentEvent.REMINDER, appointment)
        if outcomes and all(outcome.ok for outcome in outcomes):
            appointment.reminder_sent_at = clock.to_utc(clock.local_now())
            await appointment.save(update_fields=["reminder_sent_at"])
            sent += 1
        else:
            logger.warning("reminder for appointment_id=%s not delivered, will retry", appointment.id)

    logger.info("reminder sweep: %d due, %d sent", len(due), sent)
    return sent


async def main_loop():
    await init_db()
    push = PushGateway()
    notifier = NotificationOrchestrator(email_gateway=EmailGateway(), push_gateway=push)
    try:
        while True:
            await process_due_reminders(notifier)
            await asyncio.sleep(REMINDER_INTERVAL_SECONDS)
    finally:
        push.close()
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(main_loop())
