from dotenv import load_dotenv
load_dotenv()
import os
import pytz


CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "Asia/Kolkata")
LOCAL_TZ = pytz.timezone(CLINIC_TIMEZONE)

SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))
BOOKING_LEAD_HOURS = int(os.getenv("BOOKING_LEAD_HOURS", "1"))
RESCHEDULE_NOTICE_HOURS = int(os.getenv("RESCHEDULE_NOTICE_HOURS", "24"))
PHYSICAL_SLOT_CAPACITY = int(os.getenv("PHYSICAL_SLOT_CAPACITY", "1"))
VIRTUAL_SLOT_CAPACITY = int(os.getenv("VIRTUAL_SLOT_CAPACITY", "3"))

# applies to push, email and video identity calls
OUTBOUND_TIMEOUT_SECONDS = float(os.getenv("OUTBOUND_TIMEOUT_SECONDS", "15"))

VIRTUAL_PRICE_SERVICE_NAME = os.getenv("VIRTUAL_PRICE_SERVICE_NAME", "Virtual Appointment")
VIDEO_CALL_BASE_PATH = os.getenv("VIDEO_CALL_BASE_PATH", "/video-call")

REMINDER_LOOKAHEAD_HOURS = int(os.getenv("REMINDER_LOOKAHEAD_HOURS", "24"))
REMINDER_INTERVAL_SECONDS = int(os.getenv("REMINDER_INTERVAL_SECONDS", "3600"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
