from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "users" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "name" VARCHAR(255) NOT NULL,
    "role" VARCHAR(20) NOT NULL DEFAULT 'patient',
    "email" VARCHAR(255),
    "phone" VARCHAR(20),
    "fcm_token" VARCHAR(500),
    "notification_enabled" BOOL NOT NULL DEFAULT True,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);
COMMENT ON COLUMN "users"."role" IS 'PATIENT: patient\nDOCTOR: doctor\nVIRTUAL_DOCTOR: virtual-doctor\nADMIN: admin';
CREATE TABLE IF NOT EXISTS "doctors" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "email" VARCHAR(255),
    "specialty" VARCHAR(255),
    "is_approved" BOOL NOT NULL DEFAULT False,
    "start_time" VARCHAR(8),
    "end_time" VARCHAR(8),
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "user_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE
);
COMMENT ON COLUMN "doctors"."start_time" IS 'HH:MM local wall-clock';
COMMENT ON COLUMN "doctors"."end_time" IS 'HH:MM local wall-clock';
CREATE TABLE IF NOT EXISTS "virtual_doctors" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "email" VARCHAR(255),
    "is_approved" BOOL NOT NULL DEFAULT False,
    "is_active" BOOL NOT NULL DEFAULT True,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "user_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS "admin_settings" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "virtual_appointment_start_time" VARCHAR(8) NOT NULL DEFAULT '09:00:00',
    "virtual_appointment_end_time" VARCHAR(8) NOT NULL DEFAULT '18:00:00',
    "is_active" BOOL NOT NULL DEFAULT True,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "user_id" INT REFERENCES "users" ("id") ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS "prices" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "service_name" VARCHAR(255) NOT NULL,
    "price" DECIMAL(10,2),
    "is_active" BOOL NOT NULL DEFAULT True,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS "appointments" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "type" VARCHAR(10) NOT NULL DEFAULT 'physical',
    "status" VARCHAR(25) NOT NULL DEFAULT 'pending',
    "priority" VARCHAR(10) NOT NULL DEFAULT 'medium',
    "source" VARCHAR(10) NOT NULL DEFAULT 'web',
    "appointment_date_time" TIMESTAMPTZ NOT NULL,
    "booking_date" TIMESTAMPTZ NOT NULL,
    "notes" TEXT,
    "confirmed_at" TIMESTAMPTZ,
    "rejected_at" TIMESTAMPTZ,
    "reschedule_requested_at" TIMESTAMPTZ,
    "reschedule_approved_at" TIMESTAMPTZ,
    "reschedule_rejected_at" TIMESTAMPTZ,
    "canceled_at" TIMESTAMPTZ,
    "completed_at" TIMESTAMPTZ,
    "original_date_time" TIMESTAMPTZ,
    "requested_date_time" TIMESTAMPTZ,
    "reschedule_reason" TEXT,
    "reschedule_rejection_reason" TEXT,
    "rejection_reason" TEXT,
    "cancel_reason" TEXT,
    "canceled_by" VARCHAR(10),
    "consultation_notes" TEXT,
    "prescription" TEXT,
    "room_id" VARCHAR(64) UNIQUE,
    "video_call_link" VARCHAR(255),
    "patient_comm_user_id" VARCHAR(255),
    "patient_token" TEXT,
    "patient_token_expiry" TIMESTAMPTZ,
    "doctor_comm_user_id" VARCHAR(255),
    "doctor_token" TEXT,
    "doctor_token_expiry" TIMESTAMPTZ,
    "payment_required" BOOL NOT NULL DEFAULT False,
    "payment_status" VARCHAR(10),
    "payment_amount" DECIMAL(10,2),
    "reminder_sent_at" TIMESTAMPTZ,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "patient_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE,
    "doctor_id" INT REFERENCES "doctors" ("id") ON DELETE CASCADE,
    "virtual_doctor_id" INT REFERENCES "virtual_doctors" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_appointment_doctor__e0c3f4" ON "appointments" ("doctor_id", "appointment_date_time");
CREATE INDEX IF NOT EXISTS "idx_appointment_patient_9b1d2a" ON "appointments" ("patient_id", "appointment_date_time");
CREATE INDEX IF NOT EXISTS "idx_appointment_status_5a7e61" ON "appointments" ("status");
COMMENT ON COLUMN "appointments"."type" IS 'PHYSICAL: physical\nVIRTUAL: virtual';
COMMENT ON COLUMN "appointments"."status" IS 'PENDING: pending\nCONFIRMED: confirmed\nRESCHEDULE_REQUESTED: reschedule_requested\nREJECTED: rejected\nCANCELED: canceled\nCOMPLETED: completed';
COMMENT ON COLUMN "appointments"."original_date_time" IS 'Time held before the reschedule request';
COMMENT ON COLUMN "appointments"."requested_date_time" IS 'Time proposed by the reschedule request';
CREATE TABLE IF NOT EXISTS "notifications" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "title" VARCHAR(255) NOT NULL,
    "message" TEXT NOT NULL,
    "kind" VARCHAR(20) NOT NULL DEFAULT 'appointment',
    "event" VARCHAR(50),
    "related_appointment_id" INT,
    "data" JSONB,
    "is_read" BOOL NOT NULL DEFAULT False,
    "created_at" TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "user_id" INT NOT NULL REFERENCES "users" ("id") ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS "aerich" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSONB NOT NULL
);"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        """
