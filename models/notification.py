from tortoise import fields
from tortoise.models import Model
from enum import Enum


class NotificationKind(Enum):
    APPOINTMENT = "appointment"
    SYSTEM = "system"
    OTHER = "other"


class Notification(Model):
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="notifications")
    title = fields.CharField(max_length=255)
    message = fields.TextField()
    kind = fields.CharEnumField(enum_type=NotificationKind, max_length=20, default=NotificationKind.APPOINTMENT)
    event = fields.CharField(max_length=50, null=True)
    related_appointment_id = fields.IntField(null=True)
    data = fields.JSONField(null=True)
    is_read = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "notifications"
