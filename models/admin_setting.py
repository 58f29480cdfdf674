from tortoise import fields
from tortoise.models import Model


class AdminSetting(Model):
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="admin_settings", null=True)
    virtual_appointment_start_time = fields.CharField(max_length=8, default="09:00:00")
    virtual_appointment_end_time = fields.CharField(max_length=8, default="18:00:00")
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "admin_settings"
