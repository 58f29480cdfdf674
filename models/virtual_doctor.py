from tortoise import fields
from tortoise.models import Model


class VirtualDoctor(Model):
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="virtual_doctor_profiles")
    email = fields.CharField(max_length=255, null=True)
    is_approved = fields.BooleanField(default=False)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "virtual_doctors"
