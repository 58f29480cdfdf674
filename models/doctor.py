from tortoise import fields
from tortoise.models import Model
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.appointment import Appointment


class Doctor(Model):
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="doctor_profiles")
    email = fields.CharField(max_length=255, null=True)
    specialty = fields.CharField(max_length=255, null=True)
    is_approved = fields.BooleanField(default=False)
    start_time = fields.CharField(max_length=8, null=True, description="HH:MM local wall-clock")
    end_time = fields.CharField(max_length=8, null=True, description="HH:MM local wall-clock")
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    appointments: fields.ReverseRelation["Appointment"]

    class Meta:
        table = "doctors"
