from tortoise import fields
from tortoise.models import Model
from enum import Enum


class UserRole(Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    VIRTUAL_DOCTOR = "virtual-doctor"
    ADMIN = "admin"


class User(Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    role = fields.CharEnumField(enum_type=UserRole, max_length=20, default=UserRole.PATIENT)
    email = fields.CharField(max_length=255, null=True)
    phone = fields.CharField(max_length=20, null=True)

    fcm_token = fields.CharField(max_length=500, null=True)
    notification_enabled = fields.BooleanField(default=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "users"
