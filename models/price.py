from tortoise import fields
from tortoise.models import Model


class Price(Model):
    id = fields.IntField(primary_key=True)
    service_name = fields.CharField(max_length=255)
    price = fields.DecimalField(max_digits=10, decimal_places=2, null=True)
    is_active = fields.BooleanField(default=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "prices"
