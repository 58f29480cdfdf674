from typing import Optional
from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.queryset import QuerySet


def scoped(queryset: QuerySet, using_db: Optional[BaseDBAsyncClient] = None) -> QuerySet:
    """Bind a queryset to an open transaction when one is given."""
    if using_db is None:
        return queryset
    return queryset.using_db(using_db)
