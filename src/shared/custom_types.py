# src/shared/custom_types.py
import datetime
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import DateTime, Integer, TypeDecorator
from sqlalchemy.dialects.sqlite import DATETIME as SQLITE_DATETIME


CENT = Decimal("0.01")


class UTCDateTime(TypeDecorator):
    """Stores timezone-aware datetimes as UTC.

    SQLite has no timezone support, so values are written there as naive UTC
    and re-labelled as UTC on the way back. Naive input is taken as UTC.
    """
    impl = DateTime
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'sqlite':
            return dialect.type_descriptor(SQLITE_DATETIME())
        else:
            return dialect.type_descriptor(DateTime(timezone=True))

    def process_bind_param(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        value = value.astimezone(datetime.timezone.utc)
        if dialect.name == 'sqlite':
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime.datetime | None, dialect) -> datetime.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value.astimezone(datetime.timezone.utc)


class Money(TypeDecorator):
    """Decimal amount with two places, persisted as integer cents."""
    impl = Integer
    cache_ok = True

    def process_bind_param(self, value: Decimal | int | float | None, dialect) -> int | None:
        if value is None:
            return None
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
        return int(amount * 100)

    def process_result_value(self, value: int | None, dialect) -> Decimal | None:
        if value is None:
            return None
        return (Decimal(value) / 100).quantize(CENT)
