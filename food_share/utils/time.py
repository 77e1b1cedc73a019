from datetime import datetime, timezone

from sqlalchemy import Column, DateTime


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime (the form SQLite stores)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def naive_utc_column(nullable: bool = False, index: bool = False) -> Column:
    """Plain DateTime column holding naive UTC values."""
    return Column(DateTime(timezone=False), nullable=nullable, index=index)
