from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns (no tz)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_values(enum_cls) -> list[str]:
    """Persist enum *values* (e.g. "in_progress"), not member names."""
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    pass
