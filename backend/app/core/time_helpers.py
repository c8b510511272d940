"""
Helpers de tiempo.
Todas las marcas de tiempo se guardan como UTC sin tzinfo.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.core.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convierte un datetime con zona horaria a UTC naive; los naive se asumen UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_future(value: datetime, now: Optional[datetime] = None) -> bool:
    now = now or utc_now()
    tolerance = timedelta(seconds=settings.future_timestamp_tolerance_seconds)
    return to_naive_utc(value) > now + tolerance
