"""
Helpers de fechas en la zona horaria del negocio.

Los timestamps se guardan en UTC. Los cortes por día ("hoy", "últimos 7
días") se calculan con los límites del día calendario en la zona horaria
configurada y se convierten a UTC para consultar.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

import pytz

from app.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite devuelve datetimes sin zona: se asumen en UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_tz(tz_name: Optional[str] = None):
    return pytz.timezone(tz_name or settings.BUSINESS_TIMEZONE)


def to_business_time(value: datetime, tz_name: Optional[str] = None) -> datetime:
    return as_utc(value).astimezone(business_tz(tz_name))


def business_date(value: datetime, tz_name: Optional[str] = None) -> date:
    """Día calendario del negocio al que pertenece un instante."""
    return to_business_time(value, tz_name).date()


def day_bounds_utc(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Inicio (inclusive) y fin (exclusivo) del día calendario, en UTC."""
    tz = business_tz(tz_name)
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def range_bounds_utc(start_day: date, end_day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Límites UTC de un rango de días calendario, ambos extremos incluidos."""
    start, _ = day_bounds_utc(start_day, tz_name)
    _, end = day_bounds_utc(end_day, tz_name)
    return start, end
