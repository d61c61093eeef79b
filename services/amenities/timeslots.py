# ============================================================
# timeslots.py - Heures pleines, dates et horloge locale
# ------------------------------------------------------------
# Le service réserve uniquement par heures pleines ("14:00").
# Ce module convertit entre "HH:MM" et l'heure entière, et
# ramène tout instant "now" dans la timezone locale du condo.
# ============================================================
import os
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from errors import ValidationError

LOCAL_TZ = ZoneInfo(os.getenv("LOCAL_TZ", "America/Sao_Paulo"))

_HHMM = re.compile(r"^(\d{2}):(\d{2})$")


def parse_hour(value: str, field: str = "time") -> int:
    # "08:00" -> 8 ; les minutes doivent être "00", 24:00 = minuit de fin
    m = _HHMM.match(value or "")
    if not m:
        raise ValidationError(f"{field} must be formatted HH:MM", field=field, details={"value": value})
    hour, minute = int(m.group(1)), int(m.group(2))
    if minute != 0:
        raise ValidationError(f"{field} must be a whole hour", field=field, details={"value": value})
    if hour > 24:
        raise ValidationError(f"{field} is out of range", field=field, details={"value": value})
    return hour


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def parse_date(value, field: str = "date") -> date:
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)", field=field, details={"value": value})


# On ramène "now" en heure locale ; un datetime naïf est supposé local
def to_local(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=LOCAL_TZ)
    return now.astimezone(LOCAL_TZ)


def now_local(now: Optional[datetime] = None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc).astimezone(LOCAL_TZ)
    return to_local(now)


# Fin d'une réservation en datetime local (end_time "24:00" -> lendemain 00:00)
def ends_at(day: date, end_time: str) -> datetime:
    hour = parse_hour(end_time, "end_time")
    if hour == 24:
        nxt = day + timedelta(days=1)
        return datetime(nxt.year, nxt.month, nxt.day, tzinfo=LOCAL_TZ)
    return datetime(day.year, day.month, day.day, hour, tzinfo=LOCAL_TZ)


def starts_at(day: date, start_time: str) -> datetime:
    hour = parse_hour(start_time, "start_time")
    return datetime(day.year, day.month, day.day, hour, tzinfo=LOCAL_TZ)
