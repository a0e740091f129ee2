"""Local-day arithmetic. Storage is naive UTC; "today" follows DEFAULT_TIMEZONE."""
from datetime import datetime, time, timedelta

import pytz
from flask import current_app

from models import utcnow
from services.errors import ValidationError
from services.validation_service import parse_day_value, parse_iso_datetime


def get_timezone():
    return pytz.timezone(current_app.config.get('DEFAULT_TIMEZONE', 'UTC'))


def to_utc_naive(value):
    """Aware datetimes are converted; naive ones are read as local wall-clock time."""
    try:
        if value.tzinfo is None:
            value = get_timezone().localize(value)
        return value.astimezone(pytz.UTC).replace(tzinfo=None)
    except OverflowError:
        raise ValidationError("Invalid date")


def to_local(value):
    return pytz.UTC.localize(value).astimezone(get_timezone())


def local_today():
    return datetime.now(get_timezone()).date()


def local_midnight(day):
    return to_utc_naive(datetime.combine(day, time.min))


def local_day_window(day):
    """[start, end) of a local calendar day, as naive UTC."""
    try:
        next_day = day + timedelta(days=1)
    except OverflowError:
        raise ValidationError("Invalid date")
    return local_midnight(day), local_midnight(next_day)


def local_day_of(value):
    return to_local(value).date()


def parse_datetime_value(raw):
    """Parse a date or datetime payload value into naive UTC; None when unparseable."""
    parsed = parse_iso_datetime(raw)
    if parsed is not None:
        return to_utc_naive(parsed)
    day = parse_day_value(raw)
    if day is not None:
        return local_midnight(day)
    return None


def parse_local_day(raw):
    """Calendar day for a 'YYYY-MM-DD' value or the local day of a full timestamp."""
    day = parse_day_value(raw)
    if day is not None:
        return day
    parsed = parse_iso_datetime(raw)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.date()
    return parsed.astimezone(get_timezone()).date()


def stats_window(period, now=None):
    """Half-open naive-UTC window for 'week', 'month' or 'year'; anything else is 'month'."""
    today = to_local(now or utcnow()).date()
    if period == 'week':
        return local_midnight(today - timedelta(days=7)), local_midnight(today + timedelta(days=7))
    if period == 'year':
        return (
            local_midnight(today.replace(month=1, day=1)),
            local_midnight(today.replace(year=today.year + 1, month=1, day=1)),
        )
    first = today.replace(day=1)
    next_month = (first.replace(day=28) + timedelta(days=4)).replace(day=1)
    return local_midnight(first), local_midnight(next_month)
