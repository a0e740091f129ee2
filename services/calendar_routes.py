"""Calendar range view: events, dated tasks and journal entries grouped by local day."""
import calendar
from datetime import timedelta

from flask import jsonify, request

from models import JournalEntry, Task
from services import event_service
from services.auth_service import owner_view
from services.clock import local_day_of, local_day_window, local_today
from services.errors import ValidationError
from services.validation_service import parse_day_value


def _resolve_range():
    start_raw = request.args.get('start')
    end_raw = request.args.get('end')
    start_day = parse_day_value(start_raw) if start_raw else local_today().replace(day=1)
    if not start_day:
        raise ValidationError("Invalid start date")
    if end_raw:
        end_day = parse_day_value(end_raw)
        if not end_day:
            raise ValidationError("Invalid end date")
    else:
        # Default end to end-of-month for start_day
        end_day = start_day.replace(day=calendar.monthrange(start_day.year, start_day.month)[1])
    if end_day < start_day:
        raise ValidationError("end must be on/after start")
    return start_day, end_day


def _event_days(event, start_day, end_day):
    first = max(local_day_of(event.start_date), start_day)
    # end_date is exclusive, so an event ending at midnight does not spill into that day
    last = min(local_day_of(event.end_date - timedelta(microseconds=1)), end_day)
    day = first
    while day <= last:
        yield day
        day += timedelta(days=1)


@owner_view
def calendar_overview(user):
    start_day, end_day = _resolve_range()
    range_start = local_day_window(start_day)[0]
    range_end = local_day_window(end_day)[1]

    by_day = {}

    def bucket(day):
        return by_day.setdefault(day.isoformat(), {'events': [], 'tasks': [], 'journal': []})

    events = event_service.list_events(user.id, start=range_start, end=range_end)
    for ev in events:
        if ev.end_date <= range_start or ev.start_date >= range_end:
            continue
        data = ev.to_dict()
        for day in _event_days(ev, start_day, end_day):
            bucket(day)['events'].append(data)

    tasks = Task.query.filter(
        Task.user_id == user.id,
        Task.due_date >= range_start,
        Task.due_date < range_end,
    ).order_by(Task.due_date.asc()).all()
    for task in tasks:
        bucket(local_day_of(task.due_date))['tasks'].append(task.to_summary())

    entries = JournalEntry.query.filter(
        JournalEntry.user_id == user.id,
        JournalEntry.date >= start_day,
        JournalEntry.date <= end_day,
    ).order_by(JournalEntry.date.asc()).all()
    for entry in entries:
        bucket(entry.date)['journal'].append(entry.to_dict())

    return jsonify({
        'start': start_day.isoformat(),
        'end': end_day.isoformat(),
        'days': by_day,
    })
