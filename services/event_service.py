from flask import current_app

from models import db, Event, Note, Task, utcnow
from services.clock import local_day_window, local_today, stats_window
from services.errors import ConflictError, ValidationError
from services.owner_locks import owner_write_lock
from services.ownership import get_owned
from services.payloads import DEFAULT_REMINDERS, EVENT_TYPES, PRIORITIES
from services.validation_service import LIKE_ESCAPE, contains_pattern

STATS_PERIODS = ('week', 'month', 'year')
DEFAULT_UPCOMING_LIMIT = 10
MAX_UPCOMING_LIMIT = 100


def intervals_overlap(start_a, end_a, start_b, end_b):
    """Half-open intervals [start_a, end_a) and [start_b, end_b) intersect."""
    return start_a < end_b and end_a > start_b


def _filter_tags(events, tags):
    if not tags:
        return events
    wanted = set(tags)
    return [ev for ev in events if wanted.intersection(ev.tag_list)]


def _check_filters(event_type, priority):
    if event_type and event_type not in EVENT_TYPES:
        raise ValidationError("Invalid type filter")
    if priority and priority not in PRIORITIES:
        raise ValidationError("Invalid priority filter")


def list_events(owner_id, start=None, end=None, event_type=None, priority=None, tags=None):
    """Events touching the closed range [start, end], narrowed by type/priority/any-of tags."""
    _check_filters(event_type, priority)
    query = Event.query.filter(Event.user_id == owner_id)
    if start is not None:
        query = query.filter(Event.end_date >= start)
    if end is not None:
        query = query.filter(Event.start_date <= end)
    if event_type:
        query = query.filter(Event.event_type == event_type)
    if priority:
        query = query.filter(Event.priority == priority)
    events = query.order_by(Event.start_date.asc(), Event.id.asc()).all()
    return _filter_tags(events, tags)


def get_event(owner_id, event_id):
    return get_owned(Event, owner_id, event_id, 'Event')


def find_conflicts(owner_id, start, end, exclude_id=None):
    """Timed events of the owner whose interval intersects [start, end)."""
    query = Event.query.filter(Event.user_id == owner_id, Event.all_day.is_(False))
    if exclude_id is not None:
        query = query.filter(Event.id != exclude_id)
    candidates = query.order_by(Event.start_date.asc()).all()
    return [ev for ev in candidates if intervals_overlap(start, end, ev.start_date, ev.end_date)]


def _raise_if_conflicts(owner_id, start, end, exclude_id=None):
    conflicts = find_conflicts(owner_id, start, end, exclude_id=exclude_id)
    if conflicts:
        current_app.logger.warning(
            "Rejected event for user %s: overlaps %s", owner_id, [ev.id for ev in conflicts]
        )
        raise ConflictError(
            "Event conflicts with existing events",
            conflicts=[{'id': ev.id, 'title': ev.title} for ev in conflicts],
        )


def _check_range(start, end):
    if start >= end:
        raise ValidationError("End date must be after start date")


def _check_related(owner_id, changes):
    if changes.get('related_task_id') is not None:
        get_owned(Task, owner_id, changes['related_task_id'], 'Related task')
    if changes.get('related_note_id') is not None:
        get_owned(Note, owner_id, changes['related_note_id'], 'Related note')


def create_event(owner_id, fields):
    changes = fields.changes()
    if 'title' not in changes:
        raise ValidationError("Title is required")
    if 'start_date' not in changes or 'end_date' not in changes:
        raise ValidationError("startDate and endDate are required")
    _check_range(changes['start_date'], changes['end_date'])
    _check_related(owner_id, changes)

    changes.setdefault('all_day', False)
    changes.setdefault('recurring', {'enabled': False})
    if 'reminders' not in changes:
        changes['reminders'] = [dict(r) for r in DEFAULT_REMINDERS]

    with owner_write_lock(owner_id):
        if not changes['all_day']:
            _raise_if_conflicts(owner_id, changes['start_date'], changes['end_date'])
        event = Event(user_id=owner_id, **changes)
        db.session.add(event)
        db.session.commit()
    current_app.logger.info("Created event %s for user %s", event.id, owner_id)
    return event


def update_event(owner_id, event_id, fields):
    event = get_event(owner_id, event_id)
    changes = fields.changes()
    start = changes.get('start_date', event.start_date)
    end = changes.get('end_date', event.end_date)
    all_day = changes.get('all_day', bool(event.all_day))
    _check_range(start, end)
    _check_related(owner_id, changes)

    timing_changed = any(name in changes for name in ('start_date', 'end_date', 'all_day'))
    with owner_write_lock(owner_id):
        if timing_changed and not all_day:
            _raise_if_conflicts(owner_id, start, end, exclude_id=event.id)
        for name, value in changes.items():
            setattr(event, name, value)
        db.session.commit()
    return event


def delete_event(owner_id, event_id):
    event = get_event(owner_id, event_id)
    db.session.delete(event)
    db.session.commit()
    current_app.logger.info("Deleted event %s for user %s", event_id, owner_id)


def bulk_delete_events(owner_id, event_ids):
    deleted = Event.query.filter(
        Event.user_id == owner_id,
        Event.id.in_(event_ids),
    ).delete(synchronize_session=False)
    db.session.commit()
    current_app.logger.info("Bulk deleted %s events for user %s", deleted, owner_id)
    return deleted


def upcoming_events(owner_id, limit=DEFAULT_UPCOMING_LIMIT, now=None):
    limit = max(1, min(limit, MAX_UPCOMING_LIMIT))
    return Event.query.filter(
        Event.user_id == owner_id,
        Event.start_date >= (now or utcnow()),
    ).order_by(Event.start_date.asc()).limit(limit).all()


def today_events(owner_id):
    day_start, day_end = local_day_window(local_today())
    return Event.query.filter(
        Event.user_id == owner_id,
        Event.start_date < day_end,
        Event.end_date > day_start,
    ).order_by(Event.start_date.asc()).all()


def _count_by(column, owner_id, window_start, window_end):
    rows = db.session.query(column, db.func.count(Event.id)).filter(
        Event.user_id == owner_id,
        Event.start_date >= window_start,
        Event.start_date < window_end,
    ).group_by(column).all()
    return {key: count for key, count in rows}


def event_stats(owner_id, period='month', now=None):
    period = period if period in STATS_PERIODS else 'month'
    now = now or utcnow()
    window_start, window_end = stats_window(period, now)
    base = Event.query.filter(Event.user_id == owner_id)
    return {
        'period': period,
        'periodStart': window_start.isoformat() + 'Z',
        'periodEnd': window_end.isoformat() + 'Z',
        'totalEvents': base.filter(Event.start_date >= window_start, Event.start_date < window_end).count(),
        'upcomingEvents': base.filter(Event.start_date >= now).count(),
        'todayEvents': len(today_events(owner_id)),
        'typeStats': _count_by(Event.event_type, owner_id, window_start, window_end),
        'priorityStats': _count_by(Event.priority, owner_id, window_start, window_end),
    }


def search_events(owner_id, text=None, event_type=None, priority=None, tags=None):
    _check_filters(event_type, priority)
    query = Event.query.filter(Event.user_id == owner_id)
    if text:
        like_expr = contains_pattern(text)
        query = query.filter(db.or_(
            Event.title.ilike(like_expr, escape=LIKE_ESCAPE),
            Event.description.ilike(like_expr, escape=LIKE_ESCAPE),
            Event.location.ilike(like_expr, escape=LIKE_ESCAPE),
            Event.notes.ilike(like_expr, escape=LIKE_ESCAPE),
        ))
    if event_type:
        query = query.filter(Event.event_type == event_type)
    if priority:
        query = query.filter(Event.priority == priority)
    events = query.order_by(Event.start_date.asc()).all()
    return _filter_tags(events, tags)
