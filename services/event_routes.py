"""Event route handlers."""
from datetime import timedelta

from flask import jsonify, request

from services import event_service
from services.auth_service import owner_view
from services.clock import local_day_window, parse_datetime_value
from services.errors import ValidationError
from services.payloads import EventUpdate
from services.validation_service import json_object, normalize_tags, parse_day_value, parse_id_list


def _range_arg(name):
    raw = request.args.get(name)
    if not raw:
        return None
    day = parse_day_value(raw)
    if day is not None and name == 'end':
        # A bare end day covers that whole local day
        return local_day_window(day)[1] - timedelta(microseconds=1)
    value = parse_datetime_value(raw)
    if value is None:
        raise ValidationError(f"Invalid {name} date")
    return value


def _filter_args():
    return {
        'event_type': request.args.get('type') or None,
        'priority': request.args.get('priority') or None,
        'tags': normalize_tags(request.args.get('tags')),
    }


@owner_view
def handle_events(user):
    if request.method == 'POST':
        data = json_object(request.get_json(silent=True))
        event = event_service.create_event(user.id, EventUpdate.from_payload(data))
        return jsonify(event.to_dict()), 201

    start = _range_arg('start')
    end = _range_arg('end')
    if start and end and end < start:
        raise ValidationError("end must be on/after start")
    events = event_service.list_events(user.id, start=start, end=end, **_filter_args())
    return jsonify([ev.to_dict() for ev in events])


@owner_view
def upcoming_events(user):
    try:
        limit = int(request.args.get('limit', event_service.DEFAULT_UPCOMING_LIMIT))
    except (TypeError, ValueError):
        limit = event_service.DEFAULT_UPCOMING_LIMIT
    return jsonify([ev.to_dict() for ev in event_service.upcoming_events(user.id, limit=limit)])


@owner_view
def today_events(user):
    return jsonify([ev.to_dict() for ev in event_service.today_events(user.id)])


@owner_view
def event_stats(user):
    period = (request.args.get('period') or 'month').strip().lower()
    return jsonify(event_service.event_stats(user.id, period=period))


@owner_view
def search_events(user):
    text = (request.args.get('q') or '').strip() or None
    events = event_service.search_events(user.id, text=text, **_filter_args())
    return jsonify([ev.to_dict() for ev in events])


@owner_view
def bulk_delete_events(user):
    data = json_object(request.get_json(silent=True))
    event_ids = parse_id_list(data.get('eventIds'), 'Event IDs')
    deleted = event_service.bulk_delete_events(user.id, event_ids)
    return jsonify({'message': f"{deleted} events deleted successfully", 'deletedCount': deleted})


@owner_view
def handle_event(user, event_id):
    if request.method == 'DELETE':
        event_service.delete_event(user.id, event_id)
        return jsonify({'message': 'Event deleted successfully'})

    if request.method == 'PUT':
        data = json_object(request.get_json(silent=True))
        event = event_service.update_event(user.id, event_id, EventUpdate.from_payload(data))
        return jsonify(event.to_dict())

    return jsonify(event_service.get_event(user.id, event_id).to_dict())
