"""
Explicit update structs: one per entity, enumerating the fields a caller may set.

Each struct is built from a JSON payload with `from_payload`; keys the entity
does not accept are ignored and malformed values raise ValidationError. Fields
the caller did not send keep the UNSET marker, so `changes()` returns exactly
the fields to write.
"""
from dataclasses import dataclass, fields
from typing import Any

from services.clock import parse_datetime_value
from services.errors import ValidationError
from services.validation_service import (
    normalize_tags,
    parse_bool,
    parse_choice,
    parse_int,
    parse_optional_text,
    parse_required_text,
    tags_to_string,
)


class _Unset:
    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET = _Unset()

TASK_STATUSES = ('todo', 'in-progress', 'completed', 'cancelled')
PRIORITIES = ('low', 'medium', 'high', 'urgent')
EVENT_TYPES = ('event', 'meeting', 'reminder', 'task', 'personal', 'work')
EVENT_COLORS = ('#4f46e5', '#10b981', '#f59e0b', '#ef4444', '#8b5cf6', '#06b6d4', '#84cc16', '#f97316')
ATTENDEE_RESPONSES = ('pending', 'accepted', 'declined', 'maybe')
RECURRENCE_PATTERNS = ('daily', 'weekly', 'monthly', 'yearly')
REMINDER_CHANNELS = ('email', 'push', 'sms')
DEFAULT_REMINDERS = [{'type': 'push', 'time': 15, 'sent': False}]


class _UpdateStruct:
    def changes(self):
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def provided(self, name):
        return getattr(self, name) is not UNSET


def _parse_datetime(value, field, required=False):
    if value in (None, ''):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    parsed = parse_datetime_value(value)
    if parsed is None:
        raise ValidationError(f"Invalid {field}")
    return parsed


def _parse_tags(value):
    return tags_to_string(normalize_tags(value)) or None


@dataclass
class NoteUpdate(_UpdateStruct):
    title: Any = UNSET
    content: Any = UNSET
    tags: Any = UNSET

    @classmethod
    def from_payload(cls, data):
        update = cls()
        if 'title' in data:
            update.title = parse_required_text(data.get('title'), 'Title')
        if 'content' in data:
            update.content = parse_required_text(data.get('content'), 'Content')
        if 'tags' in data:
            update.tags = _parse_tags(data.get('tags'))
        return update


@dataclass
class JournalUpdate(_UpdateStruct):
    entry: Any = UNSET

    @classmethod
    def from_payload(cls, data):
        update = cls()
        if 'entry' in data:
            update.entry = parse_required_text(data.get('entry'), 'Journal entry')
        return update


@dataclass
class TaskUpdate(_UpdateStruct):
    title: Any = UNSET
    description: Any = UNSET
    status: Any = UNSET
    priority: Any = UNSET
    due_date: Any = UNSET
    tags: Any = UNSET
    category: Any = UNSET
    estimated_time: Any = UNSET
    actual_time: Any = UNSET
    notes: Any = UNSET

    @classmethod
    def from_payload(cls, data):
        update = cls()
        if 'title' in data:
            update.title = parse_required_text(data.get('title'), 'Title')
        if 'description' in data:
            update.description = parse_optional_text(data.get('description'))
        if 'status' in data:
            update.status = parse_choice(data.get('status'), TASK_STATUSES, 'status')
        if 'priority' in data:
            update.priority = parse_choice(data.get('priority'), PRIORITIES, 'priority')
        if 'dueDate' in data:
            update.due_date = _parse_datetime(data.get('dueDate'), 'dueDate')
        if 'tags' in data:
            update.tags = _parse_tags(data.get('tags'))
        if 'category' in data:
            update.category = parse_optional_text(data.get('category'))
        if 'estimatedTime' in data:
            update.estimated_time = parse_int(data.get('estimatedTime'), 'estimatedTime', minimum=0)
        if 'actualTime' in data:
            update.actual_time = parse_int(data.get('actualTime'), 'actualTime', minimum=0)
        if 'notes' in data:
            update.notes = parse_optional_text(data.get('notes'))
        return update


def parse_attendees(raw):
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("attendees must be a list")
    attendees = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each attendee must be an object")
        attendees.append({
            'email': parse_optional_text(item.get('email')),
            'name': parse_optional_text(item.get('name')),
            'response': parse_choice(item.get('response') or 'pending', ATTENDEE_RESPONSES, 'attendee response'),
        })
    return attendees


def parse_recurring(raw):
    if raw is None:
        return {'enabled': False}
    if not isinstance(raw, dict):
        raise ValidationError("recurring must be an object")
    recurring = {
        'enabled': parse_bool(raw.get('enabled')),
        'pattern': parse_choice(raw.get('pattern') or 'weekly', RECURRENCE_PATTERNS, 'recurrence pattern'),
        'interval': parse_int(raw.get('interval'), 'recurrence interval', minimum=1) or 1,
    }
    end_after = parse_int(raw.get('endAfter'), 'recurrence endAfter', minimum=1)
    if end_after is not None:
        recurring['endAfter'] = end_after
    end_date = _parse_datetime(raw.get('endDate'), 'recurrence endDate')
    if end_date is not None:
        recurring['endDate'] = end_date.isoformat() + 'Z'
    return recurring


def parse_reminders(raw):
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("reminders must be a list")
    reminders = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each reminder must be an object")
        minutes = parse_int(item.get('time'), 'reminder time', minimum=0)
        reminders.append({
            'type': parse_choice(item.get('type') or 'push', REMINDER_CHANNELS, 'reminder type'),
            'time': 15 if minutes is None else minutes,
            'sent': parse_bool(item.get('sent')),
        })
    return reminders


@dataclass
class EventUpdate(_UpdateStruct):
    title: Any = UNSET
    description: Any = UNSET
    start_date: Any = UNSET
    end_date: Any = UNSET
    all_day: Any = UNSET
    location: Any = UNSET
    color: Any = UNSET
    event_type: Any = UNSET
    priority: Any = UNSET
    tags: Any = UNSET
    attendees: Any = UNSET
    recurring: Any = UNSET
    reminders: Any = UNSET
    notes: Any = UNSET
    related_task_id: Any = UNSET
    related_note_id: Any = UNSET

    @classmethod
    def from_payload(cls, data):
        update = cls()
        if 'title' in data:
            update.title = parse_required_text(data.get('title'), 'Title')
        if 'description' in data:
            update.description = parse_optional_text(data.get('description'))
        if 'startDate' in data:
            update.start_date = _parse_datetime(data.get('startDate'), 'startDate', required=True)
        if 'endDate' in data:
            update.end_date = _parse_datetime(data.get('endDate'), 'endDate', required=True)
        if 'allDay' in data:
            update.all_day = parse_bool(data.get('allDay'))
        if 'location' in data:
            update.location = parse_optional_text(data.get('location'))
        if 'color' in data:
            update.color = parse_choice(data.get('color'), EVENT_COLORS, 'color')
        if 'type' in data:
            update.event_type = parse_choice(data.get('type'), EVENT_TYPES, 'type')
        if 'priority' in data:
            update.priority = parse_choice(data.get('priority'), PRIORITIES, 'priority')
        if 'tags' in data:
            update.tags = _parse_tags(data.get('tags'))
        if 'attendees' in data:
            update.attendees = parse_attendees(data.get('attendees'))
        if 'recurring' in data:
            update.recurring = parse_recurring(data.get('recurring'))
        if 'reminders' in data:
            update.reminders = parse_reminders(data.get('reminders'))
        if 'notes' in data:
            update.notes = parse_optional_text(data.get('notes'))
        if 'relatedTask' in data:
            update.related_task_id = parse_int(data.get('relatedTask'), 'relatedTask')
        if 'relatedNote' in data:
            update.related_note_id = parse_int(data.get('relatedNote'), 'relatedNote')
        return update
