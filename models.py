from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime

import pytz

db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp, the storage convention for every DateTime column."""
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def isoformat_utc(value):
    return value.isoformat() + 'Z' if value else None


def split_tags(raw):
    return [t for t in (raw or '').split(',') if t]


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Relationships
    notes = db.relationship('Note', backref='owner', lazy=True, cascade="all, delete-orphan")
    journal_entries = db.relationship('JournalEntry', backref='owner', lazy=True, cascade="all, delete-orphan")
    tasks = db.relationship('Task', backref='owner', lazy=True, cascade="all, delete-orphan")
    events = db.relationship('Event', backref='owner', lazy=True, cascade="all, delete-orphan")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
        }


class Note(db.Model):
    """Rich-text note owned by a user."""
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)  # Stored as sanitized HTML
    tags = db.Column(db.Text, nullable=True)  # comma-joined
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @property
    def tag_list(self):
        return split_tags(self.tags)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'title': self.title,
            'content': self.content or '',
            'tags': self.tag_list,
            'createdAt': isoformat_utc(self.created_at),
            'updatedAt': isoformat_utc(self.updated_at),
        }


class JournalEntry(db.Model):
    """One free-text entry per user per local calendar day."""
    __tablename__ = 'journal_entry'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'date', name='uq_journal_entry_user_date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    entry = db.Column(db.Text, nullable=False)
    date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'entry': self.entry,
            'date': self.date.isoformat() if self.date else None,
            'createdAt': isoformat_utc(self.created_at),
            'updatedAt': isoformat_utc(self.updated_at),
        }


class Task(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default='todo')  # todo | in-progress | completed | cancelled
    priority = db.Column(db.String(10), default='medium')  # low | medium | high | urgent
    due_date = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    tags = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(100), nullable=True)
    estimated_time = db.Column(db.Integer, nullable=True)  # minutes
    actual_time = db.Column(db.Integer, nullable=True)  # minutes
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Subtasks point at their parent; the parent's list is the backref
    parent_id = db.Column(db.Integer, db.ForeignKey('task.id'), nullable=True)
    parent = db.relationship('Task', remote_side=[id], backref='subtasks', foreign_keys=[parent_id])

    @property
    def tag_list(self):
        return split_tags(self.tags)

    def is_overdue(self, now=None):
        if not self.due_date or self.status in ('completed', 'cancelled'):
            return False
        return (now or utcnow()) > self.due_date

    def to_summary(self):
        return {
            'id': self.id,
            'title': self.title,
            'status': self.status,
            'priority': self.priority,
            'dueDate': isoformat_utc(self.due_date),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'dueDate': isoformat_utc(self.due_date),
            'completedAt': isoformat_utc(self.completed_at),
            'tags': self.tag_list,
            'category': self.category,
            'estimatedTime': self.estimated_time,
            'actualTime': self.actual_time,
            'notes': self.notes,
            'parentTask': {'id': self.parent.id, 'title': self.parent.title} if self.parent else None,
            'subtasks': [sub.to_summary() for sub in self.subtasks],
            'isOverdue': self.is_overdue(),
            'createdAt': isoformat_utc(self.created_at),
            'updatedAt': isoformat_utc(self.updated_at),
        }


class Event(db.Model):
    """
    Calendar event spanning [start_date, end_date).
    Timed events of one user never overlap; all-day events are exempt.
    """
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_date = db.Column(db.DateTime, nullable=False, index=True)
    end_date = db.Column(db.DateTime, nullable=False, index=True)
    all_day = db.Column(db.Boolean, default=False)
    location = db.Column(db.String(200), nullable=True)
    color = db.Column(db.String(7), default='#4f46e5')
    event_type = db.Column('type', db.String(20), default='event')
    priority = db.Column(db.String(10), default='medium')
    tags = db.Column(db.Text, nullable=True)
    attendees = db.Column(db.JSON, nullable=True)
    recurring = db.Column(db.JSON, nullable=True)
    reminders = db.Column(db.JSON, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    related_task_id = db.Column(db.Integer, db.ForeignKey('task.id'), nullable=True)
    related_task = db.relationship('Task', foreign_keys=[related_task_id])
    related_note_id = db.Column(db.Integer, db.ForeignKey('note.id'), nullable=True)
    related_note = db.relationship('Note', foreign_keys=[related_note_id])
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    @property
    def tag_list(self):
        return split_tags(self.tags)

    def to_dict(self):
        now = utcnow()
        return {
            'id': self.id,
            'userId': self.user_id,
            'title': self.title,
            'description': self.description,
            'startDate': isoformat_utc(self.start_date),
            'endDate': isoformat_utc(self.end_date),
            'allDay': bool(self.all_day),
            'location': self.location,
            'color': self.color,
            'type': self.event_type,
            'priority': self.priority,
            'tags': self.tag_list,
            'attendees': self.attendees or [],
            'recurring': self.recurring or {'enabled': False},
            'reminders': self.reminders or [],
            'notes': self.notes,
            'relatedTask': {
                'id': self.related_task.id,
                'title': self.related_task.title,
                'status': self.related_task.status,
            } if self.related_task else None,
            'relatedNote': {
                'id': self.related_note.id,
                'title': self.related_note.title,
            } if self.related_note else None,
            'isOngoing': self.start_date <= now <= self.end_date,
            'isUpcoming': now < self.start_date,
            'isOverdue': now > self.end_date,
            'createdAt': isoformat_utc(self.created_at),
            'updatedAt': isoformat_utc(self.updated_at),
        }
