from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db, JournalEntry
from services.clock import local_today
from services.errors import ConflictError, ValidationError
from services.ownership import get_owned


def list_entries(owner_id):
    return JournalEntry.query.filter_by(user_id=owner_id).order_by(JournalEntry.date.desc()).all()


def get_entry(owner_id, entry_id):
    return get_owned(JournalEntry, owner_id, entry_id, 'Journal entry')


def _duplicate_date(owner_id, day):
    current_app.logger.warning("Journal entry for %s already exists for user %s", day.isoformat(), owner_id)
    return ConflictError("Journal entry for this date already exists", date=day.isoformat())


def create_entry(owner_id, fields, day=None):
    if not fields.provided('entry'):
        raise ValidationError("Please provide journal entry content")
    day = day or local_today()

    if JournalEntry.query.filter_by(user_id=owner_id, date=day).first():
        raise _duplicate_date(owner_id, day)

    entry = JournalEntry(user_id=owner_id, entry=fields.entry, date=day)
    db.session.add(entry)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request won the unique (user_id, date) slot
        db.session.rollback()
        raise _duplicate_date(owner_id, day)
    return entry


def update_entry(owner_id, entry_id, fields):
    entry = get_entry(owner_id, entry_id)
    for name, value in fields.changes().items():
        setattr(entry, name, value)
    db.session.commit()
    return entry


def delete_entry(owner_id, entry_id):
    entry = get_entry(owner_id, entry_id)
    db.session.delete(entry)
    db.session.commit()
    return entry_id
