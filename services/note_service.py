from flask import current_app

from models import db, Note, Event
from services.ownership import get_owned
from text_helpers import sanitize_note_html
from services.errors import ValidationError


def list_notes(owner_id, tag=None):
    notes = Note.query.filter_by(user_id=owner_id).order_by(Note.created_at.desc(), Note.id.desc()).all()
    if tag:
        notes = [n for n in notes if tag in n.tag_list]
    return notes


def get_note(owner_id, note_id):
    return get_owned(Note, owner_id, note_id, 'Note')


def note_tags(owner_id):
    """Every distinct tag with the number of notes carrying it, most used first."""
    counts = {}
    for note in Note.query.filter_by(user_id=owner_id).all():
        for tag in note.tag_list:
            counts[tag] = counts.get(tag, 0) + 1
    ordered = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
    return [{'name': name, 'count': count} for name, count in ordered]


def _clean_content(raw):
    content = sanitize_note_html(raw)
    if not content:
        raise ValidationError("Content is required")
    return content


def create_note(owner_id, fields):
    if not fields.provided('title') or not fields.provided('content'):
        raise ValidationError("Please provide title and content")
    note = Note(
        user_id=owner_id,
        title=fields.title,
        content=_clean_content(fields.content),
        tags=fields.tags or None,
    )
    db.session.add(note)
    db.session.commit()
    current_app.logger.info("Created note %s for user %s", note.id, owner_id)
    return note


def update_note(owner_id, note_id, fields):
    note = get_note(owner_id, note_id)
    changes = fields.changes()
    if 'content' in changes:
        changes['content'] = _clean_content(changes['content'])
    for name, value in changes.items():
        setattr(note, name, value)
    db.session.commit()
    return note


def delete_note(owner_id, note_id):
    note = get_note(owner_id, note_id)
    Event.query.filter_by(related_note_id=note.id).update({'related_note_id': None}, synchronize_session=False)
    db.session.delete(note)
    db.session.commit()
    current_app.logger.info("Deleted note %s for user %s", note_id, owner_id)
    return note_id
