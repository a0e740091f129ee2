"""Note route handlers."""
from flask import jsonify, request

from services import note_service
from services.auth_service import owner_view
from services.payloads import NoteUpdate
from services.validation_service import json_object


@owner_view
def handle_notes(user):
    """List (optionally by exact tag) or create notes for the current user."""
    if request.method == 'POST':
        data = json_object(request.get_json(silent=True))
        note = note_service.create_note(user.id, NoteUpdate.from_payload(data))
        return jsonify(note.to_dict()), 201

    tag = (request.args.get('tag') or '').strip() or None
    notes = note_service.list_notes(user.id, tag=tag)
    return jsonify([n.to_dict() for n in notes])


@owner_view
def note_tags(user):
    return jsonify(note_service.note_tags(user.id))


@owner_view
def handle_note(user, note_id):
    if request.method == 'DELETE':
        note_service.delete_note(user.id, note_id)
        return jsonify({'id': note_id})

    if request.method == 'PUT':
        data = json_object(request.get_json(silent=True))
        note = note_service.update_note(user.id, note_id, NoteUpdate.from_payload(data))
        return jsonify(note.to_dict())

    return jsonify(note_service.get_note(user.id, note_id).to_dict())
