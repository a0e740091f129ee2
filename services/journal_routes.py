"""Journal route handlers."""
from flask import jsonify, request

from services import journal_service
from services.auth_service import owner_view
from services.clock import parse_local_day
from services.errors import ValidationError
from services.payloads import JournalUpdate
from services.validation_service import json_object


@owner_view
def handle_journal(user):
    if request.method == 'POST':
        data = json_object(request.get_json(silent=True))
        day = None
        if data.get('date'):
            day = parse_local_day(data.get('date'))
            if not day:
                raise ValidationError("Invalid date")
        entry = journal_service.create_entry(user.id, JournalUpdate.from_payload(data), day=day)
        return jsonify(entry.to_dict()), 201

    return jsonify([e.to_dict() for e in journal_service.list_entries(user.id)])


@owner_view
def handle_journal_entry(user, entry_id):
    if request.method == 'DELETE':
        journal_service.delete_entry(user.id, entry_id)
        return jsonify({'id': entry_id})

    if request.method == 'PUT':
        data = json_object(request.get_json(silent=True))
        entry = journal_service.update_entry(user.id, entry_id, JournalUpdate.from_payload(data))
        return jsonify(entry.to_dict())

    return jsonify(journal_service.get_entry(user.id, entry_id).to_dict())
