from flask import jsonify

from services import event_service, journal_service, note_service, task_service
from services.auth_service import owner_view
from text_helpers import build_preview

DASHBOARD_ITEMS = 5


@owner_view
def dashboard(user):
    """Landing-page summary: recent notes and journal, task stats, today and upcoming events."""
    notes = note_service.list_notes(user.id)[:DASHBOARD_ITEMS]
    entries = journal_service.list_entries(user.id)[:DASHBOARD_ITEMS]
    recent_notes = []
    for note in notes:
        data = note.to_dict()
        data['preview'] = build_preview(note.content)
        recent_notes.append(data)

    return jsonify({
        'recentNotes': recent_notes,
        'recentJournal': [e.to_dict() for e in entries],
        'taskStats': task_service.task_stats(user.id),
        'todayEvents': [ev.to_dict() for ev in event_service.today_events(user.id)],
        'upcomingEvents': [
            ev.to_dict() for ev in event_service.upcoming_events(user.id, limit=DASHBOARD_ITEMS)
        ],
    })
