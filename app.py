import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

load_dotenv()

from models import db
from services import (
    calendar_routes,
    dashboard_routes,
    event_routes,
    journal_routes,
    notes_routes,
    task_routes,
    user_routes,
)
from services.auth_service import login_manager
from services.errors import ServiceError

app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///productivity.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['DEFAULT_TIMEZONE'] = os.environ.get('DEFAULT_TIMEZONE', 'UTC')
app.config['TOKEN_MAX_AGE'] = 30 * 24 * 60 * 60  # 30 days in seconds
app.config['TOKEN_COOKIE_SECURE'] = os.environ.get('APP_ENV') == 'production'
app.config['FRONTEND_URL'] = os.environ.get('FRONTEND_URL')  # Optional cross-origin client
app.logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO').upper())

db.init_app(app)
login_manager.init_app(app)

with app.app_context():
    db.create_all()


# --- Error handling ---

@app.errorhandler(ServiceError)
def handle_service_error(exc):
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


@app.errorhandler(HTTPException)
def handle_http_error(exc):
    return jsonify({'error': exc.description}), exc.code


@app.errorhandler(Exception)
def handle_unexpected_error(exc):
    db.session.rollback()
    app.logger.exception(f"Unhandled error on {request.method} {request.path}")
    return jsonify({'error': 'Something went wrong!'}), 500


@app.after_request
def _apply_cors(response):
    origin = app.config.get('FRONTEND_URL')
    if origin:
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Access-Control-Allow-Credentials'] = 'true'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
    return response


# --- Routes ---

def _route(rule, view, methods=('GET',)):
    app.add_url_rule(rule, endpoint=f"{view.__module__.rsplit('.', 1)[-1]}.{view.__name__}",
                     view_func=view, methods=list(methods))


# Auth
_route('/api/register', user_routes.register, methods=['POST'])
_route('/api/login', user_routes.login, methods=['POST'])
_route('/api/logout', user_routes.logout, methods=['POST'])
_route('/api/me', user_routes.current_user_info)

# Notes
_route('/api/notes', notes_routes.handle_notes, methods=['GET', 'POST'])
_route('/api/notes/tags', notes_routes.note_tags)
_route('/api/notes/<int:note_id>', notes_routes.handle_note, methods=['GET', 'PUT', 'DELETE'])

# Journal
_route('/api/journal', journal_routes.handle_journal, methods=['GET', 'POST'])
_route('/api/journal/<int:entry_id>', journal_routes.handle_journal_entry, methods=['GET', 'PUT', 'DELETE'])

# Tasks
_route('/api/tasks', task_routes.handle_tasks, methods=['GET', 'POST'])
_route('/api/tasks/stats', task_routes.task_stats)
_route('/api/tasks/by-category', task_routes.tasks_by_category)
_route('/api/tasks/bulk', task_routes.bulk_update_tasks, methods=['PATCH'])
_route('/api/tasks/<int:task_id>', task_routes.handle_task, methods=['GET', 'PUT', 'DELETE'])

# Events
_route('/api/events', event_routes.handle_events, methods=['GET', 'POST'])
_route('/api/events/upcoming', event_routes.upcoming_events)
_route('/api/events/today', event_routes.today_events)
_route('/api/events/stats', event_routes.event_stats)
_route('/api/events/search', event_routes.search_events)
_route('/api/events/bulk/delete', event_routes.bulk_delete_events, methods=['DELETE'])
_route('/api/events/<int:event_id>', event_routes.handle_event, methods=['GET', 'PUT', 'DELETE'])

# Aggregate views
_route('/api/dashboard', dashboard_routes.dashboard)
_route('/api/calendar', calendar_routes.calendar_overview)


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
