"""Task route handlers."""
from flask import jsonify, request

from services import task_service
from services.auth_service import owner_view
from services.clock import parse_local_day
from services.errors import ValidationError
from services.payloads import TaskUpdate
from services.validation_service import json_object, parse_id_list, parse_int


@owner_view
def handle_tasks(user):
    if request.method == 'POST':
        data = json_object(request.get_json(silent=True))
        parent_id = parse_int(data.get('parentTask'), 'parentTask')
        task = task_service.create_task(user.id, TaskUpdate.from_payload(data), parent_id=parent_id)
        return jsonify(task.to_dict()), 201

    due_day = None
    due_raw = request.args.get('dueDate')
    if due_raw:
        due_day = parse_local_day(due_raw)
        if not due_day:
            raise ValidationError("Invalid dueDate filter")

    tasks = task_service.list_tasks(
        user.id,
        status=request.args.get('status') or None,
        priority=request.args.get('priority') or None,
        category=request.args.get('category') or None,
        due_day=due_day,
        search=(request.args.get('search') or '').strip() or None,
        tag=(request.args.get('tag') or '').strip() or None,
    )
    return jsonify([t.to_dict() for t in tasks])


@owner_view
def task_stats(user):
    return jsonify(task_service.task_stats(user.id))


@owner_view
def tasks_by_category(user):
    groups = task_service.tasks_by_category(user.id)
    return jsonify([
        {'category': group['category'], 'tasks': [t.to_dict() for t in group['tasks']]}
        for group in groups
    ])


@owner_view
def bulk_update_tasks(user):
    data = json_object(request.get_json(silent=True))
    task_ids = parse_id_list(data.get('taskIds'), 'taskIds')
    updates = data.get('updates')
    if not isinstance(updates, dict):
        raise ValidationError("updates object is required")
    count = task_service.bulk_update_tasks(user.id, task_ids, TaskUpdate.from_payload(updates))
    return jsonify({'message': f"{count} tasks updated successfully", 'modifiedCount': count})


@owner_view
def handle_task(user, task_id):
    if request.method == 'DELETE':
        deleted_ids = task_service.delete_task(user.id, task_id)
        return jsonify({'message': 'Task deleted successfully', 'deletedIds': deleted_ids})

    if request.method == 'PUT':
        data = json_object(request.get_json(silent=True))
        task = task_service.update_task(user.id, task_id, TaskUpdate.from_payload(data))
        return jsonify(task.to_dict())

    return jsonify(task_service.get_task(user.id, task_id).to_dict())
