import math
from datetime import datetime

from flask import current_app

from models import db, Task, Event, utcnow
from services.clock import local_day_window, local_today
from services.errors import ValidationError
from services.ownership import get_owned
from services.payloads import PRIORITIES, TASK_STATUSES
from services.validation_service import LIKE_ESCAPE, contains_pattern

CLOSED_STATUSES = ('completed', 'cancelled')
PRIORITY_RANK = {name: rank for rank, name in enumerate(PRIORITIES)}


def sort_tasks(tasks):
    """Urgent first, then earliest due date (undated last), then newest."""
    newest_first = sorted(tasks, key=lambda t: (t.created_at or datetime.min, t.id or 0), reverse=True)
    return sorted(newest_first, key=lambda t: (
        -PRIORITY_RANK.get(t.priority, 0),
        t.due_date is None,
        t.due_date or datetime.max,
    ))


def list_tasks(owner_id, status=None, priority=None, category=None, due_day=None, search=None, tag=None):
    """Owner's tasks narrowed by every filter that is set."""
    if status and status not in TASK_STATUSES:
        raise ValidationError("Invalid status filter")
    if priority and priority not in PRIORITIES:
        raise ValidationError("Invalid priority filter")

    query = Task.query.filter(Task.user_id == owner_id)
    if status:
        query = query.filter(Task.status == status)
    if priority:
        query = query.filter(Task.priority == priority)
    if category:
        query = query.filter(Task.category == category)
    if due_day:
        day_start, day_end = local_day_window(due_day)
        query = query.filter(Task.due_date >= day_start, Task.due_date < day_end)
    if search:
        like_expr = contains_pattern(search)
        query = query.filter(db.or_(
            Task.title.ilike(like_expr, escape=LIKE_ESCAPE),
            Task.description.ilike(like_expr, escape=LIKE_ESCAPE),
            Task.tags.ilike(like_expr, escape=LIKE_ESCAPE),
        ))
    tasks = query.all()
    if tag:
        tasks = [t for t in tasks if tag in t.tag_list]
    return sort_tasks(tasks)


def get_task(owner_id, task_id):
    return get_owned(Task, owner_id, task_id, 'Task')


def _apply_status(task, new_status, now):
    """Keep completed_at set exactly while the task is completed."""
    if new_status == 'completed':
        if task.status != 'completed' or task.completed_at is None:
            task.completed_at = now
    else:
        task.completed_at = None
    task.status = new_status


def apply_task_update(task, fields, now=None):
    changes = fields.changes()
    new_status = changes.pop('status', None)
    for name, value in changes.items():
        setattr(task, name, value)
    if new_status is not None:
        _apply_status(task, new_status, now or utcnow())


def create_task(owner_id, fields, parent_id=None):
    if not fields.provided('title'):
        raise ValidationError("Title is required")
    parent = get_owned(Task, owner_id, parent_id, 'Parent task') if parent_id is not None else None

    task = Task(user_id=owner_id, status='todo', priority='medium', parent=parent)
    apply_task_update(task, fields)
    db.session.add(task)
    db.session.commit()
    current_app.logger.info("Created task %s for user %s", task.id, owner_id)
    return task


def update_task(owner_id, task_id, fields):
    task = get_task(owner_id, task_id)
    apply_task_update(task, fields)
    db.session.commit()
    return task


def _collect_subtree(task):
    collected = []
    stack = [task]
    while stack:
        current = stack.pop()
        collected.append(current)
        stack.extend(current.subtasks)
    return collected


def delete_task(owner_id, task_id):
    """Delete a task with all of its subtasks, detaching it from its parent, in one transaction."""
    task = get_task(owner_id, task_id)
    doomed = _collect_subtree(task)
    doomed_ids = [t.id for t in doomed]

    if task.parent is not None:
        task.parent.subtasks.remove(task)
    Event.query.filter(Event.related_task_id.in_(doomed_ids)).update(
        {'related_task_id': None}, synchronize_session=False
    )
    # Children first so no row is left pointing at a deleted parent mid-flush
    for doomed_task in reversed(doomed):
        db.session.delete(doomed_task)
    db.session.commit()
    current_app.logger.info(
        "Deleted task %s and %s subtasks for user %s", task_id, len(doomed_ids) - 1, owner_id
    )
    return doomed_ids


def bulk_update_tasks(owner_id, task_ids, fields):
    if not fields.changes():
        raise ValidationError("updates must contain at least one permitted field")
    tasks = Task.query.filter(Task.user_id == owner_id, Task.id.in_(task_ids)).all()
    now = utcnow()
    for task in tasks:
        apply_task_update(task, fields, now=now)
    db.session.commit()
    current_app.logger.info("Bulk updated %s tasks for user %s", len(tasks), owner_id)
    return len(tasks)


def _count_by(column, owner_id):
    rows = db.session.query(column, db.func.count(Task.id)).filter(
        Task.user_id == owner_id
    ).group_by(column).all()
    return {key: count for key, count in rows}


def completion_rate(completed, total):
    if total == 0:
        return 0
    # round half up, matching how clients display the percentage
    return int(math.floor(100.0 * completed / total + 0.5))


def task_stats(owner_id, now=None):
    now = now or utcnow()
    base = Task.query.filter(Task.user_id == owner_id)
    open_tasks = base.filter(Task.status.notin_(CLOSED_STATUSES))
    day_start, day_end = local_day_window(local_today())

    total = base.count()
    completed = base.filter(Task.status == 'completed').count()
    return {
        'total': total,
        'completed': completed,
        'overdue': open_tasks.filter(Task.due_date < now).count(),
        'dueToday': open_tasks.filter(Task.due_date >= day_start, Task.due_date < day_end).count(),
        'completionRate': completion_rate(completed, total),
        'byStatus': _count_by(Task.status, owner_id),
        'byPriority': _count_by(Task.priority, owner_id),
    }


def tasks_by_category(owner_id):
    grouped = {}
    for task in Task.query.filter_by(user_id=owner_id).all():
        grouped.setdefault(task.category, []).append(task)
    categories = sorted(grouped, key=lambda c: (c is None, c or ''))
    return [{'category': c, 'tasks': sort_tasks(grouped[c])} for c in categories]
