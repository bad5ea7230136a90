"""
Task Routes

FLOW OVERVIEW
- /api/tasks [GET]
  • clientId required; returns root tasks with nested `subtasks`.
  • Filters: status, assignee (substring), search (title/description).
  • Client users only see tasks flagged visible_to_client.
- /api/tasks/<id> [GET, PUT, DELETE]
  • Single task / partial update / delete with its subtasks.
- /api/tasks [POST]
  • Create; a parent must belong to the same client.
- /api/tasks/stats [GET]
  • Root task status counts, total and overdue.

Client users may read their own client's visible tasks and update
`clientComments`; everything else is staff-only.
"""

from datetime import date

from flask import Blueprint, jsonify, request, current_app, g
from sqlalchemy import func, or_

from ..models import db, Task, Client, TASK_STATUSES
from ..utils.auth_utils import token_required, roles_required, client_scope_allowed
from ..utils.security import request_json
from ..utils.validators import sanitize_input, optional_text, validate_report_date

tasks_bp = Blueprint('tasks', __name__)

# JSON key → column for free text fields
TEXT_FIELDS = {
    'description': 'description',
    'assignee': 'assignee',
    'clientComments': 'client_comments',
    'teamComments': 'team_comments',
    'link': 'link',
}


def task_status_summary(client_id, today=None):
    """Status counts, total and overdue count over root tasks of a client"""
    today = today or date.today()
    root_tasks = Task.query.filter_by(client_id=client_id, parent_id=None)

    status_counts = {status: 0 for status in TASK_STATUSES}
    for status, count in (root_tasks.with_entities(Task.status, func.count(Task.id))
                          .group_by(Task.status).all()):
        status_counts[status] = count

    overdue = root_tasks.filter(Task.deadline < today, Task.status != 'completed').count()
    return {
        'statusCounts': status_counts,
        'totalTasks': root_tasks.count(),
        'overdueTasks': overdue
    }


def build_task_tree(tasks):
    """Root tasks with subtasks nested; orphans whose parent was filtered out are dropped"""
    nodes = {task.id: task.to_dict(include_subtasks=True) for task in tasks}
    roots = []
    for task in tasks:
        node = nodes[task.id]
        if task.parent_id:
            parent = nodes.get(task.parent_id)
            if parent is not None:
                parent['subtasks'].append(node)
        else:
            roots.append(node)
    return roots


def is_descendant(task, ancestor_id):
    """True when `ancestor_id` appears on the parent chain of `task` (or is `task` itself)"""
    seen = set()
    while task is not None and task.id not in seen:
        if task.id == ancestor_id:
            return True
        seen.add(task.id)
        task = db.session.get(Task, task.parent_id) if task.parent_id else None
    return False


def _client_id_param(data=None):
    client_id = (data or {}).get('clientId') or request.args.get('clientId')
    return client_id.strip() if isinstance(client_id, str) else client_id


def _parse_deadline(value):
    """(date or None, error message or None)"""
    if value in (None, ''):
        return None, None
    validation = validate_report_date(value)
    if not validation.is_valid:
        return None, 'Invalid deadline format. Use YYYY-MM-DD'
    return validation.sanitized_value, None


def _visible_query(client_id):
    query = Task.query.filter_by(client_id=client_id)
    if g.current_user.user_type == 'client':
        query = query.filter(Task.visible_to_client.is_(True))
    return query


@tasks_bp.route('', methods=['GET'])
@token_required
def list_tasks():
    client_id = _client_id_param()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403

    query = _visible_query(client_id)

    status = request.args.get('status')
    if status:
        query = query.filter(Task.status == status)

    assignee = request.args.get('assignee')
    if assignee:
        query = query.filter(Task.assignee.ilike(f'%{assignee}%'))

    search = request.args.get('search')
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))

    tasks = query.order_by(Task.created_at.asc()).all()
    return jsonify({'tasks': build_task_tree(tasks)})


@tasks_bp.route('/stats', methods=['GET'])
@token_required
def task_stats():
    client_id = _client_id_param()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403
    return jsonify(task_status_summary(client_id))


@tasks_bp.route('/<task_id>', methods=['GET'])
@token_required
def get_task(task_id):
    client_id = _client_id_param()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403

    task = _visible_query(client_id).filter(Task.id == task_id).first()
    if not task:
        return jsonify({'error': 'Task not found'}), 404
    return jsonify({'task': task.to_dict()})


@tasks_bp.route('', methods=['POST'])
@token_required
@roles_required('admin', 'employee')
def create_task():
    data = request_json()
    title = sanitize_input(data.get('title'), 255)
    client_id = _client_id_param(data)

    if not title:
        return jsonify({'error': 'Task title is required'}), 400
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not db.session.get(Client, client_id):
        return jsonify({'error': 'Client not found'}), 404

    status = data.get('status') or 'todo'
    if status not in TASK_STATUSES:
        return jsonify({'error': 'Invalid status'}), 400

    deadline, error = _parse_deadline(data.get('deadline'))
    if error:
        return jsonify({'error': error}), 400

    parent_id = data.get('parentId') or None
    if parent_id:
        parent = Task.query.filter_by(id=parent_id, client_id=client_id).first()
        if not parent:
            return jsonify({'error': 'Parent task not found or belongs to different client'}), 400

    task = Task(
        title=title,
        status=status,
        deadline=deadline,
        parent_id=parent_id,
        client_id=client_id,
        visible_to_client=bool(data.get('visibleToClient', True)),
    )
    for key, column in TEXT_FIELDS.items():
        setattr(task, column, optional_text(data.get(key), 5000))

    db.session.add(task)
    db.session.commit()
    current_app.logger.info(f"Task created: {task.id} for client {client_id}")
    return jsonify({'task': task.to_dict()}), 201


@tasks_bp.route('/<task_id>', methods=['PUT'])
@token_required
def update_task(task_id):
    data = request_json()
    client_id = _client_id_param(data)
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403

    task = _visible_query(client_id).filter(Task.id == task_id).first()
    if not task:
        return jsonify({'error': 'Task not found'}), 404

    if g.current_user.user_type == 'client':
        if 'clientComments' in data:
            task.client_comments = optional_text(data.get('clientComments'), 5000)
        db.session.commit()
        return jsonify({'task': task.to_dict()})

    if 'status' in data and data['status'] not in TASK_STATUSES:
        return jsonify({'error': 'Invalid status'}), 400

    if 'title' in data:
        title = sanitize_input(data.get('title'), 255)
        if not title:
            return jsonify({'error': 'Task title is required'}), 400
        task.title = title

    if 'deadline' in data:
        deadline, error = _parse_deadline(data.get('deadline'))
        if error:
            return jsonify({'error': error}), 400
        task.deadline = deadline

    if 'parentId' in data:
        parent_id = data.get('parentId') or None
        if parent_id:
            if parent_id == task.id:
                return jsonify({'error': 'A task cannot be its own parent'}), 400
            parent = Task.query.filter_by(id=parent_id, client_id=client_id).first()
            if not parent:
                return jsonify({'error': 'Parent task not found or belongs to different client'}), 400
            if is_descendant(parent, task.id):
                return jsonify({'error': 'A task cannot be moved under its own subtask'}), 400
        task.parent_id = parent_id

    if 'status' in data:
        task.status = data['status']
    if 'visibleToClient' in data:
        task.visible_to_client = bool(data['visibleToClient'])
    for key, column in TEXT_FIELDS.items():
        if key in data:
            setattr(task, column, optional_text(data.get(key), 5000))

    db.session.commit()
    return jsonify({'task': task.to_dict()})


@tasks_bp.route('/<task_id>', methods=['DELETE'])
@token_required
@roles_required('admin', 'employee')
def delete_task(task_id):
    client_id = _client_id_param()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400

    task = Task.query.filter_by(id=task_id, client_id=client_id).first()
    if not task:
        return jsonify({'error': 'Task not found'}), 404

    db.session.delete(task)
    db.session.commit()
    current_app.logger.info(f"Task deleted: {task_id}")
    return jsonify({'message': 'Task deleted successfully'})
