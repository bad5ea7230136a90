"""
Client Routes

FLOW OVERVIEW
- /api/clients [GET, POST]
  • List (client users only see their own association) / create (staff).
- /api/clients/<id> [GET, PUT, DELETE]
  • Fetch / partial update (staff) / delete (staff; refused while tasks exist).
- /api/clients/<id>/stats [GET]
  • Root task status counts, overdue root tasks, report count.
"""

from flask import Blueprint, jsonify, current_app, g

from ..models import db, Client, Task, Report, User
from ..utils.auth_utils import token_required, roles_required, client_scope_allowed
from ..utils.security import request_json
from ..utils.validators import sanitize_input, optional_text
from .tasks import task_status_summary

clients_bp = Blueprint('clients', __name__)

CONTACT_FIELDS = ('email', 'phone', 'address', 'company')


@clients_bp.route('', methods=['GET'])
@token_required
def list_clients():
    query = Client.query.order_by(Client.name.asc())
    if g.current_user.user_type == 'client':
        query = query.filter(Client.id == g.current_user.association)
    return jsonify({'clients': [client.to_dict() for client in query.all()]})


@clients_bp.route('/<client_id>', methods=['GET'])
@token_required
def get_client(client_id):
    client = db.session.get(Client, client_id)
    if not client or not client_scope_allowed(client_id):
        return jsonify({'error': 'Client not found'}), 404
    return jsonify({'client': client.to_dict()})


@clients_bp.route('', methods=['POST'])
@token_required
@roles_required('admin', 'employee')
def create_client():
    data = request_json()
    name = sanitize_input(data.get('name'), 255)
    if not name:
        return jsonify({'error': 'Client name is required'}), 400

    client = Client(name=name)
    for field in CONTACT_FIELDS:
        setattr(client, field, optional_text(data.get(field), 255))

    db.session.add(client)
    db.session.commit()
    current_app.logger.info(f"Client created: {client.id}")
    return jsonify({'client': client.to_dict()}), 201


@clients_bp.route('/<client_id>', methods=['PUT'])
@token_required
@roles_required('admin', 'employee')
def update_client(client_id):
    """Partial update; blank values keep the stored value"""
    client = db.session.get(Client, client_id)
    if not client:
        return jsonify({'error': 'Client not found'}), 404

    data = request_json()
    name = sanitize_input(data.get('name'), 255)
    if name:
        client.name = name
    for field in CONTACT_FIELDS:
        value = optional_text(data.get(field), 255)
        if value:
            setattr(client, field, value)

    db.session.commit()
    return jsonify({'client': client.to_dict()})


@clients_bp.route('/<client_id>', methods=['DELETE'])
@token_required
@roles_required('admin', 'employee')
def delete_client(client_id):
    client = db.session.get(Client, client_id)
    if not client:
        return jsonify({'error': 'Client not found'}), 404

    task_count = Task.query.filter_by(client_id=client_id).count()
    if task_count > 0:
        return jsonify({
            'error': f'Cannot delete client with {task_count} associated tasks. '
                     f'Please delete or reassign tasks first.'
        }), 400

    User.query.filter_by(association=client_id).update({'association': None})
    db.session.delete(client)
    db.session.commit()
    current_app.logger.info(f"Client deleted: {client_id}")
    return jsonify({'message': 'Client deleted successfully'})


@clients_bp.route('/<client_id>/stats', methods=['GET'])
@token_required
def client_stats(client_id):
    client = db.session.get(Client, client_id)
    if not client or not client_scope_allowed(client_id):
        return jsonify({'error': 'Client not found'}), 404

    stats = task_status_summary(client_id)
    stats['reportCount'] = Report.query.filter_by(client_id=client_id).count()
    return jsonify({'client': client.to_dict(), 'stats': stats})
