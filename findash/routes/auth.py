"""
Authentication Routes

FLOW OVERVIEW
- /api/auth/login [POST]
  • Rate limited; validate credentials → {token, user}.
- /api/auth/register [POST]
  • Rate limited; validate email + password strength → create employee → {token, user}.
- /api/auth/me [GET]
  • Current user.
- /api/auth/check-access [GET]
  • User type and association from the verified token.
- /api/auth/users [GET, POST], /api/auth/users/<id> [DELETE]
  • User administration (list: admin/employee; create/delete: admin).
- /api/auth/users/<id>/association [PUT]
  • Link a user to a client (admin/employee); only admins grant or change admin accounts.
"""

from flask import Blueprint, jsonify, current_app, g
from sqlalchemy.exc import IntegrityError

from ..models import db, User
from ..utils.auth_utils import (
    create_user, authenticate_user, generate_token,
    token_required, roles_required
)
from ..utils.security import log_security_event, rate_limited, request_json
from ..utils.validators import validate_email, validate_password_strength, validate_user_type

auth_bp = Blueprint('auth', __name__)


def credentials(data):
    """(email, password) from a JSON body; anything that is not a string counts as missing"""
    email = data.get('email')
    password = data.get('password')
    return (
        email.strip() if isinstance(email, str) else '',
        password if isinstance(password, str) else '',
    )


@auth_bp.route('/login', methods=['POST'])
@rate_limited
def login():
    """Exchange email and password for a JWT"""
    data = request_json()
    email, password = credentials(data)
    email = email.lower()

    if not email or not password:
        return jsonify({'error': 'Email and password are required'}), 400

    user = authenticate_user(email, password)
    if not user:
        return jsonify({'error': 'Invalid credentials'}), 401

    return jsonify({'token': generate_token(user), 'user': user.to_dict()})


@auth_bp.route('/register', methods=['POST'])
@rate_limited
def register():
    """Self registration; new accounts are employees"""
    data = request_json()
    email, password = credentials(data)

    if not email or not password:
        return jsonify({'error': 'Email and password are required'}), 400

    email_validation = validate_email(email)
    if not email_validation.is_valid:
        return jsonify({'error': email_validation.error_message}), 400

    password_validation = validate_password_strength(password)
    if not password_validation.is_valid:
        return jsonify({'error': password_validation.error_message}), 400

    if User.query.filter_by(email=email_validation.sanitized_value).first():
        return jsonify({'error': 'User already exists'}), 409

    try:
        user = create_user(email_validation.sanitized_value, password, name=data.get('name'))
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'User already exists'}), 409

    current_app.logger.info(f"User registered: id={user.id}")
    return jsonify({
        'message': 'User created successfully',
        'token': generate_token(user),
        'user': user.to_dict()
    }), 201


@auth_bp.route('/me', methods=['GET'])
@token_required
def me():
    user = db.session.get(User, g.current_user.id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'user': user.to_dict()})


@auth_bp.route('/check-access', methods=['GET'])
@token_required
def check_access():
    user = g.current_user
    return jsonify({
        'hasAccess': True,
        'type': user.user_type,
        'user_type': user.user_type,
        'association': user.association,
        'message': 'Access granted'
    })


@auth_bp.route('/users', methods=['GET'])
@token_required
@roles_required('admin', 'employee')
def list_users():
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify([user.to_dict() for user in users])


@auth_bp.route('/users', methods=['POST'])
@token_required
@roles_required('admin')
def create_user_account():
    """Admin creates an account; the plain password is echoed once for hand-off"""
    data = request_json()
    email, password = credentials(data)

    if not email or not password:
        return jsonify({'error': 'Email and password are required'}), 400

    user_type = data.get('user_type') or 'employee'
    type_validation = validate_user_type(user_type)
    if not type_validation.is_valid:
        return jsonify({'error': type_validation.error_message}), 400

    email_validation = validate_email(email)
    if not email_validation.is_valid:
        return jsonify({'error': email_validation.error_message}), 400

    password_validation = validate_password_strength(password)
    if not password_validation.is_valid:
        return jsonify({'error': password_validation.error_message}), 400

    if User.query.filter_by(email=email_validation.sanitized_value).first():
        return jsonify({'error': 'User with this email already exists'}), 409

    user = create_user(
        email_validation.sanitized_value,
        password,
        name=data.get('name'),
        user_type=user_type,
        association=data.get('association') or None,
    )
    current_app.logger.info(f"User {user.id} created by admin {g.current_user.id}")

    return jsonify({
        'message': 'User created successfully',
        'user': user.to_dict(),
        'credentials': {'email': user.email, 'password': password}
    }), 201


@auth_bp.route('/users/<int:user_id>', methods=['DELETE'])
@token_required
@roles_required('admin')
def delete_user(user_id):
    if g.current_user.id == user_id:
        return jsonify({'error': 'Cannot delete your own account'}), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    db.session.delete(user)
    db.session.commit()
    current_app.logger.info(f"User {user_id} deleted by admin {g.current_user.id}")
    return jsonify({'message': 'User deleted successfully'})


@auth_bp.route('/users/<int:user_id>/association', methods=['PUT'])
@token_required
@roles_required('admin', 'employee')
def update_association(user_id):
    """Set a user's client association (and type, default client)"""
    data = request_json()
    user_type = data.get('user_type') or 'client'
    type_validation = validate_user_type(user_type)
    if not type_validation.is_valid:
        return jsonify({'error': type_validation.error_message}), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    # only admins grant or change admin accounts
    if not g.current_user.is_admin() and (user_type == 'admin' or user.is_admin()):
        log_security_event('PRIVILEGE_DENIED', user_id=g.current_user.id, target_user=user_id)
        return jsonify({'error': 'Insufficient permissions'}), 403

    user.association = data.get('association') or None
    user.user_type = user_type
    db.session.commit()

    return jsonify({
        'message': 'User association updated successfully',
        'user': user.to_dict()
    })
