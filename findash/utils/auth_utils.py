"""
Authentication Utilities

FLOW OVERVIEW
- create_user / authenticate_user
  • bcrypt-hashed passwords through the shared EncryptionService.
- generate_token(user) / decode_token(token)
  • HS256 JWT (PyJWT) carrying user_id, email, name, user_type, association.
- token_required
  • Bearer token from the Authorization header → g.current_user, else 401.
- roles_required(*roles)
  • 403 unless g.current_user.user_type is one of `roles`.
- client_scope_allowed(client_id) / scoped_client_id(client_id)
  • Client users may only touch their own association.
"""

from datetime import datetime, timedelta
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request

from ..models import db, User
from .encryption import encryption_service


def hash_password(password):
    """Hash a password with bcrypt"""
    return encryption_service.hash_password(password)


def verify_password(password, password_hash):
    """Verify a password against its bcrypt hash"""
    return encryption_service.verify_password(password, password_hash)


def create_user(email, password, name=None, user_type='employee', association=None):
    """Create and commit a new user"""
    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        user_type=user_type,
        association=association,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate_user(email, password):
    """Return the user for valid credentials, otherwise None"""
    if not email or not password:
        return None
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user and verify_password(password, user.password_hash):
        return user
    return None


def generate_token(user):
    """Sign a JWT for `user`"""
    payload = {
        'user_id': user.id,
        'email': user.email,
        'name': user.name,
        'user_type': user.user_type,
        'association': user.association,
        'exp': datetime.utcnow() + timedelta(days=current_app.config.get('JWT_EXPIRES_DAYS', 7)),
        'iat': datetime.utcnow(),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm='HS256')


def decode_token(token):
    """Return the token claims; raises jwt.InvalidTokenError on bad or expired tokens"""
    return jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=['HS256'])


def get_bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[len('Bearer '):].strip() or None
    return None


def token_required(f):
    """Decorator to require a valid bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            return jsonify({'error': 'Access token required'}), 401

        try:
            claims = decode_token(token)
        except jwt.ExpiredSignatureError:
            return jsonify({'error': 'Token has expired'}), 401
        except jwt.InvalidTokenError:
            return jsonify({'error': 'Invalid token'}), 401

        user = db.session.get(User, claims.get('user_id'))
        if user is None:
            return jsonify({'error': 'Invalid token'}), 401

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def roles_required(*roles):
    """Decorator restricting an endpoint to the given user types; use under token_required"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = g.get('current_user')
            if user is None or user.user_type not in roles:
                return jsonify({'error': 'Insufficient permissions'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def client_scope_allowed(client_id):
    """Staff see every client; client users only their own association"""
    user = g.get('current_user')
    if user is None:
        return False
    if user.user_type == 'client':
        return bool(client_id) and user.association == client_id
    return True


def scoped_client_id(client_id=None):
    """Client filter for optional-clientId endpoints; client users are pinned to their association"""
    user = g.get('current_user')
    if user is not None and user.user_type == 'client':
        return user.association or ''
    return client_id or None
