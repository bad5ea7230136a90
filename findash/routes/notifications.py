"""
Notification Routes

FLOW OVERVIEW
- /api/notifications [GET]
  • The caller's notifications, newest first; unreadOnly, limit, offset.
- /api/notifications/unread-count [GET]
- /api/notifications/<id>/read [PUT], /api/notifications/mark-all-read [PUT]
- /api/notifications/<id> [DELETE]
- /api/notifications [POST]
  • Staff send a notification to any user (system messages, testing).

Every user only reads and changes their own notifications.
"""

from flask import Blueprint, jsonify, request, g

from ..models import db, Notification, User, NOTIFICATION_TYPES
from ..services.notification_service import create_notification
from ..utils.auth_utils import token_required, roles_required
from ..utils.security import request_json
from ..utils.validators import sanitize_input, optional_text

notifications_bp = Blueprint('notifications', __name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _int_arg(name, default):
    try:
        return max(0, int(request.args.get(name, default)))
    except (TypeError, ValueError):
        return default


def _own_notifications():
    return Notification.query.filter_by(user_id=g.current_user.id)


@notifications_bp.route('', methods=['GET'])
@token_required
def list_notifications():
    query = _own_notifications()
    if request.args.get('unreadOnly') == 'true':
        query = query.filter(Notification.read_status.is_(False))

    limit = min(_int_arg('limit', DEFAULT_LIMIT), MAX_LIMIT)
    offset = _int_arg('offset', 0)
    notifications = (query.order_by(Notification.created_at.desc(), Notification.id.desc())
                     .offset(offset).limit(limit).all())
    return jsonify({
        'success': True,
        'data': [notification.to_dict() for notification in notifications],
        'total': len(notifications),
    })


@notifications_bp.route('/unread-count', methods=['GET'])
@token_required
def unread_count():
    count = _own_notifications().filter(Notification.read_status.is_(False)).count()
    return jsonify({'success': True, 'count': count})


@notifications_bp.route('/<int:notification_id>/read', methods=['PUT'])
@token_required
def mark_read(notification_id):
    notification = _own_notifications().filter(Notification.id == notification_id).first()
    if not notification:
        return jsonify({'success': False, 'error': 'Notification not found'}), 404

    notification.read_status = True
    db.session.commit()
    return jsonify({'success': True, 'message': 'Notification marked as read'})


@notifications_bp.route('/mark-all-read', methods=['PUT'])
@token_required
def mark_all_read():
    updated = (_own_notifications().filter(Notification.read_status.is_(False))
               .update({'read_status': True}, synchronize_session=False))
    db.session.commit()
    return jsonify({'success': True, 'message': 'All notifications marked as read', 'updated': updated})


@notifications_bp.route('/<int:notification_id>', methods=['DELETE'])
@token_required
def delete_notification(notification_id):
    notification = _own_notifications().filter(Notification.id == notification_id).first()
    if not notification:
        return jsonify({'success': False, 'error': 'Notification not found'}), 404

    db.session.delete(notification)
    db.session.commit()
    return jsonify({'success': True, 'message': 'Notification deleted'})


@notifications_bp.route('', methods=['POST'])
@token_required
@roles_required('admin', 'employee')
def send_notification():
    data = request_json()
    user_id = data.get('userId')
    title = sanitize_input(data.get('title'), 255)
    message = sanitize_input(data.get('message'), 5000)

    if not user_id or not title or not message:
        return jsonify({'error': 'User ID, title, and message are required'}), 400

    notification_type = data.get('type') or 'info'
    if notification_type not in NOTIFICATION_TYPES:
        return jsonify({'error': f"Invalid type. Must be one of: {', '.join(NOTIFICATION_TYPES)}"}), 400

    details = data.get('metadata')
    if details is not None and not isinstance(details, dict):
        return jsonify({'error': 'metadata must be an object'}), 400

    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        user = None
    if not user:
        return jsonify({'error': 'User not found'}), 404

    notification = create_notification(
        user.id, title, message,
        notification_type=notification_type,
        action_url=optional_text(data.get('actionUrl'), 1024),
        details=details,
    )
    db.session.commit()
    return jsonify({
        'success': True,
        'id': notification.id,
        'message': 'Notification created successfully',
    }), 201
