"""
Notification Model

In-app messages for one user. Deleting a user deletes their notifications.
"""

from datetime import datetime
from .database import db
from .utils import isoformat

NOTIFICATION_TYPES = (
    'info',
    'campaign_assignment',
    'task_assignment',
    'approval_request',
    'status_update',
    'system',
)


class Notification(db.Model):
    """Notification addressed to a user"""
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    notification_type = db.Column('type', db.String(50), nullable=False, default='info')
    read_status = db.Column(db.Boolean, nullable=False, default=False, index=True)
    action_url = db.Column(db.String(1024))
    # `metadata` is reserved on declarative models
    details = db.Column('metadata', db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship(
        'User',
        backref=db.backref('notifications', cascade='all, delete-orphan', lazy=True),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'message': self.message,
            'type': self.notification_type,
            'read_status': bool(self.read_status),
            'action_url': self.action_url,
            'metadata': self.details,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
