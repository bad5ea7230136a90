"""
Task Model

Client work items. A task may have subtasks (one level in practice, but the
relation is recursive); deleting a task deletes its subtasks.
"""

from datetime import datetime, date
from .database import db
from .utils import generate_task_id, isoformat
from ..utils.field_encryption import EncryptedText

TASK_STATUSES = ('todo', 'in-progress', 'pending', 'completed')


class Task(db.Model):
    """Task belonging to a client"""
    __tablename__ = 'tasks'

    id = db.Column(db.String(36), primary_key=True, default=generate_task_id)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default='todo')
    assignee = db.Column(db.String(255))
    deadline = db.Column(db.Date)
    client_comments = db.Column(EncryptedText)
    team_comments = db.Column(db.Text)
    link = db.Column(db.String(1024))
    parent_id = db.Column(db.String(36), db.ForeignKey('tasks.id', ondelete='CASCADE'), index=True)
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id'), nullable=False, index=True)
    visible_to_client = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subtasks = db.relationship(
        'Task',
        backref=db.backref('parent', remote_side=[id]),
        cascade='all, delete-orphan',
        lazy=True,
    )

    def is_overdue(self, today=None):
        today = today or date.today()
        return self.deadline is not None and self.deadline < today and self.status != 'completed'

    def to_dict(self, include_subtasks=False):
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'assignee': self.assignee,
            'deadline': isoformat(self.deadline),
            'clientComments': self.client_comments,
            'teamComments': self.team_comments,
            'link': self.link,
            'parentId': self.parent_id,
            'clientId': self.client_id,
            'visibleToClient': bool(self.visible_to_client),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if include_subtasks:
            data['subtasks'] = []
        return data
