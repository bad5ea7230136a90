"""
User Model

Dashboard accounts. `user_type` drives authorization: admins manage users,
employees manage client data, client users only see their own association.
"""

from datetime import datetime
from .database import db
from .utils import isoformat
from ..utils.field_encryption import EncryptedText

USER_TYPES = ('admin', 'employee', 'client')


class User(db.Model):
    """Dashboard user"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(EncryptedText, nullable=False)
    user_type = db.Column(db.String(20), nullable=False, default='employee')
    association = db.Column(db.String(36))  # client id for client users
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("user_type IN ('admin', 'employee', 'client')", name='ck_users_user_type'),
    )

    def __init__(self, email, password_hash, name=None, user_type='employee', association=None):
        """Initialize a new user; email is normalized to lower case"""
        from ..utils.validators import validate_email

        email_validation = validate_email(email)
        if not email_validation.is_valid:
            raise ValueError(email_validation.error_message)
        if user_type not in USER_TYPES:
            raise ValueError(f"Invalid user type: {user_type}")

        self.email = email_validation.sanitized_value
        self.password_hash = password_hash
        self.name = name or self.email.split('@')[0]
        self.user_type = user_type
        self.association = association

    def is_admin(self):
        return self.user_type == 'admin'

    def is_staff(self):
        """Admins and employees"""
        return self.user_type in ('admin', 'employee')

    def to_dict(self):
        """Public representation; never includes the password hash"""
        return {
            '_id': self.id,
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'user_type': self.user_type,
            'association': self.association,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
