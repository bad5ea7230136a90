"""
Client Model

A tenant of the dashboard. Reports and tasks are always scoped to a client.
"""

from datetime import datetime
from .database import db
from .utils import generate_client_id, isoformat
from ..utils.field_encryption import EncryptedText


class Client(db.Model):
    """Client (tenant) record"""
    __tablename__ = 'clients'

    id = db.Column(db.String(36), primary_key=True, default=generate_client_id)
    name = db.Column(db.String(255), nullable=False, index=True)
    email = db.Column(EncryptedText)
    phone = db.Column(EncryptedText)
    address = db.Column(EncryptedText)
    company = db.Column(EncryptedText)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    tasks = db.relationship('Task', backref='client', lazy=True)
    reports = db.relationship('Report', backref='client', lazy=True, cascade='all, delete-orphan')
    campaigns = db.relationship('Campaign', backref='client', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'company': self.company,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
