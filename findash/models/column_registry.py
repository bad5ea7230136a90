"""
Column Registry Model

Every data key ever submitted for a report is recorded here so the frontend
table and the CSV export know which columns exist and in which order.
"""

from datetime import datetime
from .database import db
from .utils import column_label


class ColumnRegistry(db.Model):
    """Known report column"""
    __tablename__ = 'columns_registry'

    key = db.Column(db.String(100), primary_key=True)
    label = db.Column(db.String(255), nullable=False)
    first_seen_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_seen_at = db.Column(db.DateTime, default=datetime.utcnow)
    display_order = db.Column(db.Integer, index=True)

    @classmethod
    def ordered(cls):
        """Columns ordered by display_order (nulls last), then key"""
        return cls.query.order_by(
            cls.display_order.is_(None), cls.display_order, cls.key
        ).all()

    @classmethod
    def touch(cls, keys):
        """Register new keys and refresh last_seen_at on known ones; returns the new keys. Caller commits."""
        now = datetime.utcnow()
        added = []
        for key in dict.fromkeys(keys):
            entry = db.session.get(cls, key)
            if entry is None:
                db.session.add(cls(key=key, label=column_label(key), first_seen_at=now, last_seen_at=now))
                added.append(key)
            else:
                entry.last_seen_at = now
        return added

    def to_dict(self):
        return {
            'key': self.key,
            'label': self.label,
            'display_order': self.display_order,
        }
