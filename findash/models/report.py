"""
Report Model

One row of daily finance metrics per client and date. Known metrics are real
columns; anything else submitted by the frontend lands in `extra_data`.
"""

from datetime import datetime
from .database import db
from .utils import generate_report_id, isoformat, to_number

METRIC_FIELDS = (
    'registered_onboarded',
    'linked_accounts',
    'total_advance_applications',
    'total_advance_applicants',
    'total_micro_financing_applications',
    'total_micro_financing_applicants',
    'total_personal_finance_application',
    'total_personal_finance_applicants',
    'total_bnpl_applications',
    'total_bnpl_applicants',
)

# Summed into "new applicants" by the monthly rollup
APPLICANT_FIELDS = (
    'total_advance_applicants',
    'total_micro_financing_applicants',
    'total_personal_finance_applicants',
)


class Report(db.Model):
    """Daily metrics for a client"""
    __tablename__ = 'reports'

    id = db.Column(db.String(32), primary_key=True, default=generate_report_id)
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id'), nullable=False, index=True)
    report_date = db.Column(db.Date, nullable=False, index=True)
    month_label = db.Column(db.String(50))
    registered_onboarded = db.Column(db.Integer, default=0)
    linked_accounts = db.Column(db.Integer, default=0)
    total_advance_applications = db.Column(db.Integer, default=0)
    total_advance_applicants = db.Column(db.Integer, default=0)
    total_micro_financing_applications = db.Column(db.Integer, default=0)
    total_micro_financing_applicants = db.Column(db.Integer, default=0)
    total_personal_finance_application = db.Column(db.Integer, default=0)
    total_personal_finance_applicants = db.Column(db.Integer, default=0)
    total_bnpl_applications = db.Column(db.Integer, default=0)
    total_bnpl_applicants = db.Column(db.Integer, default=0)
    extra_data = db.Column(db.JSON, default=dict)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('client_id', 'report_date', name='unique_client_report_date'),
    )

    def metric(self, key):
        """Numeric value of a metric column or extra_data key; absent or non-numeric is 0"""
        if key in METRIC_FIELDS:
            return getattr(self, key) or 0
        return to_number((self.extra_data or {}).get(key))

    def value(self, key, default=''):
        """Stored value for any registry key (column, notes or extra_data)"""
        if key in METRIC_FIELDS:
            value = getattr(self, key)
        elif key == 'notes':
            value = self.notes
        else:
            value = (self.extra_data or {}).get(key)
        return default if value is None else value

    def apply_data(self, data):
        """Assign metric columns and merge unknown keys into extra_data"""
        extra = dict(self.extra_data or {})
        for key, value in data.items():
            if key in METRIC_FIELDS:
                setattr(self, key, value)
            elif key == 'notes':
                self.notes = value
            else:
                extra[key] = value
        self.extra_data = extra

    def to_dict(self):
        data = {
            'id': self.id,
            'client_id': self.client_id,
            'report_date': isoformat(self.report_date),
            'month_label': self.month_label,
        }
        for key in METRIC_FIELDS:
            data[key] = getattr(self, key) or 0
        data['data'] = dict(self.extra_data or {})
        data['notes'] = self.notes
        data['created_at'] = isoformat(self.created_at)
        data['updated_at'] = isoformat(self.updated_at)
        return data
