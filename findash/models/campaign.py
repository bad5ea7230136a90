"""
Campaign Model

A marketing campaign planned for a client: the creative brief, the account
manager, selected activities and channels, reach estimates and the result of
the last validation pass.
"""

from datetime import datetime
from .database import db
from .utils import isoformat

CAMPAIGN_STATUSES = ('draft', 'active', 'paused', 'completed')


class Campaign(db.Model):
    """Campaign belonging to a client"""
    __tablename__ = 'campaigns'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.String(36), db.ForeignKey('clients.id'), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    campaign_type = db.Column('type', db.String(100), nullable=False)
    budget = db.Column(db.Float, nullable=False)
    product = db.Column(db.String(255), nullable=False)
    objective = db.Column(db.Text, nullable=False)
    narrative = db.Column(db.Text, nullable=False)
    concept = db.Column(db.Text, nullable=False)
    tagline = db.Column(db.String(255), nullable=False)
    hero_artwork_path = db.Column(db.String(1024))
    manager_id = db.Column(db.String(64), nullable=False)
    manager_name = db.Column(db.String(255), nullable=False)
    activities = db.Column(db.JSON, default=list)
    requires_internal_approval = db.Column(db.Boolean, nullable=False, default=False)
    requires_client_approval = db.Column(db.Boolean, nullable=False, default=False)
    ai_validated = db.Column(db.Boolean, nullable=False, default=False)
    ai_score = db.Column(db.Integer)
    ai_suggestions = db.Column(db.JSON, default=list)
    status = db.Column(db.String(20), nullable=False, default='draft')

    # setup details
    countries = db.Column(db.JSON, default=list)
    platforms = db.Column(db.JSON, default=list)
    duration = db.Column(db.Integer)
    estimated_reach = db.Column(db.Integer)
    estimated_impressions = db.Column(db.Integer)
    estimated_clicks = db.Column(db.Integer)
    estimated_ctr = db.Column(db.Float)
    campaign_data = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('draft', 'active', 'paused', 'completed')",
            name='check_campaign_status'
        ),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'client_id': self.client_id,
            'name': self.name,
            'type': self.campaign_type,
            'budget': self.budget,
            'product': self.product,
            'objective': self.objective,
            'narrative': self.narrative,
            'concept': self.concept,
            'tagline': self.tagline,
            'hero_artwork_path': self.hero_artwork_path,
            'manager_id': self.manager_id,
            'manager_name': self.manager_name,
            'activities': self.activities or [],
            'requires_internal_approval': bool(self.requires_internal_approval),
            'requires_client_approval': bool(self.requires_client_approval),
            'ai_validated': bool(self.ai_validated),
            'ai_score': self.ai_score,
            'ai_suggestions': self.ai_suggestions or [],
            'status': self.status,
            'countries': self.countries or [],
            'platforms': self.platforms or [],
            'duration': self.duration,
            'estimated_reach': self.estimated_reach,
            'estimated_impressions': self.estimated_impressions,
            'estimated_clicks': self.estimated_clicks,
            'estimated_ctr': self.estimated_ctr,
            'campaign_data': self.campaign_data,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
