"""
Routes Package

This package contains all Flask route blueprints.
"""

from .auth import auth_bp
from .clients import clients_bp
from .tasks import tasks_bp
from .reports import reports_bp
from .columns import columns_bp
from .notes import notes_bp
from .export import export_bp
from .imports import imports_bp
from .analytics import analytics_bp
from .marketing import marketing_bp
from .campaigns import campaigns_bp
from .notifications import notifications_bp
from .main import main_bp

# (blueprint, url_prefix)
BLUEPRINTS = [
    (auth_bp, '/api/auth'),
    (clients_bp, '/api/clients'),
    (tasks_bp, '/api/tasks'),
    (reports_bp, '/api/reports'),
    (columns_bp, '/api/columns'),
    (notes_bp, '/api/notes'),
    (export_bp, '/api/export'),
    (imports_bp, '/api'),
    (analytics_bp, '/api/analytics'),
    (marketing_bp, '/api/marketing-analysis'),
    (campaigns_bp, '/api/campaigns'),
    (notifications_bp, '/api/notifications'),
    (main_bp, '/api'),
]

__all__ = [
    'auth_bp',
    'clients_bp',
    'tasks_bp',
    'reports_bp',
    'columns_bp',
    'notes_bp',
    'export_bp',
    'imports_bp',
    'analytics_bp',
    'marketing_bp',
    'campaigns_bp',
    'notifications_bp',
    'main_bp',
    'BLUEPRINTS'
]
