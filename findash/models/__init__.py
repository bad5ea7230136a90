"""
Database Models Package

FLOW OVERVIEW
- Centralizes SQLAlchemy DB instance and model imports for convenient usage.
- Exposes: db, User, Client, Task, Report, ColumnRegistry, Campaign,
  Notification.
"""

from .database import db
from .user import User, USER_TYPES
from .client import Client
from .task import Task, TASK_STATUSES
from .report import Report, METRIC_FIELDS, APPLICANT_FIELDS
from .column_registry import ColumnRegistry
from .campaign import Campaign, CAMPAIGN_STATUSES
from .notification import Notification, NOTIFICATION_TYPES

__all__ = [
    'db',
    'User',
    'USER_TYPES',
    'Client',
    'Task',
    'TASK_STATUSES',
    'Report',
    'METRIC_FIELDS',
    'APPLICANT_FIELDS',
    'ColumnRegistry',
    'Campaign',
    'CAMPAIGN_STATUSES',
    'Notification',
    'NOTIFICATION_TYPES'
]
