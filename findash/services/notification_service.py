"""
Notification Service

FLOW OVERVIEW
- create_notification(user_id, title, message, ...)
  • Add a notification to the session; the caller commits.
- notify_campaign_assignment(campaign, assigned_by)
  • Tell the campaign's account manager about the assignment. Managers that
    are not dashboard users (free text ids) are skipped.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..models import db, Notification, User

logger = logging.getLogger(__name__)


def create_notification(user_id: int, title: str, message: str, notification_type: str = 'info',
                        action_url: Optional[str] = None,
                        details: Optional[Dict[str, Any]] = None) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        action_url=action_url,
        details=details,
    )
    db.session.add(notification)
    logger.info(f"Notification queued for user {user_id}: {notification_type}")
    return notification


def notify_campaign_assignment(campaign, assigned_by: int) -> Optional[Notification]:
    """Notification for the account manager of `campaign`, or None when they are not a user"""
    manager_id = str(campaign.manager_id or '').strip()
    if not manager_id.isdigit():
        return None

    manager = db.session.get(User, int(manager_id))
    if manager is None:
        logger.info(f"Campaign {campaign.id}: manager {manager_id} is not a user, no notification")
        return None

    return create_notification(
        manager.id,
        'New Campaign Assignment',
        f'You have been assigned as Account Manager for "{campaign.name}"',
        notification_type='campaign_assignment',
        action_url=f'/campaigns/{campaign.id}',
        details={
            'campaignId': campaign.id,
            'campaignName': campaign.name,
            'assignedBy': assigned_by,
            'assignedAt': datetime.utcnow().isoformat(),
        },
    )
