"""
Campaign Routes

FLOW OVERVIEW
- /api/campaigns [GET]
  • clientId required; the client's campaigns, newest first.
- /api/campaigns/<id> [GET]
  • Single campaign of the client.
- /api/campaigns [POST]
  • Staff create; the brief and the account manager are required. A manager
    who is a dashboard user gets a campaign_assignment notification.
- /api/campaigns/<id> [PUT, DELETE]
  • Staff partial update (blank values keep what is stored) / delete.
- /api/campaigns/<id>/validate [POST]
  • Staff; score the campaign and store the suggestions.

Client users may read their own client's campaigns.
"""

from flask import Blueprint, jsonify, request, current_app, g

from ..models import db, Campaign, Client, CAMPAIGN_STATUSES
from ..models.utils import to_number
from ..services.campaign_review import review_campaign
from ..services.notification_service import notify_campaign_assignment
from ..utils.auth_utils import token_required, roles_required, client_scope_allowed
from ..utils.security import request_json
from ..utils.validators import sanitize_input

campaigns_bp = Blueprint('campaigns', __name__)

REQUIRED_FIELDS = ('name', 'type', 'budget', 'product', 'objective', 'narrative',
                   'concept', 'tagline', 'managerId', 'managerName', 'clientId')

# JSON key → (column, kind)
FIELDS = {
    'name': ('name', 'line'),
    'type': ('campaign_type', 'line'),
    'budget': ('budget', 'amount'),
    'product': ('product', 'line'),
    'objective': ('objective', 'text'),
    'narrative': ('narrative', 'text'),
    'concept': ('concept', 'text'),
    'tagline': ('tagline', 'line'),
    'heroArtworkPath': ('hero_artwork_path', 'line'),
    'managerId': ('manager_id', 'line'),
    'managerName': ('manager_name', 'line'),
    'activities': ('activities', 'list'),
    'requiresInternalApproval': ('requires_internal_approval', 'flag'),
    'requiresClientApproval': ('requires_client_approval', 'flag'),
    'aiValidated': ('ai_validated', 'flag'),
    'aiScore': ('ai_score', 'count'),
    'aiSuggestions': ('ai_suggestions', 'list'),
    'countries': ('countries', 'list'),
    'platforms': ('platforms', 'list'),
    'duration': ('duration', 'count'),
    'estimatedReach': ('estimated_reach', 'count'),
    'estimatedImpressions': ('estimated_impressions', 'count'),
    'estimatedClicks': ('estimated_clicks', 'count'),
    'estimatedCtr': ('estimated_ctr', 'ratio'),
    'campaignData': ('campaign_data', 'object'),
}


def is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def convert_field(key, kind, value):
    """(stored value, error message or None) for one JSON field"""
    if kind == 'line':
        return sanitize_input(value, 255), None
    if kind == 'text':
        return sanitize_input(value, 5000), None
    if kind == 'flag':
        return bool(value), None
    if kind == 'list':
        if not isinstance(value, list):
            return None, f'{key} must be a list'
        return value, None
    if kind == 'object':
        if not isinstance(value, dict):
            return None, f'{key} must be an object'
        return value, None

    number = to_number(value)
    if kind == 'amount':
        if number <= 0:
            return None, 'Budget must be a positive number'
        return float(number), None
    if kind == 'ratio':
        return float(number), None
    if number < 0:
        return None, f'{key} cannot be negative'
    return int(number), None


def campaign_values(data):
    """(column → value for every non-blank field in `data`, error message or None)"""
    values = {}
    for key, (column, kind) in FIELDS.items():
        value = data.get(key)
        if is_blank(value):
            continue
        converted, error = convert_field(key, kind, value)
        if error:
            return None, error
        values[column] = converted

    status = data.get('status')
    if not is_blank(status):
        if status not in CAMPAIGN_STATUSES:
            return None, f"Invalid status. Must be one of: {', '.join(CAMPAIGN_STATUSES)}"
        values['status'] = status
    return values, None


def _client_id(data=None):
    client_id = (data or {}).get('clientId') or request.args.get('clientId')
    return client_id.strip() if isinstance(client_id, str) else client_id


def _find_campaign(campaign_id, client_id):
    return Campaign.query.filter_by(id=campaign_id, client_id=client_id).first()


@campaigns_bp.route('', methods=['GET'])
@token_required
def list_campaigns():
    client_id = _client_id()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403

    campaigns = (Campaign.query.filter_by(client_id=client_id)
                 .order_by(Campaign.created_at.desc(), Campaign.id.desc()).all())
    return jsonify({'campaigns': [campaign.to_dict() for campaign in campaigns]})


@campaigns_bp.route('/<int:campaign_id>', methods=['GET'])
@token_required
def get_campaign(campaign_id):
    client_id = _client_id()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403

    campaign = _find_campaign(campaign_id, client_id)
    if not campaign:
        return jsonify({'error': 'Campaign not found'}), 404
    return jsonify(campaign.to_dict())


@campaigns_bp.route('', methods=['POST'])
@token_required
@roles_required('admin', 'employee')
def create_campaign():
    data = request_json()
    missing = [key for key in REQUIRED_FIELDS if is_blank(data.get(key))]
    if missing:
        return jsonify({'error': f"Missing required fields: {', '.join(missing)}"}), 400

    client_id = _client_id(data)
    if not db.session.get(Client, client_id):
        return jsonify({'error': 'Client not found'}), 404

    values, error = campaign_values(data)
    if error:
        return jsonify({'error': error}), 400
    values.setdefault('status', 'active')

    campaign = Campaign(client_id=client_id, **values)
    db.session.add(campaign)
    db.session.flush()
    notify_campaign_assignment(campaign, g.current_user.id)
    db.session.commit()

    current_app.logger.info(f"Campaign created: {campaign.id} for client {client_id}")
    return jsonify({'message': 'Campaign created successfully', 'campaign': campaign.to_dict()}), 201


@campaigns_bp.route('/<int:campaign_id>', methods=['PUT'])
@token_required
@roles_required('admin', 'employee')
def update_campaign(campaign_id):
    data = request_json()
    client_id = _client_id(data)
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400

    campaign = _find_campaign(campaign_id, client_id)
    if not campaign:
        return jsonify({'error': 'Campaign not found'}), 404

    values, error = campaign_values(data)
    if error:
        return jsonify({'error': error}), 400

    previous_manager = campaign.manager_id
    for column, value in values.items():
        setattr(campaign, column, value)
    if campaign.manager_id != previous_manager:
        notify_campaign_assignment(campaign, g.current_user.id)

    db.session.commit()
    return jsonify({'message': 'Campaign updated successfully', 'campaign': campaign.to_dict()})


@campaigns_bp.route('/<int:campaign_id>', methods=['DELETE'])
@token_required
@roles_required('admin', 'employee')
def delete_campaign(campaign_id):
    client_id = _client_id()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400

    campaign = _find_campaign(campaign_id, client_id)
    if not campaign:
        return jsonify({'error': 'Campaign not found'}), 404

    db.session.delete(campaign)
    db.session.commit()
    current_app.logger.info(f"Campaign deleted: {campaign_id}")
    return jsonify({'message': 'Campaign deleted successfully'})


@campaigns_bp.route('/<int:campaign_id>/validate', methods=['POST'])
@token_required
@roles_required('admin', 'employee')
def validate_campaign(campaign_id):
    client_id = _client_id(request_json())
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400

    campaign = _find_campaign(campaign_id, client_id)
    if not campaign:
        return jsonify({'error': 'Campaign not found'}), 404

    score, suggestions = review_campaign(campaign)
    campaign.ai_validated = True
    campaign.ai_score = score
    campaign.ai_suggestions = suggestions
    db.session.commit()

    return jsonify({
        'message': 'Campaign validated successfully',
        'aiScore': score,
        'aiSuggestions': suggestions,
    })
