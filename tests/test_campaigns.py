"""
Tests for /api/campaigns and the campaign review rules.
"""

import pytest

from findash.models import Campaign, Client, Notification
from findash.services.campaign_review import COMPLETE_NOTES, MIN_SCORE, review_campaign


def brief(client_id, **overrides):
    body = {
        'name': 'Spring Savings',
        'type': 'awareness',
        'budget': '2,500.50',
        'product': 'Micro loans',
        'objective': 'Grow micro financing applicants',
        'narrative': 'Small businesses get working capital in a day, without the paperwork.',
        'concept': 'Fast cash',
        'tagline': 'Money in minutes',
        'managerId': 'agency-17',
        'managerName': 'Maria Lopez',
        'clientId': client_id,
    }
    body.update(overrides)
    return body


@pytest.fixture
def campaign(db_session, sample_client):
    """An active campaign with a thin brief."""
    record = Campaign(client_id=sample_client.id, name='Winter Push', campaign_type='performance',
                      budget=1000.0, product='Advance', objective='Installs', narrative='Short',
                      concept='Push', tagline='Go', manager_id='agency-1', manager_name='Sam Reid',
                      status='active')
    db_session.add(record)
    db_session.commit()
    return record


class TestCreateCampaign:
    """POST /api/campaigns"""

    def test_create(self, client, employee_headers, sample_client):
        response = client.post('/api/campaigns', headers=employee_headers, json=brief(
            sample_client.id, activities=['social', 'search'], countries=['US'], estimatedCtr='0.035'
        ))

        assert response.status_code == 201
        campaign = response.get_json()['campaign']
        assert campaign['type'] == 'awareness'
        assert campaign['budget'] == 2500.5
        assert campaign['status'] == 'active'
        assert campaign['activities'] == ['social', 'search']
        assert campaign['estimated_ctr'] == 0.035
        assert campaign['ai_validated'] is False
        assert campaign['client_id'] == sample_client.id

    def test_missing_fields(self, client, employee_headers, sample_client):
        response = client.post('/api/campaigns', headers=employee_headers,
                               json={'name': 'Half', 'clientId': sample_client.id, 'tagline': '  '})
        assert response.status_code == 400
        assert response.get_json()['error'] == (
            'Missing required fields: type, budget, product, objective, narrative, '
            'concept, tagline, managerId, managerName'
        )

    def test_unknown_client(self, client, employee_headers, db_session):
        response = client.post('/api/campaigns', headers=employee_headers, json=brief('missing'))
        assert response.status_code == 404

    @pytest.mark.parametrize('overrides,error', [
        ({'budget': 'free'}, 'Budget must be a positive number'),
        ({'activities': 'tv'}, 'activities must be a list'),
        ({'campaignData': ['x']}, 'campaignData must be an object'),
        ({'duration': -3}, 'duration cannot be negative'),
        ({'status': 'archived'}, 'Invalid status. Must be one of: draft, active, paused, completed'),
    ])
    def test_invalid_values(self, client, employee_headers, sample_client, overrides, error):
        response = client.post('/api/campaigns', headers=employee_headers,
                               json=brief(sample_client.id, **overrides))
        assert response.status_code == 400
        assert response.get_json()['error'] == error

    def test_manager_who_is_a_user_is_notified(self, client, admin_headers, employee_user, sample_client):
        response = client.post('/api/campaigns', headers=admin_headers,
                               json=brief(sample_client.id, managerId=str(employee_user.id)))
        campaign_id = response.get_json()['campaign']['id']

        notification = Notification.query.filter_by(user_id=employee_user.id).one()
        assert notification.notification_type == 'campaign_assignment'
        assert notification.action_url == f'/campaigns/{campaign_id}'
        assert notification.details['campaignName'] == 'Spring Savings'
        assert 'Spring Savings' in notification.message

    def test_external_manager_is_not_notified(self, client, employee_headers, sample_client):
        client.post('/api/campaigns', headers=employee_headers, json=brief(sample_client.id))
        assert Notification.query.count() == 0

    def test_client_user_cannot_create(self, client, client_headers, sample_client):
        response = client.post('/api/campaigns', headers=client_headers, json=brief(sample_client.id))
        assert response.status_code == 403


class TestReadCampaigns:
    """GET /api/campaigns and /api/campaigns/<id>"""

    def test_client_id_required(self, client, employee_headers):
        response = client.get('/api/campaigns', headers=employee_headers)
        assert response.status_code == 400

    def test_list_newest_first(self, client, employee_headers, sample_client, campaign):
        client.post('/api/campaigns', headers=employee_headers, json=brief(sample_client.id))
        response = client.get(f'/api/campaigns?clientId={sample_client.id}', headers=employee_headers)
        assert [c['name'] for c in response.get_json()['campaigns']] == ['Spring Savings', 'Winter Push']

    def test_client_user_reads_own_campaigns(self, client, client_headers, sample_client, campaign):
        response = client.get(f'/api/campaigns/{campaign.id}?clientId={sample_client.id}', headers=client_headers)
        assert response.status_code == 200
        assert response.get_json()['name'] == 'Winter Push'

    def test_client_user_cannot_read_other_client(self, client, client_headers, other_client):
        response = client.get(f'/api/campaigns?clientId={other_client.id}', headers=client_headers)
        assert response.status_code == 403

    def test_campaign_of_other_client_is_not_found(self, client, employee_headers, other_client, campaign):
        response = client.get(f'/api/campaigns/{campaign.id}?clientId={other_client.id}', headers=employee_headers)
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Campaign not found'


class TestChangeCampaign:
    """PUT and DELETE /api/campaigns/<id>"""

    def test_partial_update_keeps_blank_fields(self, client, employee_headers, sample_client, campaign):
        response = client.put(f'/api/campaigns/{campaign.id}', headers=employee_headers, json={
            'clientId': sample_client.id, 'name': '', 'tagline': 'Go further', 'status': 'paused',
            'requiresClientApproval': True, 'platforms': ['meta'],
        })

        assert response.status_code == 200
        updated = response.get_json()['campaign']
        assert updated['name'] == 'Winter Push'
        assert updated['tagline'] == 'Go further'
        assert updated['status'] == 'paused'
        assert updated['requires_client_approval'] is True
        assert updated['platforms'] == ['meta']

    def test_update_requires_client_id(self, client, employee_headers, campaign):
        response = client.put(f'/api/campaigns/{campaign.id}', headers=employee_headers, json={'name': 'X'})
        assert response.status_code == 400

    def test_new_manager_is_notified(self, client, employee_headers, admin_user, sample_client, campaign):
        client.put(f'/api/campaigns/{campaign.id}', headers=employee_headers, json={
            'clientId': sample_client.id, 'managerId': str(admin_user.id), 'managerName': 'Ada Admin'
        })
        assert Notification.query.filter_by(user_id=admin_user.id).count() == 1

        # same manager again: no second notification
        client.put(f'/api/campaigns/{campaign.id}', headers=employee_headers, json={
            'clientId': sample_client.id, 'managerId': str(admin_user.id)
        })
        assert Notification.query.filter_by(user_id=admin_user.id).count() == 1

    def test_delete(self, client, employee_headers, sample_client, campaign):
        campaign_id = campaign.id
        response = client.delete(f'/api/campaigns/{campaign_id}?clientId={sample_client.id}',
                                 headers=employee_headers)
        assert response.status_code == 200
        assert client.get(f'/api/campaigns/{campaign_id}?clientId={sample_client.id}',
                          headers=employee_headers).status_code == 404

    def test_client_user_cannot_delete(self, client, client_headers, sample_client, campaign):
        response = client.delete(f'/api/campaigns/{campaign.id}?clientId={sample_client.id}',
                                 headers=client_headers)
        assert response.status_code == 403

    def test_deleting_client_removes_campaigns(self, client, employee_headers, db_session, sample_client, campaign):
        response = client.delete(f'/api/clients/{sample_client.id}', headers=employee_headers)
        assert response.status_code == 200
        assert Campaign.query.count() == 0
        assert db_session.get(Client, sample_client.id) is None


class TestValidateCampaign:
    """POST /api/campaigns/<id>/validate"""

    def test_thin_brief_gets_floor_score(self, client, employee_headers, db_session, sample_client, campaign):
        response = client.post(f'/api/campaigns/{campaign.id}/validate', headers=employee_headers,
                               json={'clientId': sample_client.id})

        assert response.status_code == 200
        body = response.get_json()
        assert body['aiScore'] == MIN_SCORE
        assert len(body['aiSuggestions']) == 5

        db_session.expire_all()
        stored = db_session.get(Campaign, campaign.id)
        assert stored.ai_validated is True
        assert stored.ai_score == MIN_SCORE
        assert stored.ai_suggestions == body['aiSuggestions']

    def test_unknown_campaign(self, client, employee_headers, sample_client):
        response = client.post('/api/campaigns/999/validate', headers=employee_headers,
                               json={'clientId': sample_client.id})
        assert response.status_code == 404

    def test_complete_brief(self):
        campaign = Campaign(activities=['social'], countries=['US'], platforms=['meta'],
                            hero_artwork_path='hero.png', narrative='n' * 40)
        assert review_campaign(campaign) == (100, COMPLETE_NOTES)

    def test_each_issue_costs_five_points(self):
        campaign = Campaign(activities=['social'], countries=['US'], platforms=[],
                            hero_artwork_path='hero.png', narrative='n' * 40)
        score, suggestions = review_campaign(campaign)
        assert score == 95
        assert suggestions == ['Choose the platforms the campaign will run on']
