"""
Tests for /api/marketing-analysis.
"""

import io
import os

import pytest

from findash.routes.marketing import MAX_STORED_RESULTS, store_result

CAMPAIGN_CSV = (
    'day,hour,channel,creative_network,network_cost,installs,started onboarding_events,registered\n'
    '10/01/2025,2025-10-01T09:00:00,Google,Brand Search,100,10,100,8\n'
    '10/02/2025,2025-10-02T09:00:00,Meta,Story Ads,50,5,40,2\n'
).encode('utf-8')


def post_csv(client, path, headers, body, filename='campaign.csv'):
    return client.post(path, headers=headers, content_type='multipart/form-data',
                       data={'csvFile': (io.BytesIO(body), filename)})


@pytest.fixture
def marketing_dir(app):
    path = os.path.join(app.config['UPLOAD_FOLDER'], 'marketing')
    os.makedirs(path, exist_ok=True)
    return path


class TestUploadAndAnalyze:

    def test_analysis_is_stored_and_file_removed(self, client, employee_headers, marketing_dir):
        response = post_csv(client, '/api/marketing-analysis/upload-and-analyze', employee_headers, CAMPAIGN_CSV)

        assert response.status_code == 200
        body = response.get_json()
        assert body['success'] is True
        assert body['analysis']['summary']['totalInstalls'] == 15
        assert body['metadata']['fileName'] == 'campaign.csv'
        assert body['metadata']['fileSize'] == len(CAMPAIGN_CSV)
        assert os.listdir(marketing_dir) == []

        stored = client.get(f"/api/marketing-analysis/results/{body['id']}", headers=employee_headers)
        assert stored.status_code == 200
        assert stored.get_json()['analysis']['summary']['totalCost'] == 150.0

    def test_requires_file(self, client, employee_headers):
        response = client.post('/api/marketing-analysis/upload-and-analyze', headers=employee_headers,
                               content_type='multipart/form-data', data={})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'No CSV file provided'

    def test_rejects_other_extensions(self, client, employee_headers):
        response = post_csv(client, '/api/marketing-analysis/upload-and-analyze', employee_headers,
                            CAMPAIGN_CSV, filename='campaign.xlsx')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Only CSV files are allowed'

    def test_requires_auth(self, client):
        response = post_csv(client, '/api/marketing-analysis/upload-and-analyze', {}, CAMPAIGN_CSV)
        assert response.status_code == 401

    def test_unknown_result(self, client, employee_headers):
        response = client.get('/api/marketing-analysis/results/missing', headers=employee_headers)
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Results not found'


class TestAnalyzeFile:

    def test_relative_path_inside_upload_folder(self, client, employee_headers, marketing_dir):
        with open(os.path.join(marketing_dir, 'october.csv'), 'wb') as handle:
            handle.write(CAMPAIGN_CSV)

        response = client.post('/api/marketing-analysis/analyze-file', headers=employee_headers,
                               json={'filePath': 'marketing/october.csv'})
        assert response.status_code == 200
        body = response.get_json()
        assert body['metadata']['fileName'] == 'october.csv'
        assert body['analysis']['summary']['totalRecords'] == 2

    def test_path_outside_upload_folder(self, client, employee_headers, tmp_path):
        outside = tmp_path / 'outside.csv'
        outside.write_bytes(CAMPAIGN_CSV)

        response = client.post('/api/marketing-analysis/analyze-file', headers=employee_headers,
                               json={'filePath': str(outside)})
        assert response.status_code == 403

    def test_traversal_is_outside(self, client, employee_headers, tmp_path):
        (tmp_path / 'secret.csv').write_bytes(CAMPAIGN_CSV)
        response = client.post('/api/marketing-analysis/analyze-file', headers=employee_headers,
                               json={'filePath': '../secret.csv'})
        assert response.status_code == 403

    def test_missing_file(self, client, employee_headers):
        response = client.post('/api/marketing-analysis/analyze-file', headers=employee_headers,
                               json={'filePath': 'nothing.csv'})
        assert response.status_code == 404

    def test_file_path_required(self, client, employee_headers):
        response = client.post('/api/marketing-analysis/analyze-file', headers=employee_headers, json={})
        assert response.status_code == 400

    def test_unreadable_file(self, client, employee_headers, marketing_dir):
        with open(os.path.join(marketing_dir, 'binary.csv'), 'wb') as handle:
            handle.write(b'\xff\xfe\xfa\x00garbage')

        response = client.post('/api/marketing-analysis/analyze-file', headers=employee_headers,
                               json={'filePath': 'marketing/binary.csv'})
        assert response.status_code == 500
        body = response.get_json()
        assert body['success'] is False
        assert body['error'] == 'Analysis failed'


class TestValidateFile:

    def test_valid_file(self, client, employee_headers):
        response = post_csv(client, '/api/marketing-analysis/validate-file', employee_headers, CAMPAIGN_CSV)
        body = response.get_json()
        assert body['success'] is True
        assert body['validation']['isValid'] is True
        assert body['message'] == 'File structure is valid'
        assert body['requiredColumns'] == ['day', 'channel', 'network_cost', 'installs']

    def test_missing_columns(self, client, employee_headers):
        response = post_csv(client, '/api/marketing-analysis/validate-file', employee_headers,
                            b'day,channel\n10/01/2025,Google\n')
        body = response.get_json()
        assert body['success'] is True
        assert body['message'] == 'File has validation issues'
        assert 'installs' in body['validation']['missingColumns']

    def test_empty_file(self, client, employee_headers):
        response = post_csv(client, '/api/marketing-analysis/validate-file', employee_headers, b'day,channel\n')
        body = response.get_json()
        assert body['success'] is False
        assert body['error'] == 'File appears to be empty'


class TestOpenEndpoints:

    def test_sample_structure(self, client):
        body = client.get('/api/marketing-analysis/sample-structure').get_json()
        assert body['success'] is True
        assert body['structure']['sampleRow']['channel'] == 'Facebook'

    def test_health(self, client):
        body = client.get('/api/marketing-analysis/health').get_json()
        assert body['status'] == 'healthy'
        assert body['service'] == 'Marketing Analysis'


def test_result_store_evicts_oldest(app):
    with app.app_context():
        ids = [store_result({'n': n}, {}) for n in range(MAX_STORED_RESULTS + 1)]
        store = app.extensions['marketing_results']
        assert len(store) == MAX_STORED_RESULTS
        assert ids[0] not in store
        assert ids[-1] in store
