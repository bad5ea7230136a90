import pytest
import jwt
from datetime import datetime, timedelta

from findash.models import User
from findash.utils.auth_utils import authenticate_user, create_user, decode_token, generate_token
from conftest import TEST_PASSWORD, TEST_CONFIG, bearer


class TestLogin:
    """POST /api/auth/login"""

    def test_login_success(self, client, employee_user):
        response = client.post('/api/auth/login', json={
            'email': 'Employee@Example.com', 'password': TEST_PASSWORD
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['user']['email'] == 'employee@example.com'
        assert 'password_hash' not in data['user']

        claims = decode_token(data['token'])
        assert claims['user_id'] == employee_user.id
        assert claims['user_type'] == 'employee'
        assert claims['association'] is None

    def test_login_missing_fields(self, client, db_session):
        response = client.post('/api/auth/login', json={'email': 'employee@example.com'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Email and password are required'

    @pytest.mark.parametrize('body', [
        {'email': 123, 'password': TEST_PASSWORD},
        {'email': ['employee@example.com'], 'password': TEST_PASSWORD},
        {'email': 'employee@example.com', 'password': 12345678},
    ])
    def test_login_non_string_credentials(self, client, employee_user, body):
        response = client.post('/api/auth/login', json=body)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Email and password are required'

    def test_login_wrong_password(self, client, employee_user):
        response = client.post('/api/auth/login', json={
            'email': 'employee@example.com', 'password': 'Wrong2024Pass'
        })
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid credentials'

    def test_login_unknown_user(self, client, db_session):
        response = client.post('/api/auth/login', json={
            'email': 'ghost@example.com', 'password': TEST_PASSWORD
        })
        assert response.status_code == 401


class TestRegister:
    """POST /api/auth/register"""

    def test_register_creates_employee(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'email': 'New.Person@Example.com', 'password': TEST_PASSWORD, 'name': 'New Person'
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['user']['user_type'] == 'employee'
        assert data['user']['email'] == 'new.person@example.com'
        assert data['token']

        user = User.query.filter_by(email='new.person@example.com').first()
        assert user is not None
        assert user.password_hash != TEST_PASSWORD

    def test_register_duplicate(self, client, employee_user):
        response = client.post('/api/auth/register', json={
            'email': 'employee@example.com', 'password': TEST_PASSWORD
        })
        assert response.status_code == 409
        assert response.get_json()['error'] == 'User already exists'

    def test_register_invalid_email(self, client, db_session):
        response = client.post('/api/auth/register', json={'email': 'not-an-email', 'password': TEST_PASSWORD})
        assert response.status_code == 400

    def test_register_weak_password(self, client, db_session):
        response = client.post('/api/auth/register', json={'email': 'weak@example.com', 'password': 'short'})
        assert response.status_code == 400
        assert 'at least 8' in response.get_json()['error']

    def test_register_missing_fields(self, client, db_session):
        response = client.post('/api/auth/register', json={})
        assert response.status_code == 400

    def test_register_non_string_email(self, client, db_session):
        response = client.post('/api/auth/register', json={'email': 123, 'password': TEST_PASSWORD})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Email and password are required'


class TestTokens:
    """token_required and the identity endpoints"""

    def test_me_requires_token(self, client, db_session):
        response = client.get('/api/auth/me')
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Access token required'

    def test_me_with_token(self, client, employee_user, employee_headers):
        response = client.get('/api/auth/me', headers=employee_headers)
        assert response.status_code == 200
        assert response.get_json()['user']['name'] == 'Eli Employee'

    def test_invalid_token(self, client, db_session):
        response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not.a.jwt'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid token'

    def test_expired_token(self, client, employee_user):
        token = jwt.encode({
            'user_id': employee_user.id,
            'exp': datetime.utcnow() - timedelta(minutes=1),
        }, TEST_CONFIG['JWT_SECRET_KEY'], algorithm='HS256')
        response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'Token has expired'

    def test_token_signed_with_other_secret(self, client, employee_user):
        token = jwt.encode({
            'user_id': employee_user.id,
            'exp': datetime.utcnow() + timedelta(days=1),
        }, 'another-secret', algorithm='HS256')
        response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401

    def test_token_for_deleted_user(self, client, db_session, employee_user):
        headers = bearer(employee_user)
        db_session.delete(employee_user)
        db_session.commit()
        response = client.get('/api/auth/me', headers=headers)
        assert response.status_code == 401

    def test_check_access(self, client, client_user, client_headers, sample_client):
        response = client.get('/api/auth/check-access', headers=client_headers)
        assert response.status_code == 200
        data = response.get_json()
        assert data['hasAccess'] is True
        assert data['user_type'] == 'client'
        assert data['association'] == sample_client.id

    def test_token_expiry_follows_config(self, app_context, employee_user):
        claims = decode_token(generate_token(employee_user))
        assert 6 * 86400 < claims['exp'] - claims['iat'] <= 7 * 86400


class TestUserAdministration:
    """/api/auth/users"""

    def test_list_users_staff_only(self, client, admin_user, client_headers, employee_headers):
        assert client.get('/api/auth/users', headers=client_headers).status_code == 403

        response = client.get('/api/auth/users', headers=employee_headers)
        assert response.status_code == 200
        emails = {user['email'] for user in response.get_json()}
        assert {'admin@example.com', 'employee@example.com'} <= emails

    def test_admin_creates_user(self, client, admin_headers, sample_client):
        response = client.post('/api/auth/users', headers=admin_headers, json={
            'email': 'portal@acme.test',
            'password': TEST_PASSWORD,
            'name': 'Portal User',
            'user_type': 'client',
            'association': sample_client.id,
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['user']['user_type'] == 'client'
        assert data['user']['association'] == sample_client.id
        assert data['credentials'] == {'email': 'portal@acme.test', 'password': TEST_PASSWORD}

    def test_create_user_rejects_bad_type(self, client, admin_headers):
        response = client.post('/api/auth/users', headers=admin_headers, json={
            'email': 'x@example.com', 'password': TEST_PASSWORD, 'user_type': 'root'
        })
        assert response.status_code == 400

    def test_create_user_duplicate(self, client, admin_headers, employee_user):
        response = client.post('/api/auth/users', headers=admin_headers, json={
            'email': 'employee@example.com', 'password': TEST_PASSWORD
        })
        assert response.status_code == 409

    def test_create_user_non_string_email(self, client, admin_headers):
        response = client.post('/api/auth/users', headers=admin_headers, json={
            'email': {'address': 'x@example.com'}, 'password': TEST_PASSWORD
        })
        assert response.status_code == 400

    def test_employee_cannot_create_user(self, client, employee_headers):
        response = client.post('/api/auth/users', headers=employee_headers, json={
            'email': 'x@example.com', 'password': TEST_PASSWORD
        })
        assert response.status_code == 403
        assert response.get_json()['error'] == 'Insufficient permissions'

    def test_delete_user(self, client, db_session, admin_headers, employee_user):
        user_id = employee_user.id
        response = client.delete(f'/api/auth/users/{user_id}', headers=admin_headers)
        assert response.status_code == 200
        assert db_session.get(User, user_id) is None

    def test_admin_cannot_delete_self(self, client, admin_user, admin_headers):
        response = client.delete(f'/api/auth/users/{admin_user.id}', headers=admin_headers)
        assert response.status_code == 400

    def test_delete_unknown_user(self, client, admin_headers):
        assert client.delete('/api/auth/users/9999', headers=admin_headers).status_code == 404

    def test_update_association(self, client, employee_headers, db_session, sample_client):
        user = create_user('new.client@acme.test', TEST_PASSWORD)
        response = client.put(f'/api/auth/users/{user.id}/association', headers=employee_headers, json={
            'association': sample_client.id
        })

        assert response.status_code == 200
        data = response.get_json()['user']
        assert data['user_type'] == 'client'
        assert data['association'] == sample_client.id

    def test_employee_cannot_grant_admin(self, client, employee_headers, db_session):
        user = create_user('climber@example.com', TEST_PASSWORD)
        response = client.put(f'/api/auth/users/{user.id}/association', headers=employee_headers, json={
            'user_type': 'admin'
        })
        assert response.status_code == 403
        db_session.expire_all()
        assert db_session.get(User, user.id).user_type == 'employee'

    def test_employee_cannot_change_admin(self, client, employee_headers, admin_user, sample_client):
        response = client.put(f'/api/auth/users/{admin_user.id}/association', headers=employee_headers, json={
            'association': sample_client.id
        })
        assert response.status_code == 403

    def test_admin_can_grant_admin(self, client, admin_headers, db_session):
        user = create_user('promoted@example.com', TEST_PASSWORD)
        response = client.put(f'/api/auth/users/{user.id}/association', headers=admin_headers, json={
            'user_type': 'admin'
        })
        assert response.status_code == 200
        assert response.get_json()['user']['user_type'] == 'admin'


class TestAuthHelpers:

    def test_authenticate_user_normalizes_email(self, employee_user):
        assert authenticate_user('  EMPLOYEE@example.com ', TEST_PASSWORD) is employee_user
        assert authenticate_user('employee@example.com', '') is None

    def test_user_rejects_invalid_type(self, app_context):
        with pytest.raises(ValueError):
            User(email='x@example.com', password_hash='x', user_type='owner')

    def test_default_name_from_email(self, app_context):
        assert User(email='jane.doe@example.com', password_hash='x').name == 'jane.doe'
