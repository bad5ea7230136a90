"""
Test configuration and shared fixtures for the finance dashboard tests.

This file contains:
- Centralized test configuration
- Shared fixtures used across multiple test files (users of every role,
  bearer headers, a sample client)
- Common test utilities
"""

import pytest
from datetime import date
from findash import create_app
from findash.models import db, Client, Report
from findash.utils.auth_utils import create_user, generate_token


# Centralized test configuration
TEST_CONFIG = {
    'TESTING': True,
    'ENV_NAME': 'testing',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SECRET_KEY': 'test-secret-key',
    'JWT_SECRET_KEY': 'test-jwt-secret-key',
    'ENCRYPTION_KEY': 'test-encryption-passphrase',
    'ENCRYPTION_SALT': 'test-encryption-salt',
    'FIELD_ENCRYPTION_ENABLED': True,
    'BCRYPT_LOG_ROUNDS': 4,
    'AUTH_RATE_LIMIT': 1000,
}

TEST_PASSWORD = 'Secure2024Pass'


def bearer(user):
    """Authorization header for `user` (needs an app context)"""
    return {'Authorization': f'Bearer {generate_token(user)}'}


@pytest.fixture
def app(tmp_path):
    """Create and configure a new app instance for each test."""
    config = dict(TEST_CONFIG, UPLOAD_FOLDER=str(tmp_path / 'uploads'))
    app = create_app(config)
    return app


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def app_context(app):
    """Create an application context for database operations."""
    with app.app_context():
        yield


@pytest.fixture
def db_session(app_context):
    """Create a database session and clean up after tests."""
    db.create_all()
    yield db.session
    db.session.remove()
    db.drop_all()


@pytest.fixture
def sample_client(db_session):
    """A client (tenant) with encrypted contact details."""
    tenant = Client(name='Acme Finance', email='ops@acme.test', phone='555-0100', company='Acme Holdings')
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture
def other_client(db_session):
    tenant = Client(name='Globex Lending')
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture
def admin_user(db_session):
    return create_user('admin@example.com', TEST_PASSWORD, name='Ada Admin', user_type='admin')


@pytest.fixture
def employee_user(db_session):
    return create_user('employee@example.com', TEST_PASSWORD, name='Eli Employee', user_type='employee')


@pytest.fixture
def client_user(db_session, sample_client):
    return create_user('viewer@acme.test', TEST_PASSWORD, name='Cam Client',
                       user_type='client', association=sample_client.id)


@pytest.fixture
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture
def employee_headers(employee_user):
    return bearer(employee_user)


@pytest.fixture
def client_headers(client_user):
    return bearer(client_user)


@pytest.fixture
def sample_reports(db_session, sample_client):
    """Daily reports across January and February 2024."""
    rows = [
        ('2024-01-01', 10, 100),
        ('2024-01-02', 20, 110),
        ('2024-01-08', 30, 120),
        ('2024-02-01', 40, 130),
        ('2024-02-02', 50, 140),
    ]
    reports = []
    for day, applicants, linked in rows:
        report = Report(client_id=sample_client.id, report_date=date.fromisoformat(day))
        report.total_advance_applicants = applicants
        report.total_micro_financing_applicants = 1
        report.linked_accounts = linked
        db_session.add(report)
        reports.append(report)
    db_session.commit()
    return reports
