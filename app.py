#!/usr/bin/env python3
"""
Finance dashboard application entry point.

This module selects configuration based on environment variables, creates the
Flask application via `create_app` and, when executed directly, runs the
development server. In production, a WSGI server should import `app` from
this module.

Environment variables of interest:
- FLASK_ENV: 'testing' uses an in-memory DB, 'production' loads config.prod.env.
- DATABASE_URL, SECRET_KEY, JWT_SECRET_KEY, ENCRYPTION_KEY: consumed by `create_app`.
- PORT: development server port (default 5000).
"""

import os
from findash import create_app

# Create app instance
if os.getenv('FLASK_ENV') == 'testing':
    # Use test configuration for testing environment
    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': os.getenv('DATABASE_URL', 'sqlite:///:memory:'),
        'SECRET_KEY': os.getenv('SECRET_KEY', 'test-secret-key'),
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'test-jwt-secret-key'),
    }
    app = create_app(test_config)
else:
    app = create_app()

if __name__ == '__main__':
    app.run(debug=app.config.get('ENV_NAME') != 'production',
            host='0.0.0.0',
            port=int(os.getenv('PORT', 5000)))
