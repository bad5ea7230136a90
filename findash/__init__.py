"""
Finance Dashboard Application Package

FLOW OVERVIEW
- create_app(test_config=None)
  • Build Flask app, load env-based Config, overlay test_config when given.
  • Init extensions: DB, encryption service, field encryptor, security
    hooks (CORS, headers, rate limiter, encrypted envelope).
  • Register blueprints under /api and the JSON error handlers.
  • Create tables and the upload folder.
"""

import logging
import os

from flask import Flask

from .config import Config
from .models import db
from .routes import BLUEPRINTS
from .utils.encryption import EncryptionService
from .utils.error_handlers import register_error_handlers
from .utils.field_encryption import FieldEncryptor
from .utils.security import init_security


def create_app(test_config=None):
    """Application factory pattern for production deployment"""
    app = Flask(__name__)

    # Configuration
    app.config.from_object(Config())
    if test_config:
        app.config.update(test_config)

    if not app.config.get('TESTING'):
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )

    # Initialize extensions
    db.init_app(app)
    encryption = EncryptionService()
    encryption.init_app(app)
    FieldEncryptor(encryption).init_app(app)
    init_security(app)

    # Register blueprints
    for blueprint, url_prefix in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=url_prefix)

    register_error_handlers(app)

    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    with app.app_context():
        db.create_all()

    app.logger.info(f"Finance dashboard started ({app.config.get('ENV_NAME', 'development')})")
    return app
