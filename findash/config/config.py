"""
Application Configuration

FLOW OVERVIEW
- Config.__init__
  • Reads FLASK_ENV to select which .env file to load (dev/prod). Testing bypasses file load.
- Properties expose configuration values, defaulting to sensible development-safe defaults.
"""

import os
from dotenv import load_dotenv


class Config:
    """Base configuration class"""

    def __init__(self):
        # Load environment variables based on FLASK_ENV
        env_file = os.getenv('FLASK_ENV', 'development')
        if env_file == 'testing':
            # For testing, don't load config files, use environment variables directly
            pass
        elif env_file == 'production':
            load_dotenv('config.prod.env')
        else:
            load_dotenv('config.env')  # Default to development

    @property
    def ENV_NAME(self):
        """Deployment environment name"""
        return os.getenv('FLASK_ENV', 'development')

    @property
    def SECRET_KEY(self):
        """Application secret key"""
        return os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """Database connection URI"""
        return os.getenv('DATABASE_URL', 'sqlite:///finance_dashboard.db')

    @property
    def SQLALCHEMY_TRACK_MODIFICATIONS(self):
        """SQLAlchemy track modifications setting"""
        return False

    @property
    def JWT_SECRET_KEY(self):
        """JWT secret key"""
        return os.getenv('JWT_SECRET_KEY', 'jwt-secret-key-change-in-production')

    @property
    def JWT_EXPIRES_DAYS(self):
        """JWT lifetime in days"""
        return int(os.getenv('JWT_EXPIRES_DAYS', 7))

    @property
    def ENCRYPTION_KEY(self):
        """Passphrase the field encryption key is derived from"""
        return os.getenv('ENCRYPTION_KEY')

    @property
    def ENCRYPTION_SALT(self):
        """PBKDF2 salt for the field encryption key"""
        return os.getenv('ENCRYPTION_SALT', 'findash-field-salt')

    @property
    def FIELD_ENCRYPTION_ENABLED(self):
        """Whether sensitive columns are encrypted at rest"""
        return os.getenv('FIELD_ENCRYPTION_ENABLED', 'True').lower() == 'true'

    @property
    def API_PAYLOAD_MAX_AGE(self):
        """Maximum age in seconds of an encrypted API payload"""
        return int(os.getenv('API_PAYLOAD_MAX_AGE', 300))

    @property
    def BCRYPT_LOG_ROUNDS(self):
        """bcrypt cost factor"""
        return int(os.getenv('BCRYPT_LOG_ROUNDS', 12))

    @property
    def UPLOAD_FOLDER(self):
        """Directory for temporary uploads"""
        return os.getenv('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))

    @property
    def MAX_CONTENT_LENGTH(self):
        """Maximum request body size (bytes)"""
        return int(os.getenv('MAX_CONTENT_LENGTH', 50 * 1024 * 1024))

    @property
    def AUTH_RATE_LIMIT(self):
        """Login/register attempts allowed per window"""
        return int(os.getenv('AUTH_RATE_LIMIT', 5))

    @property
    def AUTH_RATE_WINDOW(self):
        """Login/register rate limit window in seconds"""
        return int(os.getenv('AUTH_RATE_WINDOW', 15 * 60))

    @property
    def CORS_ORIGINS(self):
        """Comma separated list of allowed frontend origins"""
        origins = os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000')
        return [o.strip() for o in origins.split(',') if o.strip()]
