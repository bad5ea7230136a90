"""
Field-level Encryption

FLOW OVERVIEW
- SENSITIVE_FIELDS maps table name -> columns encrypted at rest.
- FieldEncryptor.encrypt_record / decrypt_record
  • Operate on plain dicts (or lists of dicts) for a given table.
- EncryptedText
  • SQLAlchemy column type that encrypts on write and decrypts on read, so
    models declare sensitive columns once and routes never see ciphertext.
- FieldEncryptor.validate_setup
  • Round-trip self check reported by /api/health.

Each app registers its own FieldEncryptor in app.extensions['field_encryptor'];
`field_encryptor` resolves to the current app's instance.
"""

import logging
from typing import Any, Dict, List, Union

from flask import current_app, has_app_context
from sqlalchemy.types import Text, TypeDecorator
from werkzeug.local import LocalProxy

from .encryption import encryption_service, EncryptionError

# Columns encrypted at rest, per table
SENSITIVE_FIELDS = {
    'users': ['name'],
    'clients': ['email', 'phone', 'address', 'company'],
    'tasks': ['client_comments'],
}

# Never encrypted even if listed above; these are used for lookups and joins
EXCLUDED_FIELDS = {'id', '_id', 'created_at', 'updated_at', 'user_type', 'association', 'client_id'}


class FieldEncryptor:
    """Encrypt and decrypt sensitive attributes of database records."""

    def __init__(self, service=encryption_service):
        self.service = service
        self.enabled = True
        self.logger = logging.getLogger(__name__)

    def init_app(self, app) -> None:
        self.enabled = app.config.get('FIELD_ENCRYPTION_ENABLED', True)
        app.extensions['field_encryptor'] = self

    def sensitive_fields(self, table_name: str) -> List[str]:
        return [f for f in SENSITIVE_FIELDS.get(table_name, []) if f not in EXCLUDED_FIELDS]

    def is_encrypted(self, value: Any) -> bool:
        return self.service.is_field_token(value)

    def encrypt_value(self, value: Any) -> Any:
        if not self.enabled or value is None or self.is_encrypted(value):
            return value
        return self.service.encrypt_field(value)

    def decrypt_value(self, value: Any) -> Any:
        if not self.is_encrypted(value):
            return value
        return self.service.decrypt_field(value)

    def encrypt_record(self, table_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of `data` with sensitive fields encrypted."""
        if not self.enabled or not isinstance(data, dict):
            return data
        result = dict(data)
        for field in self.sensitive_fields(table_name):
            if result.get(field) is not None:
                result[field] = self.encrypt_value(result[field])
        return result

    def decrypt_record(self, table_name: str,
                       data: Union[Dict[str, Any], List[Dict[str, Any]]]):
        """Return a copy of a record (or list of records) with sensitive fields decrypted."""
        if isinstance(data, list):
            return [self.decrypt_record(table_name, record) for record in data]
        if not isinstance(data, dict):
            return data
        result = dict(data)
        for field in self.sensitive_fields(table_name):
            if result.get(field) is not None:
                result[field] = self.decrypt_value(result[field])
        return result

    def validate_setup(self) -> bool:
        """Encrypt and decrypt a sample value; True when the round trip matches."""
        sample = 'encryption-test-data'
        try:
            valid = self.service.decrypt(self.service.encrypt(sample)) == sample
        except EncryptionError as e:
            self.logger.error(f"Encryption validation error: {e}")
            return False
        if valid:
            self.logger.info("Encryption system validated successfully")
        else:
            self.logger.error("Encryption validation failed")
        return valid


_default_encryptor = FieldEncryptor()


def current_field_encryptor() -> FieldEncryptor:
    if has_app_context():
        return current_app.extensions.get('field_encryptor', _default_encryptor)
    return _default_encryptor


field_encryptor = LocalProxy(current_field_encryptor)


class EncryptedText(TypeDecorator):
    """Text column transparently encrypted with the application key."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return field_encryptor.encrypt_value(value)

    def process_result_value(self, value, dialect):
        return field_encryptor.decrypt_value(value)
