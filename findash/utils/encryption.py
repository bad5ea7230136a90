"""
Encryption Utilities

FLOW OVERVIEW
- EncryptionService.configure(passphrase, salt, ...)
  • Derive a 256-bit key with PBKDF2-HMAC-SHA256. Without a passphrase a random
    key is generated and a warning is logged (data will not survive a restart).
- hash_password / verify_password
  • bcrypt with configurable cost.
- encrypt / decrypt
  • AES-256-GCM over text, returned as a dict of hex parts.
- encrypt_field / decrypt_field
  • Same cipher packed as "<nonce>:<tag>:<ciphertext>" for storage in a column.
- encrypt_api_payload / decrypt_api_payload
  • JSON + timestamp envelope that expires after `max_payload_age` seconds.
- hash_data / hash_identifier / generate_secure_token
  • HMAC digests and random tokens for non-reversible values.

Each app gets its own service in `app.extensions['encryption_service']`; the
module level `encryption_service` resolves to the current app's instance and
falls back to a process default outside an app context.
"""

import hashlib
import hmac
import json
import logging
import os
import re
import secrets
import time
from typing import Any, Dict, Optional

import bcrypt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from flask import current_app, has_app_context
from werkzeug.local import LocalProxy

NONCE_LENGTH = 12
TAG_LENGTH = 16
PBKDF2_ITERATIONS = 100000
ASSOCIATED_DATA = b'findash-field'

FIELD_TOKEN_PATTERN = re.compile(r'^[0-9a-f]{24}:[0-9a-f]{32}:[0-9a-f]+$', re.IGNORECASE)


class EncryptionError(Exception):
    """Raised when data cannot be encrypted or decrypted."""


class EncryptionService:
    """Symmetric field encryption, password hashing and token helpers."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._key = None
        self.bcrypt_rounds = 12
        self.max_payload_age = 300

    def configure(self, passphrase: Optional[str] = None, salt: str = 'findash-field-salt',
                  bcrypt_rounds: int = 12, max_payload_age: int = 300) -> None:
        """Derive the encryption key and store tuning parameters."""
        if not passphrase:
            passphrase = secrets.token_hex(32)
            self.logger.warning(
                "No ENCRYPTION_KEY configured; using a temporary key. "
                "Encrypted fields will be unreadable after restart. "
                "Set ENCRYPTION_KEY in config.env to persist it."
            )
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt.encode('utf-8'),
            iterations=PBKDF2_ITERATIONS,
        )
        self._key = kdf.derive(passphrase.encode('utf-8'))
        self.bcrypt_rounds = bcrypt_rounds
        self.max_payload_age = max_payload_age

    def init_app(self, app) -> None:
        self.configure(
            passphrase=app.config.get('ENCRYPTION_KEY'),
            salt=app.config.get('ENCRYPTION_SALT', 'findash-field-salt'),
            bcrypt_rounds=app.config.get('BCRYPT_LOG_ROUNDS', 12),
            max_payload_age=app.config.get('API_PAYLOAD_MAX_AGE', 300),
        )
        app.extensions['encryption_service'] = self

    @property
    def cipher(self) -> AESGCM:
        if self._key is None:
            self.configure()
        return AESGCM(self._key)

    # Passwords

    def hash_password(self, password: str) -> str:
        """Hash a password with bcrypt"""
        if not isinstance(password, str) or not password:
            raise EncryptionError('Password must be a non-empty string')
        hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=self.bcrypt_rounds))
        return hashed.decode('utf-8')

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Check a password against a bcrypt hash; malformed hashes never match"""
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError:
            self.logger.error("Password verification against malformed hash")
            return False

    # Symmetric encryption

    def encrypt(self, text: str) -> Dict[str, str]:
        """Encrypt text with AES-256-GCM and return its hex parts."""
        if not text or not isinstance(text, str):
            raise EncryptionError('Text must be a non-empty string')
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self.cipher.encrypt(nonce, text.encode('utf-8'), ASSOCIATED_DATA)
        return {
            'encrypted': sealed[:-TAG_LENGTH].hex(),
            'iv': nonce.hex(),
            'auth_tag': sealed[-TAG_LENGTH:].hex(),
        }

    def decrypt(self, encrypted_data: Dict[str, str]) -> str:
        """Reverse `encrypt`."""
        if not isinstance(encrypted_data, dict) or not all(
                encrypted_data.get(k) for k in ('encrypted', 'iv', 'auth_tag')):
            raise EncryptionError('Invalid encrypted data format')
        try:
            nonce = bytes.fromhex(encrypted_data['iv'])
            sealed = bytes.fromhex(encrypted_data['encrypted']) + bytes.fromhex(encrypted_data['auth_tag'])
            return self.cipher.decrypt(nonce, sealed, ASSOCIATED_DATA).decode('utf-8')
        except (InvalidTag, ValueError) as e:
            raise EncryptionError(f'Decryption failed: {e.__class__.__name__}') from e

    # Column values

    @staticmethod
    def is_field_token(value: Any) -> bool:
        return isinstance(value, str) and FIELD_TOKEN_PATTERN.match(value) is not None

    def encrypt_field(self, value: Any) -> Optional[str]:
        """Encrypt a column value; None and empty strings pass through."""
        if value is None or value == '':
            return value
        parts = self.encrypt(str(value))
        return f"{parts['iv']}:{parts['auth_tag']}:{parts['encrypted']}"

    def decrypt_field(self, value: Any) -> Any:
        """Decrypt a column value. Plaintext (legacy) values are returned as stored."""
        if value is None or value == '':
            return value
        if not self.is_field_token(value):
            return value
        pieces = value.split(':')
        try:
            return self.decrypt({'iv': pieces[0], 'auth_tag': pieces[1], 'encrypted': pieces[2]})
        except EncryptionError as e:
            self.logger.error(f"Field decryption error: {e}")
            return value

    # API payload envelope

    def encrypt_api_payload(self, data: Any) -> str:
        """Encrypt a JSON-serializable object stamped with the current time."""
        try:
            body = json.dumps(data, default=str)
        except (TypeError, ValueError) as e:
            raise EncryptionError(f'API data encryption failed: {e}') from e
        timestamp = int(time.time() * 1000)
        return self.encrypt_field(f'{body}|{timestamp}')

    def decrypt_api_payload(self, token: str, max_age: Optional[int] = None) -> Any:
        """Decrypt an API payload, rejecting tokens older than `max_age` seconds."""
        if not self.is_field_token(token):
            raise EncryptionError('Invalid encrypted data format')
        pieces = token.split(':')
        plaintext = self.decrypt({'iv': pieces[0], 'auth_tag': pieces[1], 'encrypted': pieces[2]})
        body, sep, stamp = plaintext.rpartition('|')
        if not sep:
            raise EncryptionError('Invalid encrypted data format')
        try:
            timestamp = int(stamp)
        except ValueError as e:
            raise EncryptionError('Invalid encrypted data timestamp') from e

        max_age = self.max_payload_age if max_age is None else max_age
        if time.time() * 1000 - timestamp > max_age * 1000:
            raise EncryptionError('Encrypted data has expired')
        try:
            return json.loads(body)
        except ValueError as e:
            raise EncryptionError('Encrypted payload is not valid JSON') from e

    # Digests and tokens

    @staticmethod
    def hash_data(data: str, salt: Optional[str] = None) -> Dict[str, str]:
        """HMAC-SHA256 of `data` keyed by `salt` (random when omitted)."""
        actual_salt = salt or secrets.token_hex(16)
        digest = hmac.new(actual_salt.encode('utf-8'), data.encode('utf-8'), hashlib.sha256)
        return {'hash': digest.hexdigest(), 'salt': actual_salt}

    @staticmethod
    def hash_identifier(value: Optional[str]) -> Optional[str]:
        """Short stable digest of an identifier, safe to write to logs."""
        if value is None:
            return None
        normalized = str(value).strip().lower()
        return hashlib.sha256(normalized.encode('utf-8')).hexdigest()[:16]

    @staticmethod
    def generate_secure_token(length: int = 32) -> str:
        return secrets.token_hex(length)


_default_service = EncryptionService()


def current_encryption_service() -> EncryptionService:
    if has_app_context():
        return current_app.extensions.get('encryption_service', _default_service)
    return _default_service


encryption_service = LocalProxy(current_encryption_service)
