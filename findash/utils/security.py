"""
Security Middleware

FLOW OVERVIEW
- init_security(app)
  • CORS for the configured frontend origins (flask-cors).
  • before_request: start timer, unwrap `X-Encrypted: true` request bodies.
  • after_request: security headers, authentication audit log, optional
    response encryption (`Accept-Encryption: true`), request metrics.
- RateLimiter / rate_limited
  • Fixed-window per-IP counter guarding login and registration.
- log_security_event(event_type, **details)
  • One JSON log line per event; IPs and emails are hashed before logging.
- request_json()
  • Request body for handlers, already decrypted when it arrived enveloped.
"""

import json
import logging
import threading
import time
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, g, jsonify, request
from flask_cors import CORS

from .encryption import encryption_service, EncryptionError
from .prom_metrics import observe_request

security_logger = logging.getLogger('findash.security')

# Paths never wrapped in the encrypted envelope
ENVELOPE_EXEMPT_PREFIXES = ('/api/auth/', '/api/health', '/api/metrics')

AUTH_AUDITED_SUFFIXES = ('/login', '/register')

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'X-XSS-Protection': '1; mode=block',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Permissions-Policy': 'geolocation=(), camera=(), microphone=()',
}


class RateLimiter:
    """Fixed-window request counter keyed by client IP."""

    def __init__(self, max_requests: int = 5, window_seconds: int = 15 * 60):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.request_counts: Dict[str, int] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def check(self, client_ip: str, now: Optional[float] = None) -> bool:
        """Count one request for `client_ip`; False once the window is exhausted."""
        current_window = int(now if now is not None else time.time()) // self.window_seconds
        window_key = f"{client_ip}_{current_window}"

        with self._lock:
            self.request_counts[window_key] = self.request_counts.get(window_key, 0) + 1

            stale_keys = [k for k in self.request_counts
                          if int(k.rsplit('_', 1)[-1]) < current_window]
            for stale_key in stale_keys:
                del self.request_counts[stale_key]

            count = self.request_counts[window_key]

        if count > self.max_requests:
            self.logger.warning(f"Rate limit exceeded: {count} requests in window")
            return False
        return True

    def reset(self) -> None:
        with self._lock:
            self.request_counts.clear()


def rate_limited(f):
    """Decorator applying the app's authentication rate limiter"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        limiter = current_app.extensions.get('auth_rate_limiter')
        client_ip = request.remote_addr or 'unknown'
        if limiter is not None and not limiter.check(client_ip):
            log_security_event('RATE_LIMIT_EXCEEDED', ip=client_ip, path=request.path)
            return jsonify({'error': 'Too many requests, please try again later.'}), 429
        return f(*args, **kwargs)
    return decorated_function


def log_security_event(event_type: str, **details: Any) -> Dict[str, Any]:
    """Write a security audit record; identifiers are replaced by short digests."""
    record = {'timestamp': datetime.utcnow().isoformat(), 'event': event_type}
    for key, value in details.items():
        if key in ('ip', 'email') and value is not None:
            record[f'{key}_hash'] = encryption_service.hash_identifier(value)
        else:
            record[key] = value
    security_logger.info(json.dumps(record, default=str))
    return record


def apply_security_headers(response, production: bool = False):
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    if production:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


def request_json() -> Dict[str, Any]:
    """JSON body of the current request ({} when absent or not an object)"""
    if 'decrypted_json' in g:
        data = g.decrypted_json
    else:
        data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _envelope_exempt(path: str) -> bool:
    return path.startswith(ENVELOPE_EXEMPT_PREFIXES)


def _unwrap_encrypted_request():
    if request.headers.get('X-Encrypted') != 'true':
        return None

    body = request.get_json(silent=True) or {}
    token = body.get('encrypted') if isinstance(body, dict) else None
    if not token:
        return jsonify({'error': 'Encrypted payload missing'}), 400

    try:
        g.decrypted_json = encryption_service.decrypt_api_payload(token)
    except EncryptionError as e:
        log_security_event('DECRYPTION_FAILURE', ip=request.remote_addr, path=request.path, reason=str(e))
        return jsonify({'error': 'Invalid encrypted payload'}), 400
    return None


def _wrap_encrypted_response(response):
    if request.headers.get('Accept-Encryption') != 'true':
        return response
    if _envelope_exempt(request.path) or not response.is_json:
        return response

    token = encryption_service.encrypt_api_payload(response.get_json())
    response.set_data(json.dumps({'encrypted': token}))
    response.headers['X-Encrypted'] = 'true'
    return response


def _audit_authentication(response):
    if not request.path.startswith('/api/auth/') or not request.path.endswith(AUTH_AUDITED_SUFFIXES):
        return
    started = g.get('request_started')
    duration_ms = round((time.perf_counter() - started) * 1000, 2) if started else None
    success = response.status_code < 400
    log_security_event(
        'AUTH_SUCCESS' if success else 'AUTH_FAILURE',
        ip=request.remote_addr,
        email=request_json().get('email'),
        path=request.path,
        status=response.status_code,
        duration_ms=duration_ms,
    )


def init_security(app):
    """Install CORS, request hooks and the auth rate limiter on `app`"""
    CORS(app,
         resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', ['http://localhost:3000'])}},
         supports_credentials=True,
         allow_headers=['Content-Type', 'Authorization', 'X-Encrypted', 'Accept-Encryption'],
         expose_headers=['X-Encrypted', 'Content-Disposition'])

    app.extensions['auth_rate_limiter'] = RateLimiter(
        max_requests=app.config.get('AUTH_RATE_LIMIT', 5),
        window_seconds=app.config.get('AUTH_RATE_WINDOW', 15 * 60),
    )

    production = app.config.get('ENV_NAME') == 'production'

    @app.before_request
    def start_request():
        g.request_started = time.perf_counter()
        return _unwrap_encrypted_request()

    @app.after_request
    def finish_request(response):
        apply_security_headers(response, production=production)
        _audit_authentication(response)
        response = _wrap_encrypted_response(response)

        started = g.get('request_started')
        if started is not None:
            endpoint = request.url_rule.rule if request.url_rule else 'unmatched'
            observe_request(endpoint, response.status_code, time.perf_counter() - started)
        return response
