"""
Main Routes

FLOW OVERVIEW
- /api/health [GET]
  • JSON health check including the encryption self-test.
- /api/metrics [GET]
  • Prometheus exposition.
"""

from datetime import datetime

from flask import Blueprint, jsonify, Response, current_app

from ..utils.field_encryption import field_encryptor
from ..utils.prom_metrics import metrics_latest, CONTENT_TYPE_LATEST

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'OK',
        'timestamp': datetime.utcnow().isoformat(),
        'encryption': {
            'available': field_encryptor.enabled,
            'validated': field_encryptor.validate_setup(),
        },
        'environment': current_app.config.get('ENV_NAME', 'development'),
    })


@main_bp.route('/metrics')
def metrics():
    """Prometheus metrics endpoint."""
    return Response(metrics_latest(), mimetype=CONTENT_TYPE_LATEST)
