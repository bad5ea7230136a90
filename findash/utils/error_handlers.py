"""
Error Handlers

Every error leaves the API as JSON `{'error': message}` with the matching
status code; the frontend never receives an HTML error page.
"""

from flask import jsonify

ERROR_MESSAGES = {
    400: 'Bad request',
    401: 'Authentication required',
    403: 'Insufficient permissions',
    404: 'Endpoint not found',
    405: 'Method not allowed',
    413: 'File too large',
    429: 'Too many requests',
}


def error_response(message, status_code):
    return jsonify({'error': message}), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    def make_handler(status_code):
        def handler(error):
            return error_response(ERROR_MESSAGES[status_code], status_code)
        return handler

    for status_code in ERROR_MESSAGES:
        app.register_error_handler(status_code, make_handler(status_code))

    @app.errorhandler(500)
    def internal_error(error):
        from ..models import db
        db.session.rollback()
        app.logger.error(f"Internal server error: {error}")
        return error_response('Internal server error', 500)
