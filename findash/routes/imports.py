"""
Import Routes

FLOW OVERVIEW
- /api/import [POST]
  • Multipart `file` (.csv or .xlsx) + `clientId` → upsert reports for that client.
  • 400 missing file/clientId or unsupported type, 404 unknown client.
- /api/template.csv [GET]
  • Example spreadsheet with every accepted column.
"""

import io

from flask import Blueprint, Response, jsonify, request, current_app

from ..models import db, Client
from ..services.import_service import (
    ImportProcessingError, SUPPORTED_FORMATS, TEMPLATE_CSV,
    file_extension, read_rows, process_import
)
from ..utils.auth_utils import token_required, roles_required
from ..utils.prom_metrics import observe_import

imports_bp = Blueprint('imports', __name__)


@imports_bp.route('/import', methods=['POST'])
@token_required
@roles_required('admin', 'employee')
def import_reports():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({'error': 'No file uploaded'}), 400

    client_id = (request.form.get('clientId') or '').strip()
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400

    if file_extension(upload.filename) not in SUPPORTED_FORMATS:
        return jsonify({
            'error': 'Unsupported file format. Please upload .xlsx or .csv files',
            'supportedFormats': SUPPORTED_FORMATS
        }), 400

    if not db.session.get(Client, client_id):
        return jsonify({'error': 'Client not found'}), 404

    current_app.logger.info(f"Import started: {upload.filename} for client {client_id}")
    try:
        rows = read_rows(upload.filename, io.BytesIO(upload.read()))
        result = process_import(rows, client_id)
    except ImportProcessingError as e:
        current_app.logger.warning(f"Import rejected: {e}")
        return jsonify({'success': False, 'error': str(e)}), 400

    observe_import(result['inserted'], result['updated'], result['skipped'])
    return jsonify(result)


@imports_bp.route('/template.csv', methods=['GET'])
def import_template():
    return Response(
        TEMPLATE_CSV,
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename="finance_data_template.csv"'}
    )
