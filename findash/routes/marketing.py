"""
Marketing Analysis Routes

FLOW OVERVIEW
- /api/marketing-analysis/upload-and-analyze [POST]
  • Multipart `csvFile` (.csv only) → saved under UPLOAD_FOLDER/marketing,
    analyzed, deleted. The result is kept in memory under a new id.
- /api/marketing-analysis/analyze-file [POST]
  • Analyze a CSV that already sits inside the upload folder.
- /api/marketing-analysis/results/<id> [GET]
  • A previously stored analysis.
- /api/marketing-analysis/sample-structure [GET]
  • Expected CSV layout.
- /api/marketing-analysis/validate-file [POST]
  • Column check on the first rows of an uploaded CSV.
- /api/marketing-analysis/health [GET]
"""

import io
import os
import time
import uuid
from collections import OrderedDict
from datetime import datetime

from flask import Blueprint, jsonify, request, current_app

from ..services.marketing_analyzer import MarketingAnalyzer, AnalysisError, REQUIRED_COLUMNS
from ..utils.auth_utils import token_required
from ..utils.prom_metrics import observe_analysis
from ..utils.security import request_json

marketing_bp = Blueprint('marketing', __name__)

MAX_STORED_RESULTS = 50

SAMPLE_STRUCTURE = {
    'requiredColumns': [
        'day (exact match)',
        'hour (exact match)',
        'channel (exact match)',
        'creative_network (exact match)',
        'network_cost (exact match)',
        'installs (exact match)',
        'started onboarding_events (or similar with "onboarding" or "started")',
        'registered no account linked_events (or similar with "registered")',
        'linked_events (or similar with "linked")',
    ],
    'optionalColumns': ['waus', 'delinked account_events', 'account_events'],
    'expectedFormat': {
        'day': '10/1/2025 or YYYY-MM-DD',
        'hour': 'YYYY-MM-DDTHH:MM:SS or numeric hour',
        'channel': 'Facebook, Instagram, etc.',
        'creative_network': 'Campaign name/creative',
        'network_cost': 'Numeric value',
        'installs': 'Numeric value',
        'started onboarding_events': 'Numeric value (onboarding events)',
        'registered no account linked_events': 'Numeric value (registrations)',
        'linked_events': 'Numeric value (account linking)',
    },
    'actualCSVFormat': {
        'note': 'Column names are mapped automatically:',
        'mappings': {
            'started onboarding_events': 'onboarding_events',
            'registered no account linked_events': 'registered',
            'delinked account_events': 'delinked',
        },
    },
    'sampleRow': {
        'day': '10/1/2025',
        'hour': '2025-10-01T00:00:00',
        'channel': 'Facebook',
        'creative_network': '50 For 50 | AS Launch (Traffic) | Apply | iOS | Meta | 100 pd',
        'network_cost': 0,
        'installs': 0,
        'started onboarding_events': 0,
        'registered no account linked_events': 0,
        'waus': 0.04,
        'delinked account_events': 0,
    },
}


def marketing_upload_dir():
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], 'marketing')
    os.makedirs(path, exist_ok=True)
    return path


def _results_store():
    return current_app.extensions.setdefault('marketing_results', OrderedDict())


def store_result(analysis, metadata):
    """Keep an analysis in memory and return its id; oldest entries are evicted"""
    store = _results_store()
    result_id = uuid.uuid4().hex
    store[result_id] = {'analysis': analysis, 'metadata': metadata}
    while len(store) > MAX_STORED_RESULTS:
        store.popitem(last=False)
    return result_id


def _is_csv(filename):
    return bool(filename) and filename.lower().endswith('.csv')


def _inside(path, folder):
    folder = os.path.realpath(folder)
    return os.path.commonpath([os.path.realpath(path), folder]) == folder


def run_analysis(source, metadata):
    """Analyze `source`, record metrics and store the result; returns the response body"""
    started = time.perf_counter()
    analyzer = MarketingAnalyzer()
    results = analyzer.run_complete_analysis(source)
    observe_analysis('success', time.perf_counter() - started)

    metadata['analyzedAt'] = datetime.utcnow().isoformat()
    result_id = store_result(results, metadata)
    return {'success': True, 'id': result_id, 'analysis': results, 'metadata': metadata}


def analysis_failed(error):
    observe_analysis('failure')
    current_app.logger.error(f"Marketing analysis error: {error}")
    return jsonify({'success': False, 'error': 'Analysis failed', 'details': str(error)}), 500


@marketing_bp.route('/upload-and-analyze', methods=['POST'])
@token_required
def upload_and_analyze():
    upload = request.files.get('csvFile')
    if upload is None or not upload.filename:
        return jsonify({'success': False, 'error': 'No CSV file provided'}), 400
    if not _is_csv(upload.filename):
        return jsonify({'success': False, 'error': 'Only CSV files are allowed'}), 400

    path = os.path.join(marketing_upload_dir(), f"marketing-{uuid.uuid4().hex}.csv")
    upload.save(path)
    current_app.logger.info(f"Marketing file uploaded: {upload.filename}")

    try:
        body = run_analysis(path, {
            'fileName': upload.filename,
            'fileSize': os.path.getsize(path),
        })
    except Exception as e:
        return analysis_failed(e)
    finally:
        try:
            os.remove(path)
        except OSError as e:
            current_app.logger.warning(f"Failed to clean up uploaded file: {e}")

    return jsonify(body)


@marketing_bp.route('/analyze-file', methods=['POST'])
@token_required
def analyze_file():
    file_path = request_json().get('filePath')
    if not file_path:
        return jsonify({'success': False, 'error': 'File path is required'}), 400

    upload_folder = current_app.config['UPLOAD_FOLDER']
    if not os.path.isabs(file_path):
        file_path = os.path.join(upload_folder, file_path)
    if not _inside(file_path, upload_folder):
        return jsonify({'success': False, 'error': 'File must be inside the upload folder'}), 403
    if not os.path.isfile(file_path):
        return jsonify({'success': False, 'error': 'File not found'}), 404

    try:
        body = run_analysis(file_path, {'fileName': os.path.basename(file_path)})
    except Exception as e:
        return analysis_failed(e)
    return jsonify(body)


@marketing_bp.route('/results/<result_id>', methods=['GET'])
@token_required
def get_results(result_id):
    stored = _results_store().get(result_id)
    if stored is None:
        return jsonify({'success': False, 'error': 'Results not found'}), 404
    return jsonify({'success': True, 'id': result_id, **stored})


@marketing_bp.route('/sample-structure', methods=['GET'])
def sample_structure():
    return jsonify({'success': True, 'structure': SAMPLE_STRUCTURE})


@marketing_bp.route('/validate-file', methods=['POST'])
@token_required
def validate_file():
    upload = request.files.get('csvFile')
    if upload is None or not upload.filename:
        return jsonify({'success': False, 'error': 'No CSV file provided'}), 400
    if not _is_csv(upload.filename):
        return jsonify({'success': False, 'error': 'Only CSV files are allowed'}), 400

    try:
        rows = MarketingAnalyzer().load_csv(io.BytesIO(upload.read()))
    except AnalysisError as e:
        return jsonify({'success': False, 'error': 'Validation failed', 'details': str(e)}), 400

    validation = MarketingAnalyzer.validate_structure(rows)
    if not rows:
        return jsonify({'success': False, 'error': 'File appears to be empty', 'validation': validation})

    return jsonify({
        'success': True,
        'validation': validation,
        'message': 'File structure is valid' if validation['isValid'] else 'File has validation issues',
        'requiredColumns': list(REQUIRED_COLUMNS),
    })


@marketing_bp.route('/health', methods=['GET'])
def health():
    return jsonify({
        'success': True,
        'status': 'healthy',
        'service': 'Marketing Analysis',
        'timestamp': datetime.utcnow().isoformat()
    })
