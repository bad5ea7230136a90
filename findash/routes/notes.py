"""
Notes Routes

Notes live on reports; these endpoints only read them. Editing goes through
PATCH /api/reports/<date>/notes.
"""

from flask import Blueprint, jsonify, request

from ..models import Report
from ..models.utils import isoformat
from ..utils.auth_utils import token_required, scoped_client_id
from ..utils.validators import validate_report_date

notes_bp = Blueprint('notes', __name__)

PLACEHOLDER_NOTE = 'No notes'


def _notes_query():
    query = Report.query.filter(
        Report.notes.isnot(None),
        Report.notes != '',
        Report.notes != PLACEHOLDER_NOTE
    )
    client_id = scoped_client_id(request.args.get('clientId'))
    if client_id is not None:
        query = query.filter(Report.client_id == client_id)
    return query


def note_entry(report, include_month=True):
    report_date = isoformat(report.report_date)
    entry = {
        'id': report.id,
        'date': report_date,
        'title': f'Note for {report_date}',
        'content': report.notes,
        'created_at': isoformat(report.created_at or report.updated_at),
    }
    if include_month:
        entry['month_label'] = report.month_label
    return entry


@notes_bp.route('', methods=['GET'])
@token_required
def list_notes():
    reports = _notes_query().order_by(Report.report_date.desc()).all()
    return jsonify({'notes': [note_entry(report) for report in reports]})


@notes_bp.route('/day/<day>', methods=['GET'])
@token_required
def notes_for_day(day):
    validation = validate_report_date(day)
    if not validation.is_valid:
        return jsonify({'error': validation.error_message}), 400

    reports = _notes_query().filter(Report.report_date == validation.sanitized_value).all()
    return jsonify({'notes': [note_entry(report, include_month=False) for report in reports]})
