"""
Report Routes

FLOW OVERVIEW
- /api/reports [POST]
  • Upsert by (clientId, report_date); known metrics → columns, the rest
    merged into extra_data; every data key registered in the column registry.
- /api/reports [GET]
  • clientId required; optional month=YYYY-MM, limit/offset; newest first.
- /api/reports/stats [GET]
  • total_records, months_tracked, notes_count for a client.
- /api/reports/rollups [GET]
  • Per-month record count, new applicants and linked accounts.
- /api/reports/<date>/notes [PATCH]
  • Replace the notes of the report(s) on a date.
- /api/reports [DELETE]
  • Admin only; clears every report and the column registry.
"""

import calendar
from collections import OrderedDict
from datetime import date

from flask import Blueprint, jsonify, request, current_app

from ..models import db, Report, Client, ColumnRegistry, METRIC_FIELDS, APPLICANT_FIELDS
from ..services.import_service import parse_int
from ..utils.auth_utils import token_required, roles_required, client_scope_allowed, scoped_client_id
from ..utils.security import request_json
from ..utils.validators import validate_report_date, validate_month, optional_text

reports_bp = Blueprint('reports', __name__)

DEFAULT_LIMIT = 1000


@reports_bp.route('', methods=['POST'])
@token_required
@roles_required('admin', 'employee')
def upsert_report():
    data = request_json()
    report_date = data.get('report_date')
    client_id = data.get('clientId')

    if not report_date:
        return jsonify({'error': 'report_date is required'}), 400
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400

    date_validation = validate_report_date(report_date)
    if not date_validation.is_valid:
        return jsonify({'error': date_validation.error_message}), 400

    values = data.get('data') or {}
    if not isinstance(values, dict):
        return jsonify({'error': 'data must be an object'}), 400

    if not db.session.get(Client, client_id):
        return jsonify({'error': 'Client not found'}), 404

    values = {key: parse_int(value) if key in METRIC_FIELDS else value for key, value in values.items()}

    report = Report.query.filter_by(client_id=client_id, report_date=date_validation.sanitized_value).first()
    if report is None:
        report = Report(client_id=client_id, report_date=date_validation.sanitized_value)
        db.session.add(report)
        action = 'inserted'
    else:
        action = 'updated'

    month_label = optional_text(data.get('month_label'), 50)
    if month_label:
        report.month_label = month_label
    report.apply_data(values)
    ColumnRegistry.touch(values.keys())
    db.session.commit()

    current_app.logger.info(f"Report {action}: {report.id} ({report_date}) for client {client_id}")
    result = report.to_dict()
    result['action'] = action
    return jsonify(result)


@reports_bp.route('', methods=['GET'])
@token_required
def list_reports():
    client_id = request.args.get('clientId')
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403

    try:
        limit = int(request.args.get('limit', DEFAULT_LIMIT))
        offset = int(request.args.get('offset', 0))
    except ValueError:
        return jsonify({'error': 'limit and offset must be integers'}), 400

    query = Report.query.filter_by(client_id=client_id)

    month = request.args.get('month')
    if month:
        month_validation = validate_month(month)
        if not month_validation.is_valid:
            return jsonify({'error': month_validation.error_message}), 400
        year, month_num = month_validation.sanitized_value
        last_day = calendar.monthrange(year, month_num)[1]
        query = query.filter(Report.report_date.between(date(year, month_num, 1), date(year, month_num, last_day)))

    reports = query.order_by(Report.report_date.desc()).limit(max(limit, 0)).offset(max(offset, 0)).all()
    return jsonify([report.to_dict() for report in reports])


@reports_bp.route('/stats', methods=['GET'])
@token_required
def report_stats():
    client_id = request.args.get('clientId')
    if not client_id:
        return jsonify({'error': 'Client ID is required'}), 400
    if not client_scope_allowed(client_id):
        return jsonify({'error': 'Access denied'}), 403

    query = Report.query.filter_by(client_id=client_id)
    months = {report_date.strftime('%Y-%m') for (report_date,) in query.with_entities(Report.report_date)}
    notes_count = query.filter(Report.notes.isnot(None), Report.notes != '').count()

    return jsonify({
        'total_records': query.count(),
        'months_tracked': len(months),
        'notes_count': notes_count
    })


@reports_bp.route('/rollups', methods=['GET'])
@token_required
def report_rollups():
    group = request.args.get('group', 'month')
    if group != 'month':
        return jsonify({'error': 'Only month grouping is currently supported'}), 400

    query = Report.query
    client_id = scoped_client_id(request.args.get('clientId'))
    if client_id is not None:
        query = query.filter_by(client_id=client_id)

    rollups = OrderedDict()
    for report in query.order_by(Report.report_date.asc()).all():
        month = report.report_date.strftime('%Y-%m')
        bucket = rollups.setdefault(month, {
            'month': month,
            'record_count': 0,
            'new_applicants': 0,
            'linked_accounts': 0
        })
        bucket['record_count'] += 1
        bucket['new_applicants'] += sum(report.metric(field) for field in APPLICANT_FIELDS)
        bucket['linked_accounts'] += report.metric('linked_accounts')

    return jsonify(list(rollups.values()))


@reports_bp.route('/<report_date>/notes', methods=['PATCH'])
@token_required
@roles_required('admin', 'employee')
def update_notes(report_date):
    date_validation = validate_report_date(report_date)
    if not date_validation.is_valid:
        return jsonify({'error': date_validation.error_message}), 400

    data = request_json()
    notes = data.get('notes') or ''
    query = Report.query.filter_by(report_date=date_validation.sanitized_value)
    client_id = data.get('clientId') or request.args.get('clientId')
    if client_id:
        query = query.filter_by(client_id=client_id)

    reports = query.all()
    if not reports:
        return jsonify({'error': 'Report not found for the specified date'}), 404

    for report in reports:
        report.notes = notes
    db.session.commit()

    return jsonify({
        'message': 'Notes updated successfully',
        'report_date': report_date,
        'notes': notes
    })


@reports_bp.route('', methods=['DELETE'])
@token_required
@roles_required('admin')
def clear_reports():
    deleted = Report.query.delete()
    ColumnRegistry.query.delete()
    db.session.commit()
    current_app.logger.warning(f"All report data cleared ({deleted} reports)")
    return jsonify({'message': 'All data cleared successfully'})
