"""
Analytics Routes

FLOW OVERVIEW
- Every endpoint loads the (optionally client filtered) reports, projects the
  requested metric with `metric_rows` and hands off to report_analytics.
- /api/analytics/monthly-comparison   ?metric&weeks&months&maxDays
- /api/analytics/weekly-comparison    ?metric&days&month
- /api/analytics/daily-weekly         ?metric&view&weeks&months&startDate&endDate&weekdays
- /api/analytics/best-month           ?metric&weeks
- Unknown metric → 400.
"""

from flask import Blueprint, jsonify, request

from ..models import Report, ColumnRegistry, METRIC_FIELDS
from ..services import report_analytics
from ..services.report_analytics import DEFAULT_METRIC, DAILY_WEEKLY_VIEWS
from ..utils.auth_utils import token_required, scoped_client_id

analytics_bp = Blueprint('analytics', __name__)


def is_known_metric(metric):
    if metric in METRIC_FIELDS:
        return True
    return ColumnRegistry.query.filter_by(key=metric).first() is not None


def load_metric_rows():
    """(metric, rows) for the request, or (metric, None) when the metric is unknown"""
    metric = request.args.get('metric') or DEFAULT_METRIC
    if not is_known_metric(metric):
        return metric, None

    query = Report.query
    client_id = scoped_client_id(request.args.get('clientId'))
    if client_id is not None:
        query = query.filter(Report.client_id == client_id)
    return metric, report_analytics.metric_rows(query.all(), metric)


def unknown_metric(metric):
    return jsonify({'error': f'Unknown metric: {metric}'}), 400


@analytics_bp.route('/monthly-comparison', methods=['GET'])
@token_required
def monthly_comparison():
    metric, rows = load_metric_rows()
    if rows is None:
        return unknown_metric(metric)

    try:
        max_days = int(request.args.get('maxDays', 0) or 0)
    except ValueError:
        return jsonify({'error': 'maxDays must be an integer'}), 400

    return jsonify(report_analytics.monthly_comparison(
        rows,
        metric,
        weeks=request.args.get('weeks', 'all') or 'all',
        months=request.args.get('months'),
        max_days=max_days,
    ))


@analytics_bp.route('/weekly-comparison', methods=['GET'])
@token_required
def weekly_comparison():
    metric, rows = load_metric_rows()
    if rows is None:
        return unknown_metric(metric)

    return jsonify(report_analytics.weekly_comparison(
        rows,
        metric,
        days=request.args.get('days', '0'),
        month=request.args.get('month'),
    ))


@analytics_bp.route('/daily-weekly', methods=['GET'])
@token_required
def daily_weekly():
    view = request.args.get('view', 'weekly')
    if view not in DAILY_WEEKLY_VIEWS:
        return jsonify({'error': f"Invalid view. Must be one of: {', '.join(DAILY_WEEKLY_VIEWS)}"}), 400

    metric, rows = load_metric_rows()
    if rows is None:
        return unknown_metric(metric)

    return jsonify(report_analytics.daily_weekly(
        rows,
        metric,
        view=view,
        weeks=request.args.get('weeks', 'all') or 'all',
        months=request.args.get('months'),
        start_date=request.args.get('startDate'),
        end_date=request.args.get('endDate'),
        weekdays=request.args.get('weekdays'),
    ))


@analytics_bp.route('/best-month', methods=['GET'])
@token_required
def best_month():
    metric, rows = load_metric_rows()
    if rows is None:
        return unknown_metric(metric)

    return jsonify(report_analytics.best_month(
        rows,
        metric,
        weeks=request.args.get('weeks', 'all') or 'all',
    ))
