"""
Export Routes

- /api/export/csv [GET]
  • Header: report_date, month_label, then every registry key in display order.
  • Every cell quoted; optional clientId filter (client users are pinned to
    their own association).
"""

import csv
import io

from flask import Blueprint, Response, request, current_app

from ..models import Report, ColumnRegistry
from ..models.utils import isoformat
from ..utils.auth_utils import token_required, scoped_client_id

export_bp = Blueprint('export', __name__)

EXPORT_FILENAME = 'finance_data_export.csv'


def build_export_csv(reports, keys):
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(['report_date', 'month_label'] + keys)
    for report in reports:
        writer.writerow(
            [isoformat(report.report_date), report.month_label or '']
            + [report.value(key) for key in keys]
        )
    return buffer.getvalue()


@export_bp.route('/csv', methods=['GET'])
@token_required
def export_csv():
    keys = [column.key for column in ColumnRegistry.ordered()]

    query = Report.query
    client_id = scoped_client_id(request.args.get('clientId'))
    if client_id is not None:
        query = query.filter(Report.client_id == client_id)
    reports = query.order_by(Report.report_date.asc()).all()

    current_app.logger.info(f"CSV export: {len(reports)} reports, {len(keys)} columns")
    return Response(
        build_export_csv(reports, keys),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{EXPORT_FILENAME}"'}
    )
