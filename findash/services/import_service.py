"""
Report Import Service

FLOW OVERVIEW
- read_rows(filename, stream)
  • .csv through csv.DictReader, .xlsx through openpyxl (the "Report Data"
    sheet when present, else the first sheet). Other extensions rejected.
- map_row(row)
  • camelCase or snake_case headers → report columns; lenient integers.
- process_import(rows, client_id)
  • Upsert one report per (client, date); rows without a usable date are
    skipped with a "Row N: ..." message. One commit for the whole file.
"""

import csv
import io
import logging
import os
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from openpyxl import load_workbook
from sqlalchemy.exc import SQLAlchemyError

from ..models import db, Report, ColumnRegistry, METRIC_FIELDS

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ['.xlsx', '.csv']
PREFERRED_SHEET = 'Report Data'
MAX_REPORTED_ERRORS = 10

# Report column → accepted spreadsheet headers
FIELD_SOURCES = {
    'registered_onboarded': ('registeredOnboarded', 'registered_onboarded'),
    'linked_accounts': ('linkedAccounts', 'linked_accounts'),
    'total_advance_applications': ('totalAdvanceApplications', 'total_advance_applications'),
    'total_advance_applicants': ('totalAdvanceApplicants', 'total_advance_applicants'),
    'total_micro_financing_applications': ('totalMicroFinancingApplications', 'total_micro_financing_applications'),
    'total_micro_financing_applicants': ('totalMicroFinancingApplicants', 'total_micro_financing_applicants'),
    'total_personal_finance_application': ('totalPersonalFinanceApplication', 'total_personal_finance_application'),
    'total_personal_finance_applicants': ('totalPersonalFinanceApplicants', 'total_personal_finance_applicants'),
    'total_bnpl_applications': ('totalBnplApplications', 'totalBnplApplication', 'total_bnpl_applications'),
    'total_bnpl_applicants': ('totalBnplApplicants', 'total_bnpl_applicants'),
}

DATE_SOURCES = ('reportDate', 'report_date')
MONTH_LABEL_SOURCES = ('monthLabel', 'month_label')

TEXT_DATE_FORMATS = ('%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M:%S', '%m/%d/%Y')

TEMPLATE_CSV = (
    "reportDate,month_label,registeredOnboarded,linkedAccounts,"
    "totalAdvanceApplications,totalAdvanceApplicants,"
    "totalMicroFinancingApplications,totalMicroFinancingApplicants,"
    "totalPersonalFinanceApplication,totalPersonalFinanceApplicants,"
    "totalBnplApplications,totalBnplApplicants,notes\n"
    "2024-01-01,January,1000,800,120,110,60,55,40,38,25,22,Sample data for January\n"
    "2024-02-01,February,1200,950,140,130,70,64,45,41,30,27,Sample data for February\n"
    "2024-03-01,March,1100,880,130,121,65,60,42,40,28,25,Sample data for March\n"
)

_INT_PATTERN = re.compile(r'^\s*([+-]?\d+)')


class ImportProcessingError(Exception):
    """Raised when an uploaded file cannot be imported."""


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or '')[1].lower()


def read_csv_rows(stream) -> List[Dict[str, Any]]:
    text = io.TextIOWrapper(stream, encoding='utf-8-sig', newline='')
    try:
        reader = csv.DictReader(text)
        rows = [
            {(k or '').strip(): v for k, v in record.items() if k is not None}
            for record in reader
        ]
    finally:
        text.detach()
    return [row for row in rows if any(v not in (None, '') for v in row.values())]


def read_xlsx_rows(stream) -> List[Dict[str, Any]]:
    workbook = load_workbook(stream, read_only=True, data_only=True)
    try:
        sheet_name = PREFERRED_SHEET if PREFERRED_SHEET in workbook.sheetnames else workbook.sheetnames[0]
        sheet = workbook[sheet_name]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return []
        keys = [str(cell).strip() if cell is not None else '' for cell in header]
        records = []
        for values in rows:
            if all(v in (None, '') for v in values):
                continue
            records.append({key: value for key, value in zip(keys, values) if key})
        return records
    finally:
        workbook.close()


def read_rows(filename: str, stream) -> List[Dict[str, Any]]:
    """Parse an uploaded spreadsheet into row dicts"""
    ext = file_extension(filename)
    try:
        if ext == '.csv':
            return read_csv_rows(stream)
        if ext == '.xlsx':
            return read_xlsx_rows(stream)
    except (csv.Error, UnicodeDecodeError, OSError, ValueError, KeyError) as e:
        raise ImportProcessingError(f"Could not read {ext} file: {e}") from e
    raise ImportProcessingError('Unsupported file format. Please upload .xlsx or .csv files')


def parse_int(value: Any) -> int:
    """parseInt-like: leading integer of a string, 0 when there is none"""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _INT_PATTERN.match(str(value))
    return int(match.group(1)) if match else 0


def parse_report_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for fmt in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _first_present(row: Dict[str, Any], keys) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ''):
            return value
    return None


def map_row(row: Dict[str, Any]) -> Tuple[Optional[date], Dict[str, Any]]:
    """Return (report_date, column values); ValueError when the date is missing or invalid"""
    raw_date = _first_present(row, DATE_SOURCES)
    if raw_date is None:
        raise ValueError('Missing reportDate/report_date')
    report_date = parse_report_date(raw_date)
    if report_date is None:
        raise ValueError(f'Invalid date format: {raw_date}')

    values = {field: parse_int(_first_present(row, sources)) for field, sources in FIELD_SOURCES.items()}
    month_label = _first_present(row, MONTH_LABEL_SOURCES)
    values['month_label'] = str(month_label).strip() if month_label is not None else report_date.strftime('%B')
    notes = row.get('notes')
    if notes not in (None, ''):
        values['notes'] = str(notes).strip()
    return report_date, values


def process_import(rows: List[Dict[str, Any]], client_id: str) -> Dict[str, Any]:
    """Upsert report rows for a client and summarize the outcome"""
    if not rows:
        raise ImportProcessingError('No data found in uploaded file')
    if not client_id:
        raise ImportProcessingError('Client ID is required for import')

    inserted = updated = 0
    errors = []
    seen = {}

    for index, row in enumerate(rows, start=1):
        try:
            report_date, values = map_row(row)
        except ValueError as e:
            errors.append(f"Row {index}: {e}")
            continue

        report = seen.get(report_date) or Report.query.filter_by(
            client_id=client_id, report_date=report_date).first()
        if report is None:
            report = Report(client_id=client_id, report_date=report_date)
            db.session.add(report)
            inserted += 1
        else:
            updated += 1
        seen[report_date] = report

        report.month_label = values.pop('month_label')
        report.apply_data(values)

    try:
        new_columns = ColumnRegistry.touch(METRIC_FIELDS) if seen else []
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Import failed for client {client_id}: {e}")
        raise ImportProcessingError(f'Import failed: {e.__class__.__name__}') from e

    skipped = len(errors)
    logger.info(f"Import for client {client_id}: {inserted} inserted, {updated} updated, {skipped} skipped")
    return {
        'success': True,
        'message': f'Successfully imported {inserted + updated} records',
        'inserted': inserted,
        'updated': updated,
        'skipped': skipped,
        'new_columns': new_columns,
        'errors': errors[:MAX_REPORTED_ERRORS],
    }
