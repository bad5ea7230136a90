"""
Model Utilities

This module contains utility functions for the models package.
"""

import math
import re
import uuid


def generate_client_id():
    """Generate a unique client identifier"""
    return str(uuid.uuid4())


def generate_task_id():
    """Generate a unique task identifier"""
    return str(uuid.uuid4())


def generate_report_id():
    """Generate a 32 character hex report identifier"""
    return uuid.uuid4().hex


def column_label(key):
    """Human label for a metric key: 'total_bnpl_applicants' -> 'Total Bnpl Applicants'"""
    return re.sub(r'\b\w', lambda m: m.group(0).upper(), key.replace('_', ' '))


def isoformat(value):
    """ISO string for a date/datetime, None passthrough"""
    return value.isoformat() if value is not None else None


_LEADING_NUMBER = re.compile(r'^\s*-?\d+(?:\.\d+)?')


def to_number(value):
    """Lenient numeric value for metric math: '12' -> 12, '3.5 units' -> 3.5, 'n/a' -> 0"""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    match = _LEADING_NUMBER.match(str(value).replace(',', ''))
    if not match:
        return 0
    number = match.group(0).strip()
    return float(number) if '.' in number else int(number)
