"""
Report Analytics

Period comparisons over daily report metrics. Every function takes the
output of `metric_rows` (one entry per report: date, derived calendar fields
and the selected metric value) so the routes only deal with query params.

Calendar conventions: week_of_month = ceil(day / 7) capped at 5, and
day_of_week counts from Sunday = 0.
"""

import math
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from .marketing_analyzer import round_half_up

DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']

DEFAULT_METRIC = 'total_advance_applicants'

VOLUME_WEIGHT = 0.7
STABILITY_WEIGHT = 0.3

DAILY_WEEKLY_VIEWS = ('weekly', 'daily', 'heatmap', 'weekdays')


def derived_fields(report_date: date) -> Dict[str, int]:
    week_of_month = math.ceil(report_date.day / 7)
    return {
        'year': report_date.year,
        'month_num': report_date.month,
        'month_key': f"{report_date.year}-{report_date.month:02d}",
        'week_of_month': min(week_of_month, 5),
        'day_of_week': (report_date.weekday() + 1) % 7,
    }


def parse_int_list(text: Optional[str]) -> List[int]:
    """'1, 2,x' → [1, 2]"""
    values = []
    for part in (text or '').split(','):
        part = part.strip()
        if part.lstrip('-').isdigit():
            values.append(int(part))
    return values


def parse_str_list(text: Optional[str]) -> List[str]:
    return [part.strip() for part in (text or '').split(',') if part.strip()]


def metric_rows(reports: Iterable[Any], metric: str) -> List[Dict[str, Any]]:
    """Reports → [{'report_date', 'derived', 'value'}] ordered by date"""
    rows = [
        {
            'report_date': report.report_date.isoformat(),
            'derived': derived_fields(report.report_date),
            'value': report.metric(metric),
        }
        for report in reports
    ]
    rows.sort(key=lambda r: r['report_date'])
    return rows


def period_changes(rows: List[Dict[str, Any]], key: str = 'month') -> List[Dict[str, Any]]:
    """Percentage change between consecutive periods (0 when the previous is 0)"""
    changes = []
    for previous, current in zip(rows, rows[1:]):
        pct = (current['value'] - previous['value']) / previous['value'] * 100 if previous['value'] > 0 else 0
        changes.append({'from': previous[key], 'to': current[key], 'pct': round_half_up(pct, 1)})
    return changes


def _filter_weeks(rows, weeks):
    if weeks == 'all':
        return rows
    week_list = parse_int_list(weeks)
    return [r for r in rows if r['derived']['week_of_month'] in week_list]


def _filter_months(rows, months):
    if not months:
        return rows
    month_list = parse_str_list(months)
    return [r for r in rows if r['derived']['month_key'] in month_list]


def _totals(rows, key_func):
    totals: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        bucket = totals.setdefault(key_func(row), {'value': 0, 'daysCounted': 0})
        bucket['value'] += row['value']
        bucket['daysCounted'] += 1
    return totals


def _week_key(row):
    return f"{row['derived']['month_key']}-W{row['derived']['week_of_month']}"


def monthly_comparison(rows, metric=DEFAULT_METRIC, weeks='all', months=None, max_days=None):
    """Monthly totals, or per-week totals when specific weeks are selected"""
    if max_days and max_days > 0:
        by_month: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            by_month.setdefault(row['derived']['month_key'], []).append(row)
        rows = [r for month_rows in by_month.values() for r in month_rows[:max_days]]

    rows = _filter_months(_filter_weeks(rows, weeks), months)

    if weeks == 'all':
        totals = _totals(rows, lambda r: r['derived']['month_key'])
    else:
        totals = _totals(rows, _week_key)

    result_rows = [
        {'month': key, 'value': totals[key]['value'], 'daysCounted': totals[key]['daysCounted']}
        for key in sorted(totals)
    ]

    if weeks == 'all':
        selected_weeks = 'all'
        selected_months = parse_str_list(months) if months else [r['month'] for r in result_rows]
    else:
        selected_weeks = parse_int_list(weeks)
        selected_months = parse_str_list(months)

    return {
        'metric': metric,
        'weeks': selected_weeks,
        'months': selected_months,
        'rows': result_rows,
        'mom_changes': period_changes(result_rows),
    }


def weekly_comparison(rows, metric=DEFAULT_METRIC, days='0', month=None):
    """For each selected weekday, its monthly totals"""
    if month:
        rows = [r for r in rows if r['derived']['month_key'] == month]

    day_list = [d for d in parse_int_list(days) if 0 <= d <= 6]
    series = []
    for day_num in day_list:
        totals: Dict[str, int] = {}
        for row in rows:
            if row['derived']['day_of_week'] == day_num:
                month_key = row['derived']['month_key']
                totals[month_key] = totals.get(month_key, 0) + row['value']
        series.append({
            'label': DAY_NAMES[day_num],
            'points': [{'month': key, 'value': totals[key]} for key in sorted(totals)],
        })

    return {'metric': metric, 'days': day_list, 'month': month or None, 'series': series}


def _weekday_breakdown(rows):
    totals = {day: 0 for day in range(7)}
    counts = {day: 0 for day in range(7)}
    for row in rows:
        day = row['derived']['day_of_week']
        totals[day] += row['value']
        counts[day] += 1
    breakdown = [
        {
            'weekday': day,
            'total_value': totals[day],
            'avg_value': round_half_up(totals[day] / counts[day], 2) if counts[day] else 0,
            'data_points': counts[day],
        }
        for day in range(7)
    ]
    return breakdown, totals, counts


def _parse_bound(text: Optional[str], default: date) -> date:
    if not text:
        return default
    try:
        return datetime.strptime(text.strip()[:10], '%Y-%m-%d').date()
    except ValueError:
        return default


def daily_weekly(rows, metric=DEFAULT_METRIC, view='weekly', weeks='all', months=None,
                 start_date=None, end_date=None, weekdays=None):
    """Weekly totals, daily points, or weekday heatmap/comparison"""
    available_months = sorted({r['derived']['month_key'] for r in rows})

    if start_date or end_date:
        start = _parse_bound(start_date, date(1900, 1, 1)).isoformat()
        end = _parse_bound(end_date, date(2099, 12, 31)).isoformat()
        rows = [r for r in rows if start <= r['report_date'] <= end]

    rows = _filter_months(_filter_weeks(rows, weeks), months)

    if weekdays:
        weekday_list = parse_int_list(weekdays)
        rows = [r for r in rows if r['derived']['day_of_week'] in weekday_list]

    response: Dict[str, Any] = {
        'metric': metric,
        'weeks': 'all' if weeks == 'all' else parse_int_list(weeks),
        'months': parse_str_list(months),
        'view': view,
    }

    if view == 'weekly':
        totals = _totals(rows, _week_key)
        week_rows = [
            {'week': key, 'value': totals[key]['value'], 'daysCounted': totals[key]['daysCounted']}
            for key in sorted(totals)
        ]
        values = [r['value'] for r in week_rows]
        response['rows'] = week_rows
        response['weekly_summary'] = {
            'best_week': next((r for r in week_rows if r['value'] == max(values)), None) if values else None,
            'worst_week': next((r for r in week_rows if r['value'] == min(values)), None) if values else None,
            'avg_value': round_half_up(sum(values) / len(values), 2) if values else 0,
            'total_weeks': len(week_rows),
        }
    elif view == 'daily':
        response['rows'] = [
            {
                'date': r['report_date'],
                'value': r['value'],
                'weekday': r['derived']['day_of_week'],
                'week': r['derived']['week_of_month'],
                'month': r['derived']['month_key'],
            }
            for r in rows
        ]
    elif view == 'heatmap':
        response['weekday_breakdown'] = _weekday_breakdown(rows)[0]
    elif view == 'weekdays':
        breakdown, totals, counts = _weekday_breakdown(rows)
        total_count = sum(counts.values())
        response['weekday_data'] = breakdown
        response['total_avg'] = round_half_up(sum(totals.values()) / total_count, 2) if total_count else 0

    response['available_months'] = available_months
    return response


def best_month(rows, metric=DEFAULT_METRIC, weeks='all'):
    """Rank months by 0.7 * min-max(volume) + 0.3 * max(0, 1 - stddev/mean)"""
    rows = _filter_weeks(rows, weeks)

    by_month: Dict[str, List[float]] = {}
    for row in rows:
        by_month.setdefault(row['derived']['month_key'], []).append(row['value'])

    scores = []
    for month, values in by_month.items():
        series = np.array(values, dtype=float)
        mean = float(series.mean())
        stability = max(0.0, 1 - float(series.std()) / mean) if mean > 0 else 0
        scores.append({
            'month': month,
            'value': sum(values),
            'stability': stability,
            'rawStability': stability,
        })

    if scores:
        volumes = [s['value'] for s in scores]
        low, spread = min(volumes), max(volumes) - min(volumes)
        for entry in scores:
            normalized = (entry['value'] - low) / spread if spread > 0 else 1
            entry['score'] = VOLUME_WEIGHT * normalized + STABILITY_WEIGHT * entry['stability']

    scores.sort(key=lambda s: s['score'], reverse=True)
    for rank, entry in enumerate(scores, start=1):
        entry['rank'] = rank
        entry['score'] = round_half_up(entry['score'], 2)

    return {
        'metric': metric,
        'weeks': weeks,
        'scores': scores,
        'winner': scores[0] if scores else None,
        'explain': {
            'method': 'minmax',
            'weights': {'volume': VOLUME_WEIGHT, 'stability': STABILITY_WEIGHT},
            'notes': 'Score = 0.7*normalized(volume) + 0.3*(1 - stddev/mean)',
        },
    }
