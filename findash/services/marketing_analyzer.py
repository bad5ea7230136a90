"""
Marketing CSV Analyzer

FLOW OVERVIEW
- load_csv(source)
  • Path or file-like object → list of row dicts (header row, trimmed cells,
    empty lines skipped).
- clean_data()
  • Normalize ad-network column names, coerce numeric fields, parse `day` and
    `hour`, drop rows without a channel or a parseable date.
- calculate_metrics()
  • Per-row install conversion, CPI, registration conversion, linking rate.
- perform_time_analysis / analyze_campaigns_and_channels / analyze_user_journey /
  identify_trends / generate_insights
  • Aggregations over the cleaned rows, all JSON serializable.
- run_complete_analysis(source)
  • Whole pipeline plus summary totals; the result is kept on the instance.
- validate_structure(rows)
  • Cheap required-column check used before a full analysis.
"""

import csv
import io
import logging
import os
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

# Raw ad-network export headers → canonical field names
COLUMN_ALIASES = {
    'started onboarding_events': 'onboarding_events',
    'onboarding_events': 'onboarding_events',
    'registered no account linked_events': 'linked_events',
    'linked_events': 'linked_events',
    'delinked account_events': 'delinked',
    'delinked': 'delinked',
}

NUMERIC_FIELDS = (
    'network_cost', 'installs', 'onboarding_events',
    'registered', 'linked_events', 'waus', 'delinked',
)

# Kept with two decimals; every other numeric field is a whole count
DECIMAL_FIELDS = ('network_cost', 'waus')

DATE_FORMATS = ('%m/%d/%Y', '%Y-%m-%d', '%d/%m/%Y')

# CPI reported when money was spent but nothing was installed
NO_INSTALL_CPI = 999999

REQUIRED_COLUMNS = ('day', 'channel', 'network_cost', 'installs')

PRIORITY_ORDER = {'high': 3, 'medium': 2, 'low': 1}

_NUMBER_PATTERN = re.compile(r'-?(?:\d+\.?\d*|\.\d+)')
_INT_PATTERN = re.compile(r'^\s*([+-]?\d+)')


class AnalysisError(Exception):
    """Raised when a CSV cannot be read or analyzed."""


def round_half_up(value: float, digits: int = 2) -> float:
    """Round like a spreadsheet does (0.125 → 0.13)"""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(part: float, whole: float, digits: int = 2) -> float:
    return round_half_up(part / whole * 100, digits) if whole > 0 else 0


def parse_number(value: Any) -> float:
    """Lenient number parsing: '$1,234.50' → 1234.5, garbage → 0"""
    if value is None or value == '':
        return 0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    stripped = re.sub(r'[^0-9.\-]', '', str(value))
    match = _NUMBER_PATTERN.match(stripped)
    return float(match.group(0)) if match else 0


def parse_day(value: Any) -> Optional[str]:
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime('%Y-%m-%d')
        except ValueError:
            continue
    return None


def parse_hour(value: Any) -> int:
    """Hour of an ISO timestamp ('2025-10-01T13:00:00' → 13) or a plain hour number"""
    if not value:
        return 0
    text = str(value).strip()
    if 'T' in text:
        try:
            return datetime.fromisoformat(text).hour
        except ValueError:
            return 0
    match = _INT_PATTERN.match(text)
    return int(match.group(1)) if match else 0


class MarketingAnalyzer:
    """Analyze one ad-network CSV export"""

    def __init__(self):
        self.raw_data: List[Dict[str, Any]] = []
        self.data: List[Dict[str, Any]] = []
        self.analysis_results: Optional[Dict[str, Any]] = None
        self.logger = logging.getLogger(__name__)

    # Loading

    def load_csv(self, source) -> List[Dict[str, Any]]:
        """Read rows from a path or a (text or binary) file object"""
        try:
            if isinstance(source, (str, os.PathLike)):
                with open(source, newline='', encoding='utf-8-sig') as handle:
                    rows = self._read_rows(handle)
            elif isinstance(source.read(0), bytes):
                wrapper = io.TextIOWrapper(source, encoding='utf-8-sig', newline='')
                try:
                    rows = self._read_rows(wrapper)
                finally:
                    # leave the caller's stream open
                    wrapper.detach()
            else:
                rows = self._read_rows(source)
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise AnalysisError(f"Could not read CSV: {e}") from e

        self.raw_data = rows
        self.logger.info(f"CSV loaded: {len(rows)} records")
        return rows

    @staticmethod
    def _read_rows(handle) -> List[Dict[str, Any]]:
        reader = csv.DictReader(handle)
        if reader.fieldnames is None:
            return []
        rows = []
        for record in reader:
            row = {
                (key or '').strip(): (value.strip() if isinstance(value, str) else value)
                for key, value in record.items()
                if key is not None
            }
            if any(value not in (None, '') for value in row.values()):
                rows.append(row)
        return rows

    # Cleaning and per-row metrics

    def _clean_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        cleaned = {}
        for key, value in record.items():
            name = key.strip()
            cleaned[COLUMN_ALIASES.get(name, name)] = value

        for field in NUMERIC_FIELDS:
            number = parse_number(cleaned.get(field))
            if field in DECIMAL_FIELDS:
                cleaned[field] = round_half_up(number, 2)
            else:
                cleaned[field] = int(round_half_up(number, 0))

        if cleaned.get('day'):
            cleaned['parsed_date'] = parse_day(cleaned['day'])
            cleaned['parsed_hour'] = parse_hour(cleaned.get('hour'))

        if isinstance(cleaned.get('channel'), str):
            cleaned['channel'] = cleaned['channel'].strip()

        if cleaned.get('creative_network'):
            cleaned['campaign_name'] = str(cleaned['creative_network']).strip()

        return cleaned

    def clean_data(self) -> Dict[str, int]:
        cleaned = [self._clean_record(record) for record in self.raw_data]
        self.data = [r for r in cleaned if r.get('channel') and r.get('parsed_date')]
        self.logger.info(f"Data cleaning completed: {len(self.data)} valid records")
        return {
            'originalCount': len(self.raw_data),
            'cleanedCount': len(self.data),
            'removedCount': len(self.raw_data) - len(self.data),
        }

    def calculate_metrics(self) -> List[Dict[str, Any]]:
        for record in self.data:
            onboarding = record['onboarding_events']
            installs = record['installs']
            cost = record['network_cost']
            registered = record['registered']

            record['install_conversion_rate'] = percentage(installs, onboarding)
            if installs > 0:
                record['cpi'] = round_half_up(cost / installs, 2)
            else:
                record['cpi'] = NO_INSTALL_CPI if cost > 0 else 0
            record['registration_conversion_rate'] = percentage(registered, onboarding)
            record['account_linking_rate'] = percentage(record['linked_events'], registered)
            record['total_spend'] = cost
            record['total_installs'] = installs
        return self.data

    # Aggregations

    def perform_time_analysis(self) -> Dict[str, List[Dict[str, Any]]]:
        daily: Dict[str, Dict[str, Any]] = {}
        hourly: Dict[int, Dict[str, Any]] = {}
        hourly_by_day: Dict[int, Dict[str, Any]] = {}

        for record in self.data:
            day = record['parsed_date']
            hour = record.get('parsed_hour') or 0
            cost = record['network_cost']
            installs = record['installs']
            onboarding = record['onboarding_events']

            day_stats = daily.setdefault(day, {
                'date': day, 'total_cost': 0, 'total_installs': 0,
                'total_onboarding': 0, 'total_registered': 0, 'records': 0,
            })
            day_stats['total_cost'] += cost
            day_stats['total_installs'] += installs
            day_stats['total_onboarding'] += onboarding
            day_stats['total_registered'] += record['registered']
            day_stats['records'] += 1

            hour_stats = hourly.setdefault(hour, {
                'hour': hour, 'total_cost': 0, 'total_installs': 0,
                'total_onboarding': 0, 'avg_cpi': 0, 'records': 0,
            })
            hour_stats['total_cost'] += cost
            hour_stats['total_installs'] += installs
            hour_stats['total_onboarding'] += onboarding
            hour_stats['records'] += 1

            comparison = hourly_by_day.setdefault(hour, {
                'hour': hour, 'dailyBreakdown': {}, 'totalCost': 0, 'totalInstalls': 0,
                'totalOnboarding': 0, 'avgCPI': 0, 'bestDay': None, 'worstDay': None,
            })
            breakdown = comparison['dailyBreakdown'].setdefault(day, {
                'date': day, 'cost': 0, 'installs': 0, 'onboarding': 0,
                'cpi': 0, 'conversion_rate': 0,
            })
            breakdown['cost'] += cost
            breakdown['installs'] += installs
            breakdown['onboarding'] += onboarding
            comparison['totalCost'] += cost
            comparison['totalInstalls'] += installs
            comparison['totalOnboarding'] += onboarding

        for hour_stats in hourly.values():
            hour_stats['total_cost'] = round_half_up(hour_stats['total_cost'], 2)
            hour_stats['avg_cpi'] = (
                round_half_up(hour_stats['total_cost'] / hour_stats['total_installs'], 2)
                if hour_stats['total_installs'] > 0 else 0
            )

        for comparison in hourly_by_day.values():
            days = comparison['dailyBreakdown']
            for day_data in days.values():
                day_data['cpi'] = day_data['cost'] / day_data['installs'] if day_data['installs'] > 0 else 0
                day_data['conversion_rate'] = (
                    day_data['installs'] / day_data['onboarding'] * 100 if day_data['onboarding'] > 0 else 0
                )
            with_installs = [d for d in days.values() if d['installs'] > 0]
            if with_installs:
                # First occurrence wins ties
                comparison['bestDay'] = max(with_installs, key=lambda d: d['conversion_rate'])
                comparison['worstDay'] = min(with_installs, key=lambda d: d['conversion_rate'])
            comparison['avgCPI'] = (
                comparison['totalCost'] / comparison['totalInstalls'] if comparison['totalInstalls'] > 0 else 0
            )
            comparison['dailyBreakdown'] = dict(sorted(days.items()))

        for day_stats in daily.values():
            day_stats['total_cost'] = round_half_up(day_stats['total_cost'], 2)

        return {
            'daily': [daily[d] for d in sorted(daily)],
            'hourly': [hourly[h] for h in sorted(hourly)],
            'hourlyComparison': [hourly_by_day[h] for h in sorted(hourly_by_day)],
        }

    def analyze_campaigns_and_channels(self) -> Dict[str, List[Dict[str, Any]]]:
        channels: Dict[str, Dict[str, Any]] = {}
        campaigns: Dict[str, Dict[str, Any]] = {}

        for record in self.data:
            channel = channels.setdefault(record['channel'], {
                'channel': record['channel'], 'total_cost': 0, 'total_installs': 0,
                'total_onboarding': 0, 'total_registered': 0, 'campaigns': [],
                'avg_cpi': 0, 'conversion_rate': 0,
            })
            channel['total_cost'] += record['network_cost']
            channel['total_installs'] += record['installs']
            channel['total_onboarding'] += record['onboarding_events']
            channel['total_registered'] += record['registered']

            campaign_name = record.get('campaign_name')
            if not campaign_name:
                continue
            if campaign_name not in channel['campaigns']:
                channel['campaigns'].append(campaign_name)

            campaign = campaigns.setdefault(campaign_name, {
                'campaign': campaign_name, 'channel': record['channel'], 'total_cost': 0,
                'total_installs': 0, 'total_onboarding': 0, 'avg_cpi': 0, 'conversion_rate': 0,
            })
            campaign['total_cost'] += record['network_cost']
            campaign['total_installs'] += record['installs']
            campaign['total_onboarding'] += record['onboarding_events']

        for stats in list(channels.values()) + list(campaigns.values()):
            stats['total_cost'] = round_half_up(stats['total_cost'], 2)
            stats['avg_cpi'] = (
                round_half_up(stats['total_cost'] / stats['total_installs'], 2)
                if stats['total_installs'] > 0 else 0
            )
            stats['conversion_rate'] = percentage(stats['total_installs'], stats['total_onboarding'])

        for channel in channels.values():
            channel['campaign_count'] = len(channel['campaigns'])

        top_channels = sorted(channels.values(), key=lambda c: c['total_installs'], reverse=True)[:10]
        top_campaigns = sorted(
            (c for c in campaigns.values() if c['total_installs'] > 0),
            key=lambda c: c['conversion_rate'],
            reverse=True,
        )[:15]

        return {
            'channels': top_channels,
            'campaigns': top_campaigns,
            'allChannels': list(channels.values()),
            'allCampaigns': list(campaigns.values()),
        }

    def analyze_user_journey(self) -> Dict[str, Any]:
        onboarding = sum(r['onboarding_events'] for r in self.data)
        installs = sum(r['installs'] for r in self.data)
        registered = sum(r['registered'] for r in self.data)
        linked = sum(r['linked_events'] for r in self.data)

        def share(part, whole):
            return part / whole * 100 if whole > 0 else 0

        funnel = [
            {'step': 'Onboarding Events', 'count': onboarding, 'percentage': 100, 'dropoff': 0},
            {'step': 'Installs', 'count': installs,
             'percentage': share(installs, onboarding),
             'dropoff': share(onboarding - installs, onboarding)},
            {'step': 'Registrations', 'count': registered,
             'percentage': share(registered, onboarding),
             'dropoff': share(installs - registered, installs)},
            {'step': 'Account Linked', 'count': linked,
             'percentage': share(linked, onboarding),
             'dropoff': share(registered - linked, registered)},
        ]

        critical = [
            {'step': step['step'], 'dropoff': step['dropoff'], 'impact': 'high'}
            for step in funnel if step['dropoff'] > 50
        ]

        return {
            'funnel': funnel,
            'criticalDropoffs': critical,
            'overallConversionRate': share(linked, onboarding),
        }

    def identify_trends(self) -> Dict[str, List[Dict[str, Any]]]:
        daily = self.perform_time_analysis()['daily']
        anomalies = []
        trends = []

        if len(daily) > 1:
            avg_installs = sum(d['total_installs'] for d in daily) / len(daily)
            avg_cost = sum(d['total_cost'] for d in daily) / len(daily)

            for day in daily:
                if day['total_installs'] > avg_installs * 2:
                    anomalies.append({
                        'type': 'spike', 'metric': 'installs', 'date': day['date'],
                        'value': day['total_installs'], 'average': avg_installs,
                        'deviation': (day['total_installs'] - avg_installs) / avg_installs * 100,
                    })
                if avg_installs > 0 and day['total_installs'] < avg_installs * 0.5:
                    anomalies.append({
                        'type': 'drop', 'metric': 'installs', 'date': day['date'],
                        'value': day['total_installs'], 'average': avg_installs,
                        'deviation': (avg_installs - day['total_installs']) / avg_installs * 100,
                    })
                if day['total_cost'] > avg_cost * 2:
                    anomalies.append({
                        'type': 'spike', 'metric': 'cost', 'date': day['date'],
                        'value': day['total_cost'], 'average': avg_cost,
                        'deviation': (day['total_cost'] - avg_cost) / avg_cost * 100,
                    })

            if len(daily) >= 3:
                middle = len(daily) // 2
                first_half, second_half = daily[:middle], daily[middle:]
                first_avg = sum(d['total_installs'] for d in first_half) / len(first_half)
                second_avg = sum(d['total_installs'] for d in second_half) / len(second_half)
                # No baseline to compare against
                if first_avg > 0:
                    change = (second_avg - first_avg) / first_avg * 100
                    if abs(change) > 20:
                        trends.append({
                            'metric': 'installs',
                            'direction': 'increasing' if change > 0 else 'decreasing',
                            'change': abs(change),
                            'period': f"{daily[0]['date']} to {daily[-1]['date']}",
                        })

        return {'anomalies': anomalies[:10], 'trends': trends}

    def generate_insights(self) -> Dict[str, List[Dict[str, Any]]]:
        channel_data = self.analyze_campaigns_and_channels()
        time_data = self.perform_time_analysis()
        journey = self.analyze_user_journey()
        trend_data = self.identify_trends()

        insights = []
        recommendations = []

        if channel_data['channels']:
            best = channel_data['channels'][0]
            insights.append({
                'type': 'best_channel',
                'title': 'Top Performing Channel',
                'description': (f"{best['channel']} is your best performing channel with "
                                f"{best['total_installs']} total installs and "
                                f"{best['conversion_rate']:.2f}% conversion rate."),
                'data': best,
                'priority': 'high',
            })
            recommendations.append({
                'type': 'budget_allocation',
                'title': 'Increase Budget for Top Channel',
                'description': (f"Consider increasing budget allocation to {best['channel']} "
                                f"as it shows the highest conversion rate."),
                'impact': 'high',
                'effort': 'low',
            })

        priced = sorted((c for c in channel_data['channels'] if c['avg_cpi'] > 0), key=lambda c: c['avg_cpi'])
        if priced:
            cheapest = priced[0]
            insights.append({
                'type': 'cost_efficiency',
                'title': 'Most Cost-Efficient Channel',
                'description': (f"{cheapest['channel']} has the lowest cost per install at "
                                f"${cheapest['avg_cpi']:.2f}."),
                'data': cheapest,
                'priority': 'medium',
            })

        if time_data['hourly']:
            best_hour = max(time_data['hourly'], key=lambda h: h['total_installs'])
            insights.append({
                'type': 'peak_hour',
                'title': 'Peak Performance Hour',
                'description': (f"Hour {best_hour['hour']} shows the highest install volume with "
                                f"{best_hour['total_installs']} total installs."),
                'data': best_hour,
                'priority': 'medium',
            })
            recommendations.append({
                'type': 'timing_optimization',
                'title': 'Optimize Ad Scheduling',
                'description': f"Focus ad spend during hour {best_hour['hour']} when conversion rates are highest.",
                'impact': 'medium',
                'effort': 'low',
            })

        if journey['criticalDropoffs']:
            worst = journey['criticalDropoffs'][0]
            insights.append({
                'type': 'conversion_issue',
                'title': 'Critical Conversion Drop-off',
                'description': (f"There's a {worst['dropoff']:.1f}% drop-off at {worst['step']}. "
                                f"This represents a significant optimization opportunity."),
                'data': worst,
                'priority': 'high',
            })
            recommendations.append({
                'type': 'conversion_optimization',
                'title': 'Improve Conversion Funnel',
                'description': (f"Focus on reducing the drop-off rate at {worst['step']} "
                                f"through UX improvements or retargeting."),
                'impact': 'high',
                'effort': 'medium',
            })

        for trend in trend_data['trends']:
            insights.append({
                'type': 'trend',
                'title': f"{trend['direction'].capitalize()} Trend Detected",
                'description': f"{trend['metric']} is {trend['direction']} by {trend['change']:.1f}% over {trend['period']}.",
                'data': trend,
                'priority': 'high' if trend['change'] > 50 else 'medium',
            })

        top_campaigns = channel_data['campaigns'][:3]
        if top_campaigns:
            names = ', '.join(c['campaign'][:30] + '...' for c in top_campaigns)
            insights.append({
                'type': 'top_campaigns',
                'title': 'Best Performing Campaigns',
                'description': f"Top 3 campaigns by conversion rate: {names}.",
                'data': top_campaigns,
                'priority': 'medium',
            })
            recommendations.append({
                'type': 'campaign_scaling',
                'title': 'Scale Winning Campaigns',
                'description': 'Consider increasing budget for top-performing campaigns while pausing underperformers.',
                'impact': 'high',
                'effort': 'medium',
            })

        # sorted() is stable, so equal priorities keep discovery order
        return {
            'insights': sorted(insights, key=lambda i: PRIORITY_ORDER[i['priority']], reverse=True),
            'recommendations': sorted(recommendations, key=lambda r: PRIORITY_ORDER[r['impact']], reverse=True),
        }

    # Pipeline

    def run_complete_analysis(self, source) -> Dict[str, Any]:
        """Load, clean and analyze `source`; raises AnalysisError on unreadable input"""
        self.load_csv(source)
        cleaning = self.clean_data()
        self.calculate_metrics()

        time_analysis = self.perform_time_analysis()
        campaign_analysis = self.analyze_campaigns_and_channels()
        journey = self.analyze_user_journey()
        trends = self.identify_trends()
        insights = self.generate_insights()

        total_cost = round_half_up(sum(r['network_cost'] for r in self.data), 2)
        total_installs = sum(r['installs'] for r in self.data)
        total_onboarding = sum(r['onboarding_events'] for r in self.data)
        total_registered = sum(r['registered'] for r in self.data)
        dates = sorted(r['parsed_date'] for r in self.data)

        self.analysis_results = {
            'summary': {
                'totalRecords': len(self.data),
                'totalCost': total_cost,
                'totalInstalls': total_installs,
                'totalOnboarding': total_onboarding,
                'totalRegistered': total_registered,
                'avgCPI': round_half_up(total_cost / total_installs, 2) if total_installs > 0 else 0,
                'overallConversionRate': percentage(total_installs, total_onboarding),
                'dateRange': {
                    'start': dates[0] if dates else None,
                    'end': dates[-1] if dates else None,
                },
            },
            'cleaning': cleaning,
            'timeAnalysis': time_analysis,
            'campaignAnalysis': campaign_analysis,
            'userJourney': journey,
            'trends': trends,
            'insights': insights['insights'],
            'recommendations': insights['recommendations'],
            'rawDataSample': self.data[:5],
        }

        summary = self.analysis_results['summary']
        self.logger.info(
            f"Marketing analysis finished: {summary['totalRecords']} records, "
            f"cost {summary['totalCost']:.2f}, installs {summary['totalInstalls']}, "
            f"CPI {summary['avgCPI']:.2f}, {len(insights['insights'])} insights"
        )
        return self.analysis_results

    def get_results(self) -> Optional[Dict[str, Any]]:
        return self.analysis_results

    def export_results(self) -> Dict[str, Any]:
        return {
            'timestamp': datetime.utcnow().isoformat(),
            'analysis': self.analysis_results,
            'metadata': {'version': '1.0.0', 'analyzer': 'MarketingAnalyzer'},
        }

    # Validation

    @staticmethod
    def validate_structure(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Check the first rows of a raw CSV for the columns an analysis needs"""
        sample = rows[:5]
        if not sample:
            return {'isValid': False, 'rowCount': 0, 'columns': [], 'missingColumns': [],
                    'sampleData': [], 'issues': ['No data rows found']}

        columns = list(sample[0].keys())
        lowered = [c.lower() for c in columns]
        joined = ' '.join(lowered)

        missing = []
        for required in REQUIRED_COLUMNS:
            if not any(required in c for c in lowered):
                missing.append(required)
        if 'onboarding' not in joined and not any('started' in c for c in lowered):
            missing.append('onboarding_events (or started)')

        issues = []
        if missing:
            issues.append(f"Missing required columns: {', '.join(missing)}")

        for index, row in enumerate(sample, start=1):
            for column in REQUIRED_COLUMNS:
                if column in row and row[column] in (None, ''):
                    issues.append(f"Row {index}: Missing value for {column}")

        return {
            'isValid': not issues,
            'rowCount': len(sample),
            'columns': columns,
            'missingColumns': missing,
            'sampleData': sample,
            'issues': issues,
        }
