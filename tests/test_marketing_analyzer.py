"""
Tests for the marketing CSV analyzer.

Fixture CSV (after cleaning, two rows are dropped):
  day        hour channel campaign      cost installs onboarding registered linked
  10/01/2025 9    Google  Brand Search  100  10       100        8          4
  10/01/2025 13   Meta    Story Ads     50   0        40         0          0
  10/02/2025 13   Google  Brand Search  30   20       50         10         5
  10/03/2025 9    Google  Generic       20   40       60         20         10
"""

import io

import pytest

from findash.services.marketing_analyzer import (
    AnalysisError, MarketingAnalyzer, NO_INSTALL_CPI, parse_day, parse_hour, parse_number, round_half_up
)

HEADER = ('day,hour,channel,creative_network,network_cost,installs,'
          'started onboarding_events,registered,registered no account linked_events\n')

CAMPAIGN_CSV = HEADER + (
    '10/01/2025,2025-10-01T09:00:00,Google,Brand Search,"$100.00",10,100,8,4\n'
    '10/01/2025,2025-10-01T13:00:00,Meta,Story Ads,50,0,40,0,0\n'
    '10/02/2025,2025-10-02T13:00:00,Google,Brand Search,30,20,50,10,5\n'
    '10/03/2025,2025-10-03T09:00:00,Google,Generic,20,40,60,20,10\n'
    ',,,,,,,,\n'
    '10/04/2025,,,Orphan,1,1,1,1,1\n'
    'someday,9,TikTok,Lost,1,1,1,1,1\n'
)


@pytest.fixture
def analyzer():
    return MarketingAnalyzer()


@pytest.fixture
def results(analyzer):
    return analyzer.run_complete_analysis(io.BytesIO(CAMPAIGN_CSV.encode('utf-8')))


class TestParsing:

    @pytest.mark.parametrize('value,expected', [
        (0.125, 0.13), (2.675, 2.68), (1.005, 1.01), (-0.5, -0.5),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value, 2) == expected

    @pytest.mark.parametrize('value,expected', [
        ('$1,234.50', 1234.5), ('abc', 0), ('', 0), (None, 0), (7, 7), ('1.2.3', 1.2),
    ])
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected

    def test_parse_day_formats(self):
        assert parse_day('10/1/2025') == '2025-10-01'
        assert parse_day('2025-10-01') == '2025-10-01'
        assert parse_day('31/10/2025') == '2025-10-31'
        assert parse_day('soon') is None

    @pytest.mark.parametrize('value,expected', [
        ('2025-10-01T13:00:00', 13), ('7', 7), ('', 0), (None, 0), ('noon', 0),
    ])
    def test_parse_hour(self, value, expected):
        assert parse_hour(value) == expected


class TestLoadAndClean:

    def test_load_from_path(self, analyzer, tmp_path):
        path = tmp_path / 'campaign.csv'
        path.write_text(CAMPAIGN_CSV, encoding='utf-8')
        rows = analyzer.load_csv(str(path))
        # the all-empty line is skipped while reading
        assert len(rows) == 6
        assert rows[0]['started onboarding_events'] == '100'

    def test_load_from_text_stream(self, analyzer):
        assert len(analyzer.load_csv(io.StringIO(CAMPAIGN_CSV))) == 6

    def test_missing_file(self, analyzer, tmp_path):
        with pytest.raises(AnalysisError):
            analyzer.load_csv(str(tmp_path / 'absent.csv'))

    def test_clean_data_drops_rows_without_channel_or_date(self, analyzer):
        analyzer.load_csv(io.StringIO(CAMPAIGN_CSV))
        assert analyzer.clean_data() == {'originalCount': 6, 'cleanedCount': 4, 'removedCount': 2}

        first = analyzer.data[0]
        assert first['onboarding_events'] == 100
        assert first['linked_events'] == 4
        assert first['network_cost'] == 100.0
        assert first['parsed_date'] == '2025-10-01'
        assert first['parsed_hour'] == 9
        assert first['campaign_name'] == 'Brand Search'

    def test_row_metrics(self, analyzer):
        analyzer.load_csv(io.StringIO(CAMPAIGN_CSV))
        analyzer.clean_data()
        google, meta = analyzer.calculate_metrics()[:2]

        assert google['cpi'] == 10.0
        assert google['install_conversion_rate'] == 10.0
        assert google['account_linking_rate'] == 50.0
        assert meta['cpi'] == NO_INSTALL_CPI
        assert meta['registration_conversion_rate'] == 0


class TestCompleteAnalysis:

    def test_summary(self, results):
        summary = results['summary']
        assert summary['totalRecords'] == 4
        assert summary['totalCost'] == 200.0
        assert summary['totalInstalls'] == 70
        assert summary['totalOnboarding'] == 250
        assert summary['totalRegistered'] == 38
        assert summary['avgCPI'] == 2.86
        assert summary['overallConversionRate'] == 28.0
        assert summary['dateRange'] == {'start': '2025-10-01', 'end': '2025-10-03'}
        assert len(results['rawDataSample']) == 4

    def test_funnel(self, results):
        journey = results['userJourney']
        steps = {s['step']: s for s in journey['funnel']}
        assert steps['Installs']['percentage'] == pytest.approx(28.0)
        assert steps['Installs']['dropoff'] == pytest.approx(72.0)
        assert steps['Account Linked']['dropoff'] == pytest.approx(50.0)
        assert [d['step'] for d in journey['criticalDropoffs']] == ['Installs']
        assert journey['overallConversionRate'] == pytest.approx(7.6)

    def test_channels_and_campaigns(self, results):
        campaigns = results['campaignAnalysis']
        google = campaigns['channels'][0]
        assert google['channel'] == 'Google'
        assert google['total_installs'] == 70
        assert google['avg_cpi'] == 2.14
        assert google['campaigns'] == ['Brand Search', 'Generic']
        assert google['campaign_count'] == 2

        assert [c['campaign'] for c in campaigns['campaigns']] == ['Generic', 'Brand Search']
        assert len(campaigns['allCampaigns']) == 3

    def test_time_analysis(self, results):
        time_analysis = results['timeAnalysis']
        assert [d['date'] for d in time_analysis['daily']] == ['2025-10-01', '2025-10-02', '2025-10-03']
        assert [(h['hour'], h['total_installs']) for h in time_analysis['hourly']] == [(9, 50), (13, 20)]

        afternoon = time_analysis['hourlyComparison'][1]
        assert afternoon['bestDay']['date'] == '2025-10-02'
        assert afternoon['worstDay']['date'] == '2025-10-02'
        assert list(afternoon['dailyBreakdown']) == ['2025-10-01', '2025-10-02']

    def test_trends_and_anomalies(self, results):
        anomalies = {(a['type'], a['metric'], a['date']) for a in results['trends']['anomalies']}
        assert ('drop', 'installs', '2025-10-01') in anomalies
        assert ('spike', 'cost', '2025-10-01') in anomalies

        trend = results['trends']['trends'][0]
        assert trend['direction'] == 'increasing'
        assert trend['change'] == pytest.approx(200.0)

    def test_insights_are_priority_ordered(self, results):
        assert [i['type'] for i in results['insights']] == [
            'best_channel', 'conversion_issue', 'trend', 'cost_efficiency', 'peak_hour', 'top_campaigns',
        ]
        assert [r['type'] for r in results['recommendations']] == [
            'budget_allocation', 'conversion_optimization', 'campaign_scaling', 'timing_optimization',
        ]

    def test_flat_installs_have_no_trend(self, analyzer):
        flat = HEADER + ''.join(
            f'10/0{day}/2025,9,Google,Brand,10,5,10,1,1\n' for day in range(1, 5)
        )
        result = analyzer.run_complete_analysis(io.StringIO(flat))
        assert result['trends'] == {'anomalies': [], 'trends': []}

    def test_zero_install_baseline_skips_trend(self, analyzer):
        data = HEADER + (
            '10/01/2025,9,Google,Brand,10,0,10,0,0\n'
            '10/02/2025,9,Google,Brand,10,5,10,1,1\n'
            '10/03/2025,9,Google,Brand,10,5,10,1,1\n'
        )
        assert analyzer.run_complete_analysis(io.StringIO(data))['trends']['trends'] == []

    def test_export_results(self, analyzer, results):
        exported = analyzer.export_results()
        assert exported['analysis'] is results
        assert exported['metadata']['analyzer'] == 'MarketingAnalyzer'


class TestValidateStructure:

    def test_valid_rows(self, analyzer):
        rows = analyzer.load_csv(io.StringIO(CAMPAIGN_CSV))[:4]
        validation = MarketingAnalyzer.validate_structure(rows)
        assert validation['isValid'] is True
        assert validation['rowCount'] == 4
        assert validation['missingColumns'] == []

    def test_missing_columns(self):
        validation = MarketingAnalyzer.validate_structure([{'day': '10/1/2025', 'channel': 'Meta'}])
        assert validation['isValid'] is False
        assert validation['missingColumns'] == ['network_cost', 'installs', 'onboarding_events (or started)']

    def test_missing_values(self, analyzer):
        rows = analyzer.load_csv(io.StringIO(CAMPAIGN_CSV))
        issues = MarketingAnalyzer.validate_structure(rows)['issues']
        assert 'Row 5: Missing value for channel' in issues

    def test_no_rows(self):
        validation = MarketingAnalyzer.validate_structure([])
        assert validation['isValid'] is False
        assert validation['issues'] == ['No data rows found']
