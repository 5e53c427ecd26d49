"""
Tests for the command line interface.
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pandas as pd
import pytest
from click.testing import CliRunner

from conftest import make_record
from market_intel.cli import cli


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('LOG_FILE', str(tmp_path / 'market_intel.log'))
    return CliRunner()


@pytest.fixture
def stocked_pipeline(pipeline, stub_api):
    # The CLI researches against the real current time
    now = datetime.now(timezone.utc)
    stub_api.default = [make_record(f"Nike Dunk Low Panda {i}", 100.0 + i, days_ago=1 + i, now=now)
                        for i in range(8)]
    return pipeline


class TestResearchCommand:
    """market-intel research"""

    def test_requires_app_id(self, runner, monkeypatch):
        monkeypatch.delenv('EBAY_APP_ID', raising=False)

        result = runner.invoke(cli, ['research', '--brand', 'Nike'])

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.output

    def test_prints_summary(self, runner, monkeypatch, stocked_pipeline):
        monkeypatch.setenv('EBAY_APP_ID', 'test-app-id')

        with patch('market_intel.cli.MarketResearchPipeline', return_value=stocked_pipeline):
            result = runner.invoke(cli, ['research', '--brand', 'Nike', '--model', 'Dunk Low',
                                         '--category', 'sneakers', '--condition', 'good'])

        assert result.exit_code == 0, result.output
        assert "Market Analysis" in result.output
        assert "Sold comps:      8" in result.output

    def test_json_output(self, runner, monkeypatch, stocked_pipeline):
        monkeypatch.setenv('EBAY_APP_ID', 'test-app-id')

        with patch('market_intel.cli.MarketResearchPipeline', return_value=stocked_pipeline):
            result = runner.invoke(cli, ['research', '--brand', 'Nike', '--model', 'Dunk Low', '--json'])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output[result.output.index('{'):])
        assert data['pricing']['strategy'] == 'competitive'
        assert data['confidence']['data_quality'] == 'fair'


class TestBatchCommand:
    """market-intel batch"""

    def test_batch_writes_results(self, runner, monkeypatch, stocked_pipeline, tmp_path):
        monkeypatch.setenv('EBAY_APP_ID', 'test-app-id')
        pd.DataFrame([
            {'brand': 'Nike', 'model': 'Dunk Low', 'category': 'sneakers', 'condition': 'Good'},
            {'brand': 'Nike', 'model': 'Dunk High', 'category': 'sneakers', 'condition': 'Like New'},
        ]).to_csv(tmp_path / 'products.csv', index=False)

        with patch('market_intel.cli.MarketResearchPipeline', return_value=stocked_pipeline):
            result = runner.invoke(cli, ['batch', 'products.csv', '--output', 'results.csv', '--workers', '1'])

        assert result.exit_code == 0, result.output
        assert "Researched 2 products" in result.output

        results = pd.read_csv(tmp_path / 'results.csv')
        assert list(results['row']) == [0, 1]
        assert set(results['data_quality']) == {'fair'}


class TestUtilityCommands:
    """Commands that need no credentials."""

    def test_queries(self, runner):
        result = runner.invoke(cli, ['queries', '--brand', 'Nike', '--model', 'Air Force 1'])

        assert result.exit_code == 0
        assert "1. Nike Air Force 1" in result.output
        assert "2. Air Force 1" in result.output

    def test_queries_empty(self, runner):
        result = runner.invoke(cli, ['queries'])
        assert "No queries" in result.output

    def test_map_condition(self, runner):
        result = runner.invoke(cli, ['map-condition', 'NWOT'])

        assert result.exit_code == 0
        assert "Canonical condition: New without tags" in result.output

    def test_backoff_schedule(self, runner, monkeypatch):
        monkeypatch.setenv('BASE_RETRY_DELAY', '30')
        monkeypatch.setenv('MAX_RETRIES', '3')

        result = runner.invoke(cli, ['backoff'])

        assert result.exit_code == 0
        assert "Retry 0: 30.0s" in result.output
        assert "Retry 3: 240.0s" in result.output

    def test_config_info(self, runner):
        result = runner.invoke(cli, ['config-info'])

        assert result.exit_code == 0
        assert "min_call_interval" in result.output

    def test_init_env(self, runner, tmp_path):
        first = runner.invoke(cli, ['init-env'])
        second = runner.invoke(cli, ['init-env'])

        assert (tmp_path / '.env').exists()
        assert "Sample environment written" in first.output
        assert "already exists" in second.output
