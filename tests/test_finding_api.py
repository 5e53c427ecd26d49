"""
Tests for the Finding API client.

requests.get is patched; nothing leaves the process.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import NOW, finding_payload, make_record
from market_intel.finding_api import EbayFindingAPI, FindingAPIError, _format_timestamp


def mock_response(status_code=200, payload=None, json_error=False):
    response = MagicMock()
    response.status_code = status_code
    response.text = 'response body'
    if json_error:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def api(config):
    return EbayFindingAPI(config)


class TestBuildParams:
    """findCompletedItems query parameters."""

    def test_sold_only_date_bounded_newest_first(self, api):
        start = NOW - timedelta(days=30)
        params = api.build_params('Nike Dunk', start, NOW)

        assert params['OPERATION-NAME'] == 'findCompletedItems'
        assert params['SECURITY-APPNAME'] == 'test-app-id'
        assert params['keywords'] == 'Nike Dunk'
        assert params['itemFilter(0).name'] == 'SoldItemsOnly'
        assert params['itemFilter(0).value'] == 'true'
        assert params['itemFilter(1).value'] == '2026-09-01T12:00:00.000Z'
        assert params['itemFilter(2).value'] == '2026-10-01T12:00:00.000Z'
        assert params['sortOrder'] == 'EndTimeSoonest'

    def test_page_size_capped_at_100(self, api):
        params = api.build_params('x', NOW, NOW, entries_per_page=500)
        assert params['paginationInput.entriesPerPage'] == '100'

    def test_timestamp_converted_to_utc(self):
        eastern = timezone(timedelta(hours=-5))
        assert _format_timestamp(datetime(2026, 10, 1, 7, 0, tzinfo=eastern)) == '2026-10-01T12:00:00.000Z'


class TestSearchSold:
    """HTTP handling."""

    @patch('market_intel.finding_api.requests.get')
    def test_returns_raw_records(self, mock_get, api):
        items = [make_record('Nike Dunk Low Panda', 110.0), make_record('Nike Dunk Low Grey', 95.0)]
        mock_get.return_value = mock_response(payload=finding_payload(items))

        records = api.search_sold('Nike Dunk Low', days=30, now=NOW)

        assert records == items
        _, kwargs = mock_get.call_args
        assert kwargs['params']['keywords'] == 'Nike Dunk Low'
        assert kwargs['timeout'] == api.timeout

    @patch('market_intel.finding_api.requests.get')
    def test_zero_count_is_empty(self, mock_get, api):
        mock_get.return_value = mock_response(payload=finding_payload([]))
        assert api.search_sold('nothing', now=NOW) == []

    @patch('market_intel.finding_api.requests.get')
    def test_http_429_is_throttled(self, mock_get, api):
        mock_get.return_value = mock_response(status_code=429)

        with pytest.raises(FindingAPIError) as exc_info:
            api.search_sold('Nike', now=NOW)

        assert exc_info.value.throttled
        assert exc_info.value.status_code == 429

    @patch('market_intel.finding_api.requests.get')
    def test_server_error(self, mock_get, api):
        mock_get.return_value = mock_response(status_code=500)

        with pytest.raises(FindingAPIError) as exc_info:
            api.search_sold('Nike', now=NOW)

        assert not exc_info.value.throttled
        assert exc_info.value.status_code == 500

    @patch('market_intel.finding_api.requests.get')
    def test_network_error(self, mock_get, api):
        mock_get.side_effect = requests.exceptions.ConnectionError("connection refused")

        with pytest.raises(FindingAPIError, match="Network error"):
            api.search_sold('Nike', now=NOW)

    @patch('market_intel.finding_api.requests.get')
    def test_malformed_body(self, mock_get, api):
        mock_get.return_value = mock_response(json_error=True)

        with pytest.raises(FindingAPIError, match="Malformed"):
            api.search_sold('Nike', now=NOW)


class TestParseResponse:
    """Vendor payload unwrapping."""

    def test_error_message_with_rate_text_is_throttled(self, api):
        payload = {'errorMessage': [{'error': [{
            'errorId': ['10001'],
            'message': ['Service call has exceeded the number of times the operation is allowed to be called'],
        }]}]}

        with pytest.raises(FindingAPIError) as exc_info:
            api.parse_response(payload)

        assert exc_info.value.throttled

    def test_failure_ack(self, api):
        payload = {'findCompletedItemsResponse': [{'ack': ['Failure']}]}

        with pytest.raises(FindingAPIError) as exc_info:
            api.parse_response(payload)

        assert not exc_info.value.throttled

    def test_warning_ack_still_returns_items(self, api):
        payload = finding_payload([make_record('Item', 10.0)])
        payload['findCompletedItemsResponse'][0]['ack'] = ['Warning']
        assert len(api.parse_response(payload)) == 1

    def test_missing_search_result(self, api):
        payload = {'findCompletedItemsResponse': [{'ack': ['Success']}]}
        assert api.parse_response(payload) == []

    def test_unexpected_shape(self, api):
        with pytest.raises(FindingAPIError):
            api.parse_response(['not', 'a', 'dict'])

    def test_non_dict_items_dropped(self, api):
        payload = finding_payload([make_record('Item', 10.0), 'garbage', None])
        assert len(api.parse_response(payload)) == 1
