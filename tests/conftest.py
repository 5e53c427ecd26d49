"""
Shared fixtures: fake clock, stub Finding API, comp and raw-record factories.

No test touches the network or really sleeps.
"""

from datetime import datetime, timedelta, timezone

import pytest

from market_intel import ProductIdentification, SoldComp
from market_intel.comp_fetcher import CompFetcher
from market_intel.config import Config
from market_intel.pipeline import MarketResearchPipeline
from market_intel.rate_limiter import RateLimiter, ResearchCancelled

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock whose sleep() advances time instantly"""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds, cancel=None):
        if cancel is not None and cancel.is_set():
            raise ResearchCancelled("cancelled")
        self.sleeps.append(seconds)
        self.now += max(0.0, seconds)


class StubFindingAPI:
    """
    Stands in for EbayFindingAPI.

    `responses` are consumed one per call: a list of raw records is returned,
    an exception instance is raised. Once exhausted, `default` is returned.
    """

    def __init__(self, responses=None, default=None):
        self.responses = list(responses or [])
        self.default = default if default is not None else []
        self.calls = []

    def search_sold(self, keywords, days=30, now=None):
        self.calls.append(keywords)
        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        return list(response)


def make_comp(price, days_ago=1, condition='Good', title=None, auction=False, watchers=None, now=NOW):
    return SoldComp(
        title=title or f"Test Item {price:.2f} {days_ago}",
        price=float(price),
        condition=condition,
        sold_date=now - timedelta(days=days_ago),
        auction=auction,
        watchers=watchers,
    )


def make_record(title, price, days_ago=1, condition='Pre-owned', listing_type='FixedPrice',
                watchers=None, now=NOW):
    """Raw record in the Finding API's single-element-array shape"""
    end_time = (now - timedelta(days=days_ago)).strftime('%Y-%m-%dT%H:%M:%S.000Z')
    listing_info = {'endTime': [end_time], 'listingType': [listing_type]}
    if watchers is not None:
        listing_info['watchCount'] = [str(watchers)]

    return {
        'itemId': [str(abs(hash((title, price))) % 10 ** 12)],
        'title': [title],
        'sellingStatus': [{'currentPrice': [{'@currencyId': 'USD', '__value__': f"{price:.2f}"}]}],
        'condition': [{'conditionDisplayName': [condition]}],
        'listingInfo': [listing_info],
        'shippingInfo': [{'shippingServiceCost': [{'@currencyId': 'USD', '__value__': '9.99'}]}],
    }


def finding_payload(items):
    """Wrap raw records in a findCompletedItems response body"""
    return {
        'findCompletedItemsResponse': [{
            'ack': ['Success'],
            'version': ['1.13.0'],
            'searchResult': [{'@count': str(len(items)), 'item': items}],
        }]
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return Config(
        ebay_app_id='test-app-id',
        min_call_interval=3.0,
        max_calls_per_window=5,
        rate_window_seconds=60.0,
        max_retries=3,
        base_retry_delay=30.0,
        max_backoff_seconds=300.0,
        inter_query_delay=5.0,
        sold_lookback_days=30,
        max_queries_per_run=5,
        early_stop_comp_count=50,
    )


@pytest.fixture
def rate_limiter(clock, config):
    return RateLimiter.from_config(config, clock=clock, sleep=clock.sleep)


@pytest.fixture
def stub_api():
    return StubFindingAPI()


@pytest.fixture
def fetcher(stub_api, rate_limiter, config, clock):
    return CompFetcher(api=stub_api, rate_limiter=rate_limiter, config=config, sleep=clock.sleep)


@pytest.fixture
def pipeline(config, fetcher):
    return MarketResearchPipeline(config=config, fetcher=fetcher)


@pytest.fixture
def air_force_one():
    return ProductIdentification(
        brand='Nike',
        exact_model_name="Air Force 1 Low '07",
        style_code='315122-111',
        category='sneakers',
        confidence=0.9,
    )
