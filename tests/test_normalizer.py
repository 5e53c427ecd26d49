"""
Tests for comp normalization, window filtering and deduplication.
"""

from datetime import timedelta

import pytest

from conftest import NOW, make_comp, make_record
from market_intel.normalizer import (
    deduplicate,
    filter_window,
    normalize_condition,
    normalize_record,
    normalize_records,
    parse_price,
)


class TestNormalizeRecord:
    """Tolerant field extraction."""

    def test_finding_api_record(self):
        """Nested single-element arrays and __value__ wrappers are unwrapped."""
        record = make_record('Nike Air Force 1 Low White', 89.99, days_ago=2, watchers=4)

        comp = normalize_record(record, NOW)

        assert comp.title == 'Nike Air Force 1 Low White'
        assert comp.price == 89.99
        assert comp.condition == 'Good'
        assert comp.sold_date == NOW - timedelta(days=2)
        assert comp.sold_date.tzinfo is not None
        assert comp.shipping_cost == 9.99
        assert comp.watchers == 4
        assert comp.auction is False
        assert comp.item_id

    def test_flat_record_with_alternate_keys(self):
        """Fallback key names are tried in order."""
        record = {
            'itemTitle': 'Supreme Box Logo Hoodie',
            'price': {'value': '450.00', 'currency': 'USD'},
            'conditionDisplayName': 'New with tags',
            'itemEndDate': '2026-09-28T10:00:00Z',
            'buyingOptions': ['AUCTION'],
        }

        comp = normalize_record(record, NOW)

        assert comp.title == 'Supreme Box Logo Hoodie'
        assert comp.price == 450.0
        assert comp.condition == 'New with tags'
        assert comp.sold_date.day == 28
        assert comp.auction is True

    def test_auction_listing_type(self):
        comp = normalize_record(make_record('Item', 20.0, listing_type='Auction'), NOW)
        assert comp.auction is True

    def test_missing_sold_date_uses_now(self):
        comp = normalize_record({'title': 'Item', 'price': '15'}, NOW)
        assert comp.sold_date == NOW

    @pytest.mark.parametrize('watchers', ['NaN', 'inf', '-3', 'lots'])
    def test_unusable_watch_count_dropped(self, watchers):
        """A bad watcher count does not cost the comp."""
        comp = normalize_record(make_record('Nike Dunk Low Panda', 110.0, watchers=watchers), NOW)
        assert comp.price == 110.0
        assert comp.watchers is None

    @pytest.mark.parametrize('record', [
        {'price': '10.00'},
        {'title': '', 'price': '10.00'},
        {'title': 'No price'},
        {'title': 'Zero', 'price': '0'},
        {'title': 'Negative', 'price': -5},
        {'title': 'Garbage', 'price': 'call for price'},
        {'title': 'Not a number', 'price': 'NaN'},
        {'title': 'Infinite', 'price': 'inf'},
        {'title': 'Float nan', 'price': float('nan')},
        'not a dict',
        None,
    ])
    def test_unusable_records_skipped(self, record):
        """Records without a title or positive price yield None."""
        assert normalize_record(record, NOW) is None

    @pytest.mark.parametrize('value, expected', [
        ('$1,234.50', 1234.5),
        ('89.99', 89.99),
        (42, 42.0),
        (None, None),
        (True, None),
        ('n/a', None),
        ('NaN', None),
        ('inf', None),
        ('-Infinity', None),
        (float('nan'), None),
        (float('inf'), None),
    ])
    def test_parse_price(self, value, expected):
        assert parse_price(value) == expected


class TestNormalizeCondition:
    """Free-text condition to canonical label."""

    @pytest.mark.parametrize('text, expected', [
        ('New with tags', 'New with tags'),
        ('NWT', 'New with tags'),
        ('Brand New', 'New with tags'),
        ('New', 'New with tags'),
        ('New without tags', 'New without tags'),
        ('NWOT', 'New without tags'),
        ('Open box', 'New without tags'),
        ('New with defects', 'New without tags'),
        ('New with box', 'New with tags'),
        ('New without box', 'New without tags'),
        ('Like New', 'Like New'),
        ('Mint condition', 'Like New'),
        ('Excellent', 'Excellent'),
        ('Seller refurbished', 'Excellent'),
        ('Very Good', 'Very Good'),
        ('Good', 'Good'),
        ('Acceptable', 'Acceptable'),
        ('For parts or not working', 'Acceptable'),
        ('Pre-owned', 'Good'),
        ('Used', 'Good'),
        ('', 'Good'),
        (None, 'Good'),
    ])
    def test_mapping(self, text, expected):
        assert normalize_condition(text) == expected


class TestDeduplicate:
    """Signature-based dedup."""

    def test_duplicate_signature_removed(self):
        first = make_comp(100.0, days_ago=1, title='Nike Dunk Low Panda Size 10')
        duplicate = make_comp(100.0, days_ago=3, title='NIKE DUNK LOW PANDA SIZE 10')

        assert deduplicate([first, duplicate]) == [first]

    def test_long_titles_compared_on_prefix(self):
        """Only the first 50 characters of the title take part in the signature."""
        prefix = 'A' * 50
        comps = [make_comp(50.0, title=prefix + ' one'), make_comp(50.0, title=prefix + ' two')]
        assert len(deduplicate(comps)) == 1

    def test_price_difference_kept(self):
        comps = [make_comp(100.0, title='Same title'), make_comp(100.01, title='Same title')]
        assert len(deduplicate(comps)) == 2

    def test_sorted_newest_first(self):
        comps = [make_comp(10.0, days_ago=5), make_comp(20.0, days_ago=1), make_comp(30.0, days_ago=3)]
        assert [comp.price for comp in deduplicate(comps)] == [20.0, 30.0, 10.0]

    def test_idempotent(self):
        """Deduplicating already-deduplicated comps changes nothing."""
        comps = [make_comp(100.0, days_ago=i % 4, title=f"Item {i % 3}") for i in range(12)]
        once = deduplicate(comps)
        assert deduplicate(once) == once

    def test_normalizer_idempotent(self):
        records = [make_record('Dup', 50.0), make_record('Dup', 50.0), make_record('Other', 60.0)]
        once = normalize_records(records, now=NOW)
        assert [comp.signature for comp in once] == [comp.signature for comp in normalize_records(records, now=NOW)]
        assert deduplicate(once) == once


class TestWindowFilter:
    """Look-back window."""

    def test_old_comps_dropped(self):
        comps = [make_comp(10.0, days_ago=29), make_comp(20.0, days_ago=31)]
        assert [comp.price for comp in filter_window(comps, 30, NOW)] == [10.0]

    def test_normalize_records_applies_window(self):
        records = [make_record('Recent', 50.0, days_ago=3), make_record('Old', 60.0, days_ago=45)]
        comps = normalize_records(records, days=30, now=NOW)
        assert [comp.title for comp in comps] == ['Recent']

    def test_bad_records_skipped_not_fatal(self):
        records = [make_record('Good one', 50.0), {'title': 'no price'}, 'junk']
        assert len(normalize_records(records, now=NOW)) == 1

    def test_non_finite_values_skipped_not_fatal(self):
        records = [
            make_record('Good one', 50.0),
            make_record('NaN price', float('nan')),
            make_record('Infinite price', float('inf')),
            make_record('Bad watchers', 60.0, watchers='NaN'),
        ]
        comps = normalize_records(records, now=NOW)
        assert sorted(comp.price for comp in comps) == [50.0, 60.0]
