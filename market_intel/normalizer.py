#!/usr/bin/env python3
"""
Comp Normalization & Deduplication

Raw marketplace records are arbitrary nested dicts whose shape is not
contractually stable, so every field is extracted through a list of known key
paths tried in order. Records without a usable title or positive price are
skipped; nothing here raises for bad data.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from market_intel import SoldComp
from market_intel.config import CONDITION_KEYWORDS, DEFAULT_COMP_CONDITION

logger = logging.getLogger(__name__)

TITLE_PATHS = [
    ('title',),
    ('itemTitle',),
    ('name',),
]

PRICE_PATHS = [
    ('sellingStatus', 'currentPrice'),
    ('sellingStatus', 'convertedCurrentPrice'),
    ('soldPrice',),
    ('price',),
    ('currentPrice',),
]

CONDITION_PATHS = [
    ('condition', 'conditionDisplayName'),
    ('conditionDisplayName',),
    ('condition',),
]

SOLD_DATE_PATHS = [
    ('listingInfo', 'endTime'),
    ('endTime',),
    ('soldDate',),
    ('itemEndDate',),
]

SHIPPING_PATHS = [
    ('shippingInfo', 'shippingServiceCost'),
    ('shippingCost',),
    ('shipping',),
]

LISTING_TYPE_PATHS = [
    ('listingInfo', 'listingType'),
    ('listingType',),
    ('buyingOptions',),
]

WATCHER_PATHS = [
    ('listingInfo', 'watchCount'),
    ('watchCount',),
    ('watchers',),
]

ITEM_ID_PATHS = [
    ('itemId',),
    ('id',),
]


def _unwrap(value: Any) -> Any:
    """Strip single-element arrays and {'__value__': x} / {'value': x} wrappers"""
    while True:
        if isinstance(value, list):
            if not value:
                return None
            value = value[0]
        elif isinstance(value, dict) and ('__value__' in value or 'value' in value):
            value = value.get('__value__', value.get('value'))
        else:
            return value


def dig(record: Any, path: Sequence[str]) -> Any:
    """Follow a key path through nested dicts/single-element lists"""
    current = record
    for key in path:
        if isinstance(current, list):
            current = current[0] if current else None
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def first_value(record: Dict[str, Any], paths: Iterable[Sequence[str]]) -> Any:
    """First non-empty unwrapped value found along `paths`, or None"""
    for path in paths:
        value = _unwrap(dig(record, path))
        if value is not None and value != '':
            return value
    return None


def parse_price(value: Any) -> Optional[float]:
    """Parse a price-like value; None unless it is a finite number"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        text = str(value).strip().replace('$', '').replace(',', '')
        try:
            parsed = float(text)
        except ValueError:
            return None
    return parsed if math.isfinite(parsed) else None


def parse_sold_date(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime"""
    if isinstance(value, datetime):
        parsed = value
    elif value:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_condition(text: Optional[str]) -> str:
    """
    Map free-text condition to a canonical comp condition.

    Args:
        text: Condition string from the marketplace ("Pre-owned", "NWT", ...)

    Returns:
        One of the canonical labels; unmatched text defaults to Good
    """
    if not text or not isinstance(text, str):
        return DEFAULT_COMP_CONDITION

    cleaned = text.lower().strip()

    if cleaned == 'new':
        return 'New with tags'

    for keywords, label in CONDITION_KEYWORDS:
        if any(keyword in cleaned for keyword in keywords):
            return label

    return DEFAULT_COMP_CONDITION


def _is_auction(value: Any) -> bool:
    if isinstance(value, list):
        return any('auction' in str(option).lower() for option in value)
    return value is not None and 'auction' in str(value).lower()


def normalize_record(record: Dict[str, Any], now: Optional[datetime] = None) -> Optional[SoldComp]:
    """
    Convert one raw record to a SoldComp.

    Returns:
        SoldComp, or None when title or a positive price cannot be extracted
    """
    if not isinstance(record, dict):
        return None

    title = first_value(record, TITLE_PATHS)
    if not title or not str(title).strip():
        return None

    price = parse_price(first_value(record, PRICE_PATHS))
    if price is None or price <= 0:
        return None

    sold_date = parse_sold_date(first_value(record, SOLD_DATE_PATHS))
    if sold_date is None:
        # Missing end time: treat as sold just now
        sold_date = now or datetime.now(timezone.utc)

    shipping_cost = parse_price(first_value(record, SHIPPING_PATHS))

    listing_type = first_value(record, LISTING_TYPE_PATHS[:2])
    buying_options = dig(record, LISTING_TYPE_PATHS[2])
    auction = _is_auction(listing_type) or _is_auction(buying_options)

    watchers = parse_price(first_value(record, WATCHER_PATHS))
    item_id = first_value(record, ITEM_ID_PATHS)

    return SoldComp(
        title=str(title).strip(),
        price=round(price, 2),
        condition=normalize_condition(first_value(record, CONDITION_PATHS)),
        sold_date=sold_date,
        shipping_cost=shipping_cost,
        auction=auction,
        watchers=int(watchers) if watchers is not None and watchers >= 0 else None,
        item_id=str(item_id) if item_id is not None else None,
    )


def deduplicate(comps: Iterable[SoldComp]) -> List[SoldComp]:
    """Keep the first comp per signature, newest sale first"""
    unique = []
    seen = set()

    for comp in comps:
        if comp.signature in seen:
            continue
        seen.add(comp.signature)
        unique.append(comp)

    return sorted(unique, key=lambda comp: comp.sold_date, reverse=True)


def filter_window(comps: Iterable[SoldComp], days: int,
                  now: Optional[datetime] = None) -> List[SoldComp]:
    """Drop comps sold before the look-back window"""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)
    return [comp for comp in comps if comp.sold_date >= cutoff]


def normalize_records(records: Iterable[Dict[str, Any]], days: int = 30,
                      now: Optional[datetime] = None) -> List[SoldComp]:
    """
    Normalize, window-filter and deduplicate raw records.

    Args:
        records: Raw provider records
        days: Look-back window in days
        now: Reference time

    Returns:
        Deduplicated SoldComps sorted by sold date descending
    """
    now = now or datetime.now(timezone.utc)

    comps = []
    skipped = 0
    for record in records:
        comp = normalize_record(record, now)
        if comp is None:
            skipped += 1
            continue
        comps.append(comp)

    if skipped:
        logger.warning(f"Skipped {skipped} records without a usable title or price")

    recent = filter_window(comps, days, now)
    if len(recent) < len(comps):
        logger.debug(f"Dropped {len(comps) - len(recent)} comps outside the {days}-day window")

    return deduplicate(recent)
