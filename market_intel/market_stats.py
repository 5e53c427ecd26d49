#!/usr/bin/env python3
"""
Market Statistics & Signals

Computes the price distribution, trend, demand and competition signals for a
deduplicated comp list. Pure computation; every bucket threshold is a
documented constant in market_intel.config.
"""

import logging
import statistics
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from market_intel import (
    COMP_CONDITIONS,
    CompetitionLevel,
    DataQuality,
    DemandIndicators,
    MarketSnapshot,
    MarketTrend,
    PriceRange,
    SearchVolume,
    SoldComp,
    TimeToSell,
    TrendDirection,
    TrendStrength,
)
from market_intel.config import (
    COMPETITION_THRESHOLDS,
    DATA_QUALITY_THRESHOLDS,
    SEARCH_VOLUME_HIGH_ABOVE,
    SEARCH_VOLUME_MEDIUM_FROM,
    TIME_TO_SELL_THRESHOLDS,
    TREND_CONFIG,
)

logger = logging.getLogger(__name__)


def competition_level(comp_count: int) -> CompetitionLevel:
    """low (0-5), moderate (6-20), high (21-50), saturated (>50)"""
    for upper_bound, level in COMPETITION_THRESHOLDS:
        if comp_count <= upper_bound:
            return CompetitionLevel(level)
    return CompetitionLevel.SATURATED


def data_quality_tier(comp_count: int) -> DataQuality:
    """excellent (>=50), good (20-49), fair (5-19), limited (1-4), insufficient (0)"""
    for lower_bound, tier in DATA_QUALITY_THRESHOLDS:
        if comp_count >= lower_bound:
            return DataQuality(tier)
    return DataQuality.INSUFFICIENT


def search_volume(comp_count: int) -> SearchVolume:
    if comp_count > SEARCH_VOLUME_HIGH_ABOVE:
        return SearchVolume.HIGH
    if comp_count >= SEARCH_VOLUME_MEDIUM_FROM:
        return SearchVolume.MEDIUM
    return SearchVolume.LOW


def time_to_sell(average_days: Optional[float]) -> TimeToSell:
    if average_days is None:
        return TimeToSell.NORMAL
    for upper_bound, bucket in TIME_TO_SELL_THRESHOLDS:
        if average_days < upper_bound:
            return TimeToSell(bucket)
    return TimeToSell.DIFFICULT


def price_distribution(prices: Sequence[float]) -> Dict[str, int]:
    """Count prices in $10 ranges ("$80-89": 3, ...)"""
    distribution: Dict[str, int] = {}
    for price in prices:
        low = int(price // 10) * 10
        key = f"${low}-{low + 9}"
        distribution[key] = distribution.get(key, 0) + 1
    return distribution


def calculate_price_range(comps: Sequence[SoldComp], date_range: str = "Last 30 days") -> PriceRange:
    """
    Overall and per-condition price statistics.

    Buckets without comps hold None ("no data"), never zero.
    """
    prices = [comp.price for comp in comps]

    averages: Dict[str, Optional[float]] = {}
    medians: Dict[str, Optional[float]] = {}
    counts: Dict[str, int] = {}

    for condition in COMP_CONDITIONS:
        bucket = [comp.price for comp in comps if comp.condition == condition]
        counts[condition] = len(bucket)
        averages[condition] = statistics.mean(bucket) if bucket else None
        medians[condition] = statistics.median(bucket) if bucket else None

    return PriceRange(
        condition_averages=averages,
        condition_medians=medians,
        condition_counts=counts,
        average=statistics.mean(prices) if prices else 0.0,
        median=statistics.median(prices) if prices else 0.0,
        lowest=min(prices) if prices else 0.0,
        highest=max(prices) if prices else 0.0,
        sample_size=len(prices),
        date_range=date_range,
        price_distribution=price_distribution(prices),
    )


def analyze_trend(comps: Sequence[SoldComp], timeframe: str = "30 days") -> MarketTrend:
    """
    Compare mean price of the most recent window against the window before it.

    Direction: increasing above +5%, decreasing below -5%, else stable.
    Strength: strong above 15% absolute change, else moderate; weak when there
    are too few comps to compare.
    """
    if len(comps) < TREND_CONFIG['min_comps']:
        return MarketTrend(TrendDirection.STABLE, TrendStrength.WEAK, 0.0, timeframe)

    ordered = sorted(comps, key=lambda comp: comp.sold_date, reverse=True)
    window = min(TREND_CONFIG['window_size'], len(ordered) // 2)

    recent = [comp.price for comp in ordered[:window]]
    older = [comp.price for comp in ordered[window:window * 2]]

    older_mean = statistics.mean(older)
    if older_mean <= 0:
        return MarketTrend(TrendDirection.STABLE, TrendStrength.WEAK, 0.0, timeframe)

    change = (statistics.mean(recent) - older_mean) / older_mean

    if change > TREND_CONFIG['direction_threshold']:
        direction = TrendDirection.INCREASING
    elif change < -TREND_CONFIG['direction_threshold']:
        direction = TrendDirection.DECREASING
    else:
        direction = TrendDirection.STABLE

    strength = TrendStrength.STRONG if abs(change) > TREND_CONFIG['strong_threshold'] else TrendStrength.MODERATE

    return MarketTrend(direction, strength, round(change, 4), timeframe)


def _demand_notes(comps: Sequence[SoldComp], days: int) -> List[str]:
    notes = []
    count = len(comps)

    if count > 20:
        notes.append(f"High demand - {count} sales in {days} days")
    elif count > 10:
        notes.append(f"Moderate demand - {count} sales in {days} days")
    elif count > 0:
        notes.append(f"Low demand - {count} sales in {days} days")
    else:
        notes.append("Limited sales data available")

    prices = [comp.price for comp in comps]
    if len(prices) > 1:
        mean = statistics.mean(prices)
        coefficient = statistics.pstdev(prices) / mean if mean > 0 else 0.0
        if coefficient < 0.2:
            notes.append("Stable pricing")
        elif coefficient < 0.4:
            notes.append("Moderate price variation")
        else:
            notes.append("High price variation")

    return notes


def analyze_demand(comps: Sequence[SoldComp], days: int = 30,
                   now: Optional[datetime] = None) -> DemandIndicators:
    """
    Demand signals from the comp list.

    The days-to-sell figure is a proxy (days since each sale, averaged): real
    listing durations are not available from sold-item search.
    """
    now = now or datetime.now(timezone.utc)

    average_days = None
    if comps:
        ages = [max(0.0, (now - comp.sold_date).total_seconds() / 86400) for comp in comps]
        average_days = statistics.mean(ages)

    watchers = [comp.watchers for comp in comps if comp.watchers is not None]

    return DemandIndicators(
        time_to_sell=time_to_sell(average_days),
        search_volume=search_volume(len(comps)),
        average_days_since_sale=round(average_days, 1) if average_days is not None else None,
        average_watchers=statistics.mean(watchers) if watchers else None,
        notes=tuple(_demand_notes(comps, days)),
    )


def build_snapshot(comps: Sequence[SoldComp], days: int = 30,
                   now: Optional[datetime] = None) -> MarketSnapshot:
    """
    Compute the full market snapshot for a deduplicated comp list.

    Args:
        comps: Deduplicated SoldComps
        days: Look-back window the comps were fetched for
        now: Reference time

    Returns:
        MarketSnapshot
    """
    now = now or datetime.now(timezone.utc)
    comps = tuple(comps)

    price_range = calculate_price_range(comps, date_range=f"Last {days} days")
    snapshot = MarketSnapshot(
        comps=comps,
        price_range=price_range,
        trend=analyze_trend(comps, timeframe=f"{days} days"),
        demand=analyze_demand(comps, days, now),
        competition_level=competition_level(len(comps)),
        computed_at=now,
    )

    logger.info(f"Market snapshot: {len(comps)} comps, avg ${price_range.average:.2f}, "
                f"median ${price_range.median:.2f}, trend {snapshot.trend.direction.value}, "
                f"competition {snapshot.competition_level.value}")
    return snapshot
