#!/usr/bin/env python3
"""
Core Pricing Engine

Turns a market snapshot and the requested condition into tiered price points:

    base = median(condition bucket, or overall when the bucket is empty)
    recommended = base * condition_multiplier

When no comps exist at all, a brand/category heuristic supplies the base price
and the recommendation is flagged as an estimate.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from market_intel import (
    CompetitionLevel,
    DemandIndicators,
    EbayCondition,
    MarketSnapshot,
    MarketTrend,
    PriceRange,
    PricingRecommendation,
    PricingStrategy,
    ProductCategory,
    ProductIdentification,
    SearchVolume,
    TimeToSell,
    TrendDirection,
    TrendStrength,
)
from market_intel.config import (
    CONDITION_MULTIPLIERS,
    FALLBACK_BRAND_PRICES,
    FALLBACK_CATEGORY_PRICES,
    FALLBACK_DEFAULT_PRICE,
    PRICING_CONFIG,
)
from market_intel.market_stats import competition_level

logger = logging.getLogger(__name__)


def condition_multiplier(condition: EbayCondition) -> float:
    return CONDITION_MULTIPLIERS.get(condition.value, CONDITION_MULTIPLIERS['Good'])


def auction_share(snapshot: MarketSnapshot) -> float:
    if not snapshot.comps:
        return 0.0
    return sum(1 for comp in snapshot.comps if comp.auction) / len(snapshot.comps)


def select_strategy(snapshot: MarketSnapshot) -> PricingStrategy:
    """
    Pick a pricing strategy from the competition level.

    Low competition leans premium, saturated markets lean discount. Otherwise
    competitive, unless most comps sold at auction.
    """
    level = snapshot.competition_level

    if level == CompetitionLevel.SATURATED:
        return PricingStrategy.DISCOUNT
    if level == CompetitionLevel.LOW:
        return PricingStrategy.PREMIUM
    if auction_share(snapshot) >= PRICING_CONFIG['auction_share_threshold']:
        return PricingStrategy.AUCTION
    return PricingStrategy.COMPETITIVE


def _price_points(base_price: float, multiplier: float):
    config = PRICING_CONFIG
    recommended = base_price * multiplier
    return {
        'recommended_price': round(recommended, 2),
        'price_range': (round(recommended * config['range_low_ratio'], 2),
                        round(recommended * config['range_high_ratio'], 2)),
        'competitive_price': round(recommended * config['competitive_ratio'], 2),
        'quick_sale_price': round(recommended * config['quick_sale_ratio'], 2),
        'max_profit_price': round(recommended * config['max_profit_ratio'], 2),
    }


def synthesize_pricing(snapshot: MarketSnapshot, condition: EbayCondition) -> PricingRecommendation:
    """
    Calculate pricing from a snapshot with at least one comp.

    Args:
        snapshot: MarketSnapshot built from real comps
        condition: Requested listing condition

    Returns:
        PricingRecommendation with justifications citing the sample size and
        the condition multiplier applied
    """
    if snapshot.sold_count == 0:
        raise ValueError("Cannot synthesize pricing from an empty snapshot")

    price_range = snapshot.price_range
    bucket = condition.comp_bucket
    bucket_median = price_range.condition_medians.get(bucket) if bucket else None

    justification: List[str] = [f"Based on {snapshot.sold_count} recent sales ({price_range.date_range.lower()})"]

    if bucket_median is not None:
        base_price = bucket_median
        bucket_count = price_range.condition_counts.get(bucket, 0)
        justification.append(f"Median {bucket} sold price: ${base_price:.2f} ({bucket_count} sales)")
    else:
        base_price = price_range.median
        justification.append(f"No {condition.value} sales found; using overall median ${base_price:.2f}")

    multiplier = condition_multiplier(condition)
    justification.append(f"Applied {multiplier:.2f}x condition multiplier for {condition.value} condition")

    strategy = select_strategy(snapshot)
    justification.append(f"{snapshot.competition_level.value.capitalize()} competition: "
                         f"{strategy.value} pricing strategy")

    trend = snapshot.trend
    if trend.direction != TrendDirection.STABLE:
        justification.append(f"Prices {trend.direction.value} ({trend.change:+.0%}, {trend.strength.value})")

    points = _price_points(base_price, multiplier)

    logger.info(f"Pricing calculation: ${base_price:.2f} * {multiplier} = ${points['recommended_price']:.2f} "
                f"({strategy.value})")

    return PricingRecommendation(
        strategy=strategy,
        justification=tuple(justification),
        condition_multiplier=multiplier,
        is_estimate=False,
        **points
    )


def estimate_base_price(identification: ProductIdentification) -> float:
    """Brand/category heuristic used when no comps were found"""
    brand = identification.brand.lower()
    category = identification.category

    for brand_key, (sneaker_price, other_price) in FALLBACK_BRAND_PRICES.items():
        if brand_key in brand:
            return sneaker_price if category == ProductCategory.SNEAKERS else other_price

    return FALLBACK_CATEGORY_PRICES.get(category.value, FALLBACK_DEFAULT_PRICE)


def build_estimate_snapshot(estimated_price: float,
                            now: Optional[datetime] = None) -> MarketSnapshot:
    """Snapshot standing in for market data when no comps exist"""
    price_range = PriceRange(
        condition_averages={},
        condition_medians={},
        condition_counts={},
        average=estimated_price,
        median=estimated_price,
        lowest=round(estimated_price * 0.6, 2),
        highest=round(estimated_price * 1.4, 2),
        sample_size=0,
        date_range="Estimated",
    )

    return MarketSnapshot(
        comps=(),
        price_range=price_range,
        trend=MarketTrend(TrendDirection.STABLE, TrendStrength.WEAK, 0.0, "Unknown"),
        demand=DemandIndicators(
            time_to_sell=TimeToSell.NORMAL,
            search_volume=SearchVolume.LOW,
            notes=("Limited sales data available",),
        ),
        competition_level=competition_level(0),
        computed_at=now or datetime.now(timezone.utc),
    )


def estimate_pricing(identification: ProductIdentification, condition: EbayCondition,
                     days: int = 30, estimated_price: Optional[float] = None) -> PricingRecommendation:
    """
    Fallback pricing when every query set came back empty.

    Returns:
        PricingRecommendation flagged as an estimate
    """
    if estimated_price is None:
        estimated_price = estimate_base_price(identification)

    multiplier = condition_multiplier(condition)
    points = _price_points(estimated_price, multiplier)

    logger.warning(f"No sold comps found - using category estimate ${estimated_price:.2f}")

    return PricingRecommendation(
        strategy=PricingStrategy.COMPETITIVE,
        justification=(
            f"No sold comps found in the last {days} days (sample size 0)",
            f"Estimated base price ${estimated_price:.2f} from brand/category averages",
            f"Applied {multiplier:.2f}x condition multiplier for {condition.value} condition",
        ),
        condition_multiplier=multiplier,
        is_estimate=True,
        **points
    )
