#!/usr/bin/env python3
"""
Market Research Pipeline

Orchestrates one research run:

    identification -> queries -> comp fetch -> normalize/dedup -> statistics
                   -> pricing + confidence -> listing strategy

Nothing here raises for provider problems; every path returns a usable
MarketAnalysisResult, falling back to a brand/category estimate when no comps
are found.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Optional, Union

from market_intel import (
    EbayCondition,
    MarketAnalysisResult,
    ProductIdentification,
)
from market_intel.comp_fetcher import CompFetcher
from market_intel.confidence import assess_condition, score_confidence
from market_intel.config import Config
from market_intel.listing_strategy import build_listing_strategy
from market_intel.market_stats import build_snapshot
from market_intel.pricing_engine import (
    build_estimate_snapshot,
    estimate_base_price,
    estimate_pricing,
    synthesize_pricing,
)
from market_intel.query_generator import format_query, generate_search_queries
from market_intel.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def _coerce_condition(condition: Union[EbayCondition, str]) -> EbayCondition:
    if isinstance(condition, EbayCondition):
        return condition
    text = str(condition).strip().lower()
    for member in EbayCondition:
        if text in (member.value.lower(), member.name.lower()):
            return member
    raise ValueError(f"Unknown condition: {condition}")


class MarketResearchPipeline:
    """Runs market research for product identifications"""

    def __init__(self, config: Optional[Config] = None,
                 fetcher: Optional[CompFetcher] = None,
                 rate_limiter: Optional[RateLimiter] = None):
        self.config = config or Config()
        self.fetcher = fetcher or CompFetcher(rate_limiter=rate_limiter, config=self.config)

    def research(self, identification: ProductIdentification,
                 condition: Union[EbayCondition, str] = EbayCondition.GOOD,
                 cancel: Optional[threading.Event] = None,
                 now: Optional[datetime] = None,
                 condition_confidence: Optional[float] = None) -> MarketAnalysisResult:
        """
        Research one product.

        Args:
            identification: Product identity from the vision step
            condition: Requested listing condition
            cancel: Optional cancellation event; comps fetched so far are used
            now: Reference time (defaults to current UTC time)
            condition_confidence: Confidence of the condition assessment, if known

        Returns:
            MarketAnalysisResult
        """
        condition = _coerce_condition(condition)
        now = now or datetime.now(timezone.utc)
        days = self.config.sold_lookback_days

        logger.info(f"Researching: {identification.brand} {identification.exact_model_name} ({condition.value})")

        queries = generate_search_queries(identification)
        if not queries:
            logger.warning("Empty product identification - returning estimate only")
            comps = []
        else:
            logger.info(f"Generated {len(queries)} query sets: "
                        f"{', '.join(repr(format_query(query)) for query in queries)}")
            comps = self.fetcher.fetch_comps(queries, days=days, now=now, cancel=cancel)

        if comps:
            snapshot = build_snapshot(comps, days=days, now=now)
            pricing = synthesize_pricing(snapshot, condition)
        else:
            estimated_price = estimate_base_price(identification)
            snapshot = build_estimate_snapshot(estimated_price, now=now)
            pricing = estimate_pricing(identification, condition, days=days,
                                       estimated_price=estimated_price)

        assessment = assess_condition(condition, snapshot.sold_count, days=days,
                                      confidence=condition_confidence)
        confidence = score_confidence(identification.confidence, snapshot.sold_count,
                                      assessment.confidence)
        listing = build_listing_strategy(identification, condition, snapshot, pricing)

        result = MarketAnalysisResult(
            identification=identification,
            snapshot=snapshot,
            condition_assessment=assessment,
            pricing=pricing,
            listing=listing,
            confidence=confidence,
            queries=tuple(tuple(query) for query in queries),
        )

        logger.info(f"Research complete: ${pricing.recommended_price:.2f} from {snapshot.sold_count} comps "
                    f"(data quality: {confidence.data_quality.value}, confidence: {confidence.overall:.0%})")
        return result


def research_product(identification: ProductIdentification,
                     condition: Union[EbayCondition, str] = EbayCondition.GOOD,
                     config: Optional[Config] = None,
                     cancel: Optional[threading.Event] = None) -> MarketAnalysisResult:
    """Convenience wrapper using the process-wide rate limiter"""
    return MarketResearchPipeline(config).research(identification, condition, cancel=cancel)


def get_analysis_summary(result: MarketAnalysisResult) -> str:
    """
    Generate a human-readable analysis summary.

    Args:
        result: MarketAnalysisResult object

    Returns:
        Formatted summary string
    """
    pricing = result.pricing
    price_range = result.snapshot.price_range
    demand = result.snapshot.demand
    trend = result.snapshot.trend
    confidence = result.confidence

    estimate_flag = " (ESTIMATE)" if pricing.is_estimate else ""
    justification = "\n".join(f"- {line}" for line in pricing.justification)
    notes = "\n".join(f"- {note}" for note in demand.notes)

    summary = f"""
Market Analysis
===============
Title:          {result.listing.title}
Category:       {result.listing.category_path}
Format:         {result.listing.listing_format.value}

Recommended:    ${pricing.recommended_price:.2f}{estimate_flag}
Range:          ${pricing.price_range[0]:.2f} - ${pricing.price_range[1]:.2f}
Competitive:    ${pricing.competitive_price:.2f}
Quick Sale:     ${pricing.quick_sale_price:.2f}
Max Profit:     ${pricing.max_profit_price:.2f}
Strategy:       {pricing.strategy.value}

Market Data:
- Sold comps:      {result.sold_count}
- Average price:   ${price_range.average:.2f}
- Median price:    ${price_range.median:.2f}
- Low / High:      ${price_range.lowest:.2f} / ${price_range.highest:.2f}
- Trend:           {trend.direction.value} ({trend.strength.value})
- Competition:     {result.snapshot.competition_level.value}
- Time to sell:    {demand.time_to_sell.value}
- Search volume:   {demand.search_volume.value}

Confidence:     {confidence.overall:.0%} (data quality: {confidence.data_quality.value})

Justification:
{justification}

Demand Notes:
{notes}
"""
    return summary.strip()
