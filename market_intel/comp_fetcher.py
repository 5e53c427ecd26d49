#!/usr/bin/env python3
"""
Rate-Limited Comp Fetcher

Runs each query set against the sold-listings search through the shared rate
limiter, retrying throttled/failed calls with exponential backoff. Query sets
are issued sequentially and their comps merged and deduplicated; fetching
stops early once enough comps are collected. No failure here is fatal: an
exhausted query set simply contributes zero comps.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from market_intel import SoldComp
from market_intel.config import Config
from market_intel.finding_api import EbayFindingAPI, FindingAPIError
from market_intel.normalizer import deduplicate, normalize_records
from market_intel.query_generator import format_query
from market_intel.rate_limiter import (
    RateLimiter,
    ResearchCancelled,
    get_rate_limiter,
    interruptible_sleep,
)

logger = logging.getLogger(__name__)


class CompFetcher:
    """Fetches sold comps for a chain of query sets"""

    def __init__(self, api: Optional[EbayFindingAPI] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 config: Optional[Config] = None,
                 sleep=interruptible_sleep):
        self.config = config or Config()
        self.api = api or EbayFindingAPI(self.config)
        self.rate_limiter = rate_limiter or get_rate_limiter(self.config)
        self.max_retries = self.config.max_retries
        self._sleep = sleep

    def fetch_query(self, keywords: Sequence[str], days: int = 30,
                    now: Optional[datetime] = None,
                    cancel: Optional[threading.Event] = None) -> List[Dict[str, Any]]:
        """
        Fetch raw sold records for one query set, retrying on failure.

        Args:
            keywords: Query token list
            days: Look-back window in days
            now: Reference time for the date filter
            cancel: Optional cancellation event

        Returns:
            Raw records; empty when retries are exhausted

        Raises:
            ResearchCancelled: if `cancel` fires while waiting
        """
        query = format_query(list(keywords))
        if not query:
            return []

        for attempt in range(self.max_retries + 1):
            self.rate_limiter.acquire(cancel)

            try:
                records = self.api.search_sold(query, days=days, now=now)
            except FindingAPIError as e:
                kind = "Rate limited" if e.throttled else "Search failed"
                logger.warning(f"{kind} for '{query}': {e}")
                self.rate_limiter.record_failure(attempt)

                if attempt < self.max_retries:
                    logger.info(f"Retry {attempt + 1}/{self.max_retries} for: {query}")
                    continue

                logger.error(f"Max retries exceeded for: {query}")
                return []

            self.rate_limiter.record_success()
            return records

        return []

    def fetch_comps(self, query_sets: Sequence[Sequence[str]], days: Optional[int] = None,
                    now: Optional[datetime] = None,
                    cancel: Optional[threading.Event] = None) -> List[SoldComp]:
        """
        Run the query chain and merge results.

        Args:
            query_sets: Ordered query token lists, most specific first
            days: Look-back window (defaults to config)
            now: Reference time
            cancel: Optional cancellation event; comps gathered so far are kept

        Returns:
            Deduplicated SoldComps, newest first
        """
        days = days or self.config.sold_lookback_days
        now = now or datetime.now(timezone.utc)
        query_sets = list(query_sets)[:self.config.max_queries_per_run]

        merged: List[SoldComp] = []

        try:
            for index, keywords in enumerate(query_sets):
                if index > 0 and self.config.inter_query_delay > 0:
                    self._sleep(self.config.inter_query_delay, cancel)

                records = self.fetch_query(keywords, days=days, now=now, cancel=cancel)
                comps = normalize_records(records, days=days, now=now)
                merged = deduplicate(merged + comps)

                logger.info(f"Query {index + 1}/{len(query_sets)} '{format_query(list(keywords))}': "
                            f"{len(comps)} comps ({len(merged)} unique so far)")

                if len(merged) >= self.config.early_stop_comp_count:
                    logger.info(f"Collected {len(merged)} comps, skipping remaining queries")
                    break

        except ResearchCancelled:
            logger.warning(f"Research cancelled, keeping {len(merged)} comps collected so far")

        return merged
