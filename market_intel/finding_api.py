#!/usr/bin/env python3
"""
eBay Finding API Integration for Sold Listing Search

Issues findCompletedItems searches (sold items only, date-bounded, newest
first) and unwraps the vendor's nested single-element-array JSON down to the
raw item records. Record-level parsing is left to the normalizer.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from market_intel.config import Config

logger = logging.getLogger(__name__)

SUCCESS_ACKS = ('Success', 'Warning')
THROTTLE_MARKERS = ('exceeded', 'rate', 'throttl', 'too many')


class FindingAPIError(Exception):
    """A Finding API call failed; `throttled` marks rate limiting"""

    def __init__(self, message: str, throttled: bool = False, status_code: Optional[int] = None):
        super().__init__(message)
        self.throttled = throttled
        self.status_code = status_code


def _first(value: Any) -> Any:
    """Unwrap the vendor's single-element arrays"""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.000Z')


def _is_throttle_message(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in THROTTLE_MARKERS)


class EbayFindingAPI:
    """Client for the eBay Finding API (sold comps)"""

    def __init__(self, config: Optional[Config] = None):
        """Initialize Finding API client"""
        self.config = config or Config()
        self.app_id = self.config.ebay_app_id
        self.base_url = self.config.get_finding_api_url()
        self.timeout = self.config.request_timeout

    def build_params(self, keywords: str, start: datetime, end: datetime,
                     entries_per_page: Optional[int] = None) -> Dict[str, str]:
        """Build findCompletedItems query parameters"""
        entries = min(entries_per_page or self.config.entries_per_page, 100)

        return {
            'OPERATION-NAME': 'findCompletedItems',
            'SERVICE-VERSION': '1.0.0',
            'SECURITY-APPNAME': self.app_id,
            'RESPONSE-DATA-FORMAT': 'JSON',
            'REST-PAYLOAD': '',
            'keywords': keywords,
            'itemFilter(0).name': 'SoldItemsOnly',
            'itemFilter(0).value': 'true',
            'itemFilter(1).name': 'EndTimeFrom',
            'itemFilter(1).value': _format_timestamp(start),
            'itemFilter(2).name': 'EndTimeTo',
            'itemFilter(2).value': _format_timestamp(end),
            'paginationInput.entriesPerPage': str(entries),
            'sortOrder': 'EndTimeSoonest',
        }

    def search_sold(self, keywords: str, days: int = 30,
                    now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Search sold listings for the last `days` days.

        Args:
            keywords: Search string
            days: Look-back window in days
            now: Reference time (defaults to current UTC time)

        Returns:
            List of raw item records (may be empty)

        Raises:
            FindingAPIError: network error, non-2xx status, malformed body,
                vendor error payload or unsuccessful ack
        """
        end = now or datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        params = self.build_params(keywords, start, end)

        logger.info(f"Finding API search: '{keywords}' (last {days} days)")

        try:
            response = requests.get(self.base_url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise FindingAPIError(f"Network error: {e}") from e

        if response.status_code == 429:
            raise FindingAPIError("Rate limit exceeded (HTTP 429)", throttled=True, status_code=429)

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Response: {response.text[:200]}")
            raise FindingAPIError(f"HTTP error: {e}", status_code=response.status_code) from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Raw response: {response.text[:200]}...")
            raise FindingAPIError("Malformed response body", status_code=response.status_code) from e

        return self.parse_response(payload)

    def parse_response(self, payload: Any) -> List[Dict[str, Any]]:
        """
        Unwrap a findCompletedItems response to its item records.

        Raises:
            FindingAPIError: for error payloads or unexpected shapes
        """
        if not isinstance(payload, dict):
            raise FindingAPIError("Unexpected response shape")

        error_message = self._extract_error_message(payload)
        if error_message:
            throttled = _is_throttle_message(error_message)
            logger.error(f"eBay API Error: {error_message}")
            raise FindingAPIError(error_message, throttled=throttled)

        response = _first(payload.get('findCompletedItemsResponse'))
        if not isinstance(response, dict):
            raise FindingAPIError("Invalid eBay response structure")

        ack = _first(response.get('ack'))
        if ack not in SUCCESS_ACKS:
            nested = self._extract_error_message(response)
            message = nested or f"eBay search not successful (ack={ack})"
            raise FindingAPIError(message, throttled=bool(nested) and _is_throttle_message(nested))

        search_result = _first(response.get('searchResult'))
        if not isinstance(search_result, dict):
            logger.info("No search results in response")
            return []

        if str(search_result.get('@count', '')) == '0':
            logger.info("eBay returned 0 sold items")
            return []

        items = search_result.get('item') or []
        if not isinstance(items, list):
            items = [items]

        records = [item for item in items if isinstance(item, dict)]
        logger.info(f"eBay returned {len(records)} sold items")
        return records

    @staticmethod
    def _extract_error_message(payload: Dict[str, Any]) -> Optional[str]:
        error_block = _first(payload.get('errorMessage'))
        if not isinstance(error_block, dict):
            return None
        error = _first(error_block.get('error'))
        if not isinstance(error, dict):
            return None
        message = _first(error.get('message'))
        return str(message) if message else None
