#!/usr/bin/env python3
"""
Configuration management for Market Intelligence

All tunables are read from the environment (or a .env file). The module-level
tables below are the documented constants the statistics and pricing stages use.
"""

import os
import json
import logging
from typing import Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Invalid value for {name}, using default {default}")
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        logger.warning(f"Invalid value for {name}, using default {default}")
        return default


class Config:
    """Configuration manager for the market research pipeline"""

    def __init__(self, **overrides):
        self.ebay_app_id = os.getenv('EBAY_APP_ID', '')
        self.ebay_sandbox = os.getenv('EBAY_SANDBOX', 'false').lower() == 'true'

        # Rate limiting
        self.min_call_interval = _env_float('MIN_CALL_INTERVAL', 3.0)
        self.max_calls_per_window = _env_int('MAX_CALLS_PER_WINDOW', 5)
        self.rate_window_seconds = _env_float('RATE_WINDOW_SECONDS', 60.0)

        # Retry / backoff
        self.max_retries = _env_int('MAX_RETRIES', 3)
        self.base_retry_delay = _env_float('BASE_RETRY_DELAY', 30.0)
        self.max_backoff_seconds = _env_float('MAX_BACKOFF_SECONDS', 300.0)

        # Search behaviour
        self.inter_query_delay = _env_float('INTER_QUERY_DELAY', 5.0)
        self.sold_lookback_days = _env_int('SOLD_LOOKBACK_DAYS', 30)
        self.max_queries_per_run = _env_int('MAX_QUERIES_PER_RUN', 5)
        self.entries_per_page = _env_int('ENTRIES_PER_PAGE', 100)
        self.request_timeout = _env_float('REQUEST_TIMEOUT', 30.0)
        self.early_stop_comp_count = _env_int('EARLY_STOP_COMP_COUNT', 50)

        # Logging Configuration
        self.log_level = os.getenv('LOG_LEVEL', 'INFO')
        self.log_file = os.getenv('LOG_FILE', 'market_intel.log')

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown configuration option: {key}")
            setattr(self, key, value)

        # Finding API pages are capped at 100 entries
        self.entries_per_page = max(1, min(int(self.entries_per_page), 100))

    def validate(self) -> bool:
        """Validate that required configuration is present"""
        required_fields = ['ebay_app_id']

        missing_fields = [field for field in required_fields if not getattr(self, field)]

        if missing_fields:
            logger.error(f"Missing required configuration: {', '.join(missing_fields)}")
            return False

        return True

    def get_finding_api_url(self) -> str:
        """Get the appropriate Finding API endpoint"""
        if self.ebay_sandbox:
            return "https://svcs.sandbox.ebay.com/services/search/FindingService/v1"
        else:
            return "https://svcs.ebay.com/services/search/FindingService/v1"

    def to_dict(self) -> Dict:
        """Convert configuration to dictionary (excluding secrets)"""
        return {
            'ebay_sandbox': self.ebay_sandbox,
            'min_call_interval': self.min_call_interval,
            'max_calls_per_window': self.max_calls_per_window,
            'rate_window_seconds': self.rate_window_seconds,
            'max_retries': self.max_retries,
            'base_retry_delay': self.base_retry_delay,
            'max_backoff_seconds': self.max_backoff_seconds,
            'inter_query_delay': self.inter_query_delay,
            'sold_lookback_days': self.sold_lookback_days,
            'max_queries_per_run': self.max_queries_per_run,
            'entries_per_page': self.entries_per_page,
            'request_timeout': self.request_timeout,
            'early_stop_comp_count': self.early_stop_comp_count,
            'log_level': self.log_level,
            'log_file': self.log_file,
        }


# Price multiplier applied to the market base price for the requested condition
CONDITION_MULTIPLIERS = {
    'New with tags': 1.00,
    'New without tags': 0.95,
    'New other': 0.90,
    'Like New': 0.85,
    'Excellent': 0.80,
    'Very Good': 0.70,
    'Good': 0.60,
    'Acceptable': 0.45,
    'For parts or not working': 0.30,
}

CONDITION_DESCRIPTIONS = {
    'New with tags': 'Brand new, unused item with original tags attached',
    'New without tags': 'New, unused item without original tags',
    'New other': 'New item, may be missing original packaging',
    'Like New': 'Worn or opened but shows no visible signs of use',
    'Excellent': 'Used item in excellent condition with minimal wear',
    'Very Good': 'Used item in very good condition with light wear',
    'Good': 'Used item in good condition with normal signs of wear',
    'Acceptable': 'Used item with heavy wear, fully functional',
    'For parts or not working': 'Item for parts or not working',
}

# Ordered (keywords, canonical label) pairs; first match wins, unmatched -> Good
CONDITION_KEYWORDS = [
    (('without tags', 'nwot', 'new other', 'open box', 'new without box', 'new with defects'),
     'New without tags'),
    (('with tags', 'nwt', 'brand new', 'new with box', 'new in box', 'deadstock', 'sealed'),
     'New with tags'),
    (('like new', 'mint', 'pristine'), 'Like New'),
    (('excellent',), 'Excellent'),
    (('very good',), 'Very Good'),
    (('good',), 'Good'),
    (('refurbished', 'renewed'), 'Excellent'),
    (('acceptable', 'fair', 'heavy wear', 'for parts', 'not working'), 'Acceptable'),
]

DEFAULT_COMP_CONDITION = 'Good'

# Market statistics thresholds
# Competition level: comp count <= bound (inclusive upper bounds), else saturated
COMPETITION_THRESHOLDS = [
    (5, 'low'),
    (20, 'moderate'),
    (50, 'high'),
]

# Data quality tier: comp count >= bound
DATA_QUALITY_THRESHOLDS = [
    (50, 'excellent'),
    (20, 'good'),
    (5, 'fair'),
    (1, 'limited'),
]

# Search volume: > 20 high, 10-20 medium, else low
SEARCH_VOLUME_HIGH_ABOVE = 20
SEARCH_VOLUME_MEDIUM_FROM = 10

# Time-to-sell proxy: average days since sale < bound
TIME_TO_SELL_THRESHOLDS = [
    (2, 'immediate'),
    (7, 'fast'),
    (21, 'normal'),
    (45, 'slow'),
]

TREND_CONFIG = {
    'window_size': 10,          # comps per half
    'min_comps': 4,             # fewer than this -> stable / weak
    'direction_threshold': 0.05,
    'strong_threshold': 0.15,
}

PRICING_CONFIG = {
    'competitive_ratio': 0.95,
    'quick_sale_ratio': 0.85,
    'max_profit_ratio': 1.15,
    'range_low_ratio': 0.80,
    'range_high_ratio': 1.20,
    'auction_share_threshold': 0.50,
}

CONFIDENCE_CONFIG = {
    'identification_weight': 0.4,
    'data_weight': 0.6,
    'condition_confidence': 0.85,
    'estimate_condition_confidence': 0.70,
    'tier_scores': {
        'insufficient': 0.0,
        'limited': 0.3,
        'fair': 0.6,
        'good': 0.85,
        'excellent': 1.0,
    },
}

# Fallback price estimates when no comps are found
FALLBACK_BRAND_PRICES = {
    # brand: (sneakers price, any other category)
    'nike': (120.0, 45.0),
    'jordan': (120.0, 45.0),
    'adidas': (100.0, 40.0),
    'apple': (350.0, 350.0),
    'supreme': (200.0, 200.0),
}

FALLBACK_CATEGORY_PRICES = {
    'sneakers': 60.0,
    'electronics': 150.0,
    'clothing': 25.0,
    'accessories': 30.0,
}

FALLBACK_DEFAULT_PRICE = 35.0

# Marketplace category paths for listing creation
CATEGORY_PATHS = {
    'sneakers': 'Clothing, Shoes & Accessories > Unisex Shoes',
    'clothing': 'Clothing, Shoes & Accessories',
    'electronics': 'Consumer Electronics',
    'accessories': 'Clothing, Shoes & Accessories > Accessories',
    'home': 'Home & Garden',
    'collectibles': 'Collectibles',
    'books': 'Books & Magazines',
    'toys': 'Toys & Hobbies',
    'sports': 'Sporting Goods',
    'other': 'Everything Else',
}

BRAND_CATEGORY_PATHS = {
    ('nike', 'sneakers'): "Clothing, Shoes & Accessories > Men > Men's Shoes > Athletic Shoes",
    ('jordan', 'sneakers'): "Clothing, Shoes & Accessories > Men > Men's Shoes > Athletic Shoes",
    ('adidas', 'sneakers'): "Clothing, Shoes & Accessories > Men > Men's Shoes > Athletic Shoes",
    ('apple', 'electronics'): 'Cell Phones & Accessories > Cell Phones & Smartphones',
}

PHOTOGRAPHY_CHECKLIST = [
    'Clear photos from multiple angles',
    'Close-ups of brand tags and condition details',
    'Good lighting to show true colors',
    'Size tag or measurement reference',
]


def create_sample_env(path: Optional[str] = None):
    """Create a sample .env file with required variables"""
    env_content = """# eBay Finding API
EBAY_APP_ID=your_app_id_here
EBAY_SANDBOX=false

# Rate limiting
MIN_CALL_INTERVAL=3.0
MAX_CALLS_PER_WINDOW=5
RATE_WINDOW_SECONDS=60

# Retry / backoff
MAX_RETRIES=3
BASE_RETRY_DELAY=30
MAX_BACKOFF_SECONDS=300

# Search
INTER_QUERY_DELAY=5
SOLD_LOOKBACK_DAYS=30
MAX_QUERIES_PER_RUN=5
ENTRIES_PER_PAGE=100
REQUEST_TIMEOUT=30
EARLY_STOP_COMP_COUNT=50

# Logging
LOG_LEVEL=INFO
LOG_FILE=market_intel.log
"""
    path = path or '.env'

    if not os.path.exists(path):
        with open(path, 'w') as f:
            f.write(env_content)
        return True

    return False


if __name__ == "__main__":
    config = Config()
    print("Configuration loaded:")
    print(json.dumps(config.to_dict(), indent=2))
