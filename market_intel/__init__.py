#!/usr/bin/env python3
"""
Market Intelligence - Data Models

Defines core data structures for comp research, market statistics and pricing
recommendations. Everything except ProductIdentification is built fresh per
research run and never mutated afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple


class ProductCategory(str, Enum):
    SNEAKERS = "sneakers"
    CLOTHING = "clothing"
    ELECTRONICS = "electronics"
    ACCESSORIES = "accessories"
    COLLECTIBLES = "collectibles"
    HOME = "home"
    SPORTS = "sports"
    TOYS = "toys"
    BOOKS = "books"
    OTHER = "other"

    @classmethod
    def from_string(cls, value) -> "ProductCategory":
        """Tolerant mapping from free text ("Shoes", "footwear", ...) to a category"""
        if isinstance(value, cls):
            return value
        text = (value or "").strip().lower()
        aliases = {
            'shoes': cls.SNEAKERS,
            'footwear': cls.SNEAKERS,
            'sneaker': cls.SNEAKERS,
            'apparel': cls.CLOTHING,
            'clothes': cls.CLOTHING,
            'home & garden': cls.HOME,
            'toy': cls.TOYS,
            'book': cls.BOOKS,
        }
        if text in aliases:
            return aliases[text]
        for member in cls:
            if member.value == text:
                return member
        return cls.OTHER

    @property
    def is_apparel(self) -> bool:
        return self in (ProductCategory.SNEAKERS, ProductCategory.CLOTHING)


class EbayCondition(str, Enum):
    """Requested listing condition"""
    NEW_WITH_TAGS = "New with tags"
    NEW_WITHOUT_TAGS = "New without tags"
    NEW_OTHER = "New other"
    LIKE_NEW = "Like New"
    EXCELLENT = "Excellent"
    VERY_GOOD = "Very Good"
    GOOD = "Good"
    ACCEPTABLE = "Acceptable"
    FOR_PARTS = "For parts or not working"

    @property
    def comp_bucket(self) -> Optional[str]:
        """Canonical comp condition this listing condition is priced against"""
        if self is EbayCondition.NEW_OTHER:
            return EbayCondition.NEW_WITHOUT_TAGS.value
        if self is EbayCondition.FOR_PARTS:
            return None
        return self.value


# Canonical condition labels a SoldComp can carry
COMP_CONDITIONS = [
    EbayCondition.NEW_WITH_TAGS.value,
    EbayCondition.NEW_WITHOUT_TAGS.value,
    EbayCondition.LIKE_NEW.value,
    EbayCondition.EXCELLENT.value,
    EbayCondition.VERY_GOOD.value,
    EbayCondition.GOOD.value,
    EbayCondition.ACCEPTABLE.value,
]


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class TrendStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class TimeToSell(str, Enum):
    IMMEDIATE = "immediate"
    FAST = "fast"
    NORMAL = "normal"
    SLOW = "slow"
    DIFFICULT = "difficult"


class SearchVolume(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CompetitionLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SATURATED = "saturated"


class PricingStrategy(str, Enum):
    COMPETITIVE = "competitive"
    PREMIUM = "premium"
    DISCOUNT = "discount"
    AUCTION = "auction"


class DataQuality(str, Enum):
    INSUFFICIENT = "insufficient"
    LIMITED = "limited"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class ListingFormat(str, Enum):
    BUY_IT_NOW = "buy_it_now"
    AUCTION = "auction"


@dataclass(frozen=True)
class ProductIdentification:
    """Product identity as produced by the vision step"""
    brand: str = ""
    exact_model_name: str = ""
    product_line: str = ""
    style_code: str = ""
    colorway: str = ""
    size: str = ""
    category: ProductCategory = ProductCategory.OTHER
    confidence: float = 0.0

    def __post_init__(self):
        # Missing fields may arrive as None (or numbers, e.g. size 10)
        for name in ('brand', 'exact_model_name', 'product_line', 'style_code', 'colorway', 'size'):
            value = getattr(self, name)
            object.__setattr__(self, name, '' if value is None else str(value))
        object.__setattr__(self, 'category', ProductCategory.from_string(self.category))
        object.__setattr__(self, 'confidence', float(self.confidence or 0.0))

    @property
    def is_empty(self) -> bool:
        return not any(value.strip() for value in (
            self.brand, self.exact_model_name, self.product_line,
            self.style_code, self.colorway, self.size,
        ))


@dataclass(frozen=True)
class SoldComp:
    """A single sold listing, created only by the normalizer"""
    title: str
    price: float
    condition: str
    sold_date: datetime
    shipping_cost: Optional[float] = None
    auction: bool = False
    watchers: Optional[int] = None
    item_id: Optional[str] = None

    @property
    def signature(self) -> str:
        """Dedup key: lowercased title prefix + price to the cent"""
        return f"{self.title.lower()[:50]}-{self.price:.2f}"

    def __repr__(self):
        return f"SoldComp(price=${self.price:.2f}, date={self.sold_date.date()}, condition={self.condition})"


@dataclass(frozen=True)
class PriceRange:
    """Condition-bucketed price summary; a bucket with no comps holds None"""
    condition_averages: Dict[str, Optional[float]]
    condition_medians: Dict[str, Optional[float]]
    condition_counts: Dict[str, int]
    average: float
    median: float
    lowest: float
    highest: float
    sample_size: int
    date_range: str
    price_distribution: Dict[str, int] = field(default_factory=dict)

    @property
    def volatility(self) -> float:
        if self.average <= 0:
            return 0.0
        return (self.highest - self.lowest) / self.average


@dataclass(frozen=True)
class MarketTrend:
    direction: TrendDirection
    strength: TrendStrength
    change: float = 0.0
    timeframe: str = "30 days"


@dataclass(frozen=True)
class DemandIndicators:
    time_to_sell: TimeToSell
    search_volume: SearchVolume
    average_days_since_sale: Optional[float] = None
    average_watchers: Optional[float] = None
    notes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MarketSnapshot:
    comps: Tuple[SoldComp, ...]
    price_range: PriceRange
    trend: MarketTrend
    demand: DemandIndicators
    competition_level: CompetitionLevel
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def sold_count(self) -> int:
        return len(self.comps)


@dataclass(frozen=True)
class PricingRecommendation:
    """Final pricing recommendation with all price points"""
    recommended_price: float
    price_range: Tuple[float, float]
    competitive_price: float
    quick_sale_price: float
    max_profit_price: float
    strategy: PricingStrategy
    justification: Tuple[str, ...]
    condition_multiplier: float = 1.0
    is_estimate: bool = False

    def __repr__(self):
        return (f"PricingRecommendation(price=${self.recommended_price:.2f}, "
                f"strategy={self.strategy.value}, estimate={self.is_estimate})")


@dataclass(frozen=True)
class ConfidenceScore:
    overall: float
    identification: float
    condition: float
    pricing: float
    data_quality: DataQuality


@dataclass(frozen=True)
class ConditionAssessment:
    condition: EbayCondition
    confidence: float
    notes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ListingStrategy:
    title: str
    keywords: Tuple[str, ...]
    category_path: str
    listing_format: ListingFormat
    description: str
    photography_checklist: Tuple[str, ...] = ()
    tips: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MarketAnalysisResult:
    """Everything the listing and UI layers need for one researched item"""
    identification: ProductIdentification
    snapshot: MarketSnapshot
    condition_assessment: ConditionAssessment
    pricing: PricingRecommendation
    listing: ListingStrategy
    confidence: ConfidenceScore
    queries: Tuple[Tuple[str, ...], ...] = ()

    @property
    def sold_count(self) -> int:
        return self.snapshot.sold_count

    @property
    def data_quality(self) -> DataQuality:
        return self.confidence.data_quality

    def __repr__(self):
        return (f"MarketAnalysisResult({self.identification.brand} {self.identification.exact_model_name}, "
                f"price=${self.pricing.recommended_price:.2f}, sold_count={self.sold_count}, "
                f"data_quality={self.data_quality.value})")


__all__ = [
    'ProductCategory',
    'EbayCondition',
    'COMP_CONDITIONS',
    'TrendDirection',
    'TrendStrength',
    'TimeToSell',
    'SearchVolume',
    'CompetitionLevel',
    'PricingStrategy',
    'DataQuality',
    'ListingFormat',
    'ProductIdentification',
    'SoldComp',
    'PriceRange',
    'MarketTrend',
    'DemandIndicators',
    'MarketSnapshot',
    'PricingRecommendation',
    'ConfidenceScore',
    'ConditionAssessment',
    'ListingStrategy',
    'MarketAnalysisResult',
]
