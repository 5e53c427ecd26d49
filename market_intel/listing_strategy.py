#!/usr/bin/env python3
"""
Listing Strategy Generator

Derives the marketplace title, keywords, category path, format and description
for a researched item. The description quotes the pricing justifications
verbatim.
"""

import logging
from typing import List

from market_intel import (
    CompetitionLevel,
    EbayCondition,
    ListingFormat,
    ListingStrategy,
    MarketSnapshot,
    PricingRecommendation,
    ProductIdentification,
)
from market_intel.config import (
    BRAND_CATEGORY_PATHS,
    CATEGORY_PATHS,
    CONDITION_DESCRIPTIONS,
    PHOTOGRAPHY_CHECKLIST,
    PRICING_CONFIG,
)
from market_intel.pricing_engine import auction_share

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 80
ELLIPSIS = "..."

COMPETITION_TIPS = {
    CompetitionLevel.LOW: "Low competition - you can price at premium",
    CompetitionLevel.MODERATE: "Moderate competition - price competitively",
    CompetitionLevel.HIGH: "High competition - consider quick sale pricing",
    CompetitionLevel.SATURATED: "Saturated market - focus on great photos and description",
}


def truncate_title(title: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """Cut a title to `max_length` characters, ending in an ellipsis when shortened"""
    if len(title) <= max_length:
        return title
    return title[:max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def generate_title(identification: ProductIdentification, condition: EbayCondition) -> str:
    """
    brand + model + style code + "Size X" + colorway + condition, at most 80 chars.

    The brand is dropped when the model name already contains it.
    """
    brand = identification.brand.strip()
    model = identification.exact_model_name.strip() or identification.product_line.strip()

    parts: List[str] = []
    if brand and brand.lower() not in model.lower():
        parts.append(brand)
    if model:
        parts.append(model)
    if identification.style_code.strip():
        parts.append(identification.style_code.strip())
    if identification.size.strip():
        parts.append(f"Size {identification.size.strip()}")
    if identification.colorway.strip():
        parts.append(identification.colorway.strip())
    parts.append(condition.value)

    return truncate_title(" ".join(parts))


def generate_keywords(identification: ProductIdentification) -> List[str]:
    """Distinct non-empty identification fields plus the category"""
    candidates = [
        identification.brand,
        identification.exact_model_name,
        identification.product_line,
        identification.style_code,
        identification.colorway,
        identification.size,
        identification.category.value,
    ]

    keywords = []
    seen = set()
    for candidate in candidates:
        keyword = candidate.strip().lower()
        if keyword and keyword not in seen:
            seen.add(keyword)
            keywords.append(keyword)
    return keywords


def lookup_category_path(identification: ProductIdentification) -> str:
    """Marketplace category path, brand-specific where one is known"""
    brand = identification.brand.strip().lower()
    category = identification.category.value

    for (brand_key, category_key), path in BRAND_CATEGORY_PATHS.items():
        if category_key == category and brand_key in brand:
            return path

    return CATEGORY_PATHS.get(category, CATEGORY_PATHS['other'])


def choose_listing_format(snapshot: MarketSnapshot) -> ListingFormat:
    if snapshot.comps and auction_share(snapshot) >= PRICING_CONFIG['auction_share_threshold']:
        return ListingFormat.AUCTION
    return ListingFormat.BUY_IT_NOW


def generate_description(identification: ProductIdentification, condition: EbayCondition,
                         pricing: PricingRecommendation) -> str:
    name = " ".join(part for part in (identification.brand.strip(),
                                       identification.exact_model_name.strip() or identification.product_line.strip())
                    if part) or "Item"

    lines = [name, "", f"Condition: {condition.value} - {CONDITION_DESCRIPTIONS[condition.value]}"]

    details = [
        ("Style Code", identification.style_code),
        ("Size", identification.size),
        ("Colorway", identification.colorway),
    ]
    details = [(label, value.strip()) for label, value in details if value.strip()]
    if details:
        lines.append("")
        lines.append("Details:")
        lines.extend(f"- {label}: {value}" for label, value in details)

    lines.append("")
    lines.append("Pricing:")
    lines.extend(f"- {line}" for line in pricing.justification)

    lines.append("")
    lines.append("Fast shipping with tracking. Returns accepted.")
    return "\n".join(lines)


def generate_tips(identification: ProductIdentification, snapshot: MarketSnapshot) -> List[str]:
    tips = [COMPETITION_TIPS[snapshot.competition_level]]
    if identification.confidence < 0.7:
        tips.append("Consider getting more product details for better listing")
    tips.append("Use all available photo slots")
    return tips


def build_listing_strategy(identification: ProductIdentification, condition: EbayCondition,
                           snapshot: MarketSnapshot, pricing: PricingRecommendation) -> ListingStrategy:
    """
    Assemble the listing strategy for a researched item.

    Args:
        identification: Product identity
        condition: Listing condition
        snapshot: Market snapshot the price was derived from
        pricing: Pricing recommendation (justifications are quoted verbatim)

    Returns:
        ListingStrategy
    """
    title = generate_title(identification, condition)
    listing_format = choose_listing_format(snapshot)

    logger.info(f"Listing strategy: '{title}' ({listing_format.value})")

    return ListingStrategy(
        title=title,
        keywords=tuple(generate_keywords(identification)),
        category_path=lookup_category_path(identification),
        listing_format=listing_format,
        description=generate_description(identification, condition, pricing),
        photography_checklist=tuple(PHOTOGRAPHY_CHECKLIST),
        tips=tuple(generate_tips(identification, snapshot)),
    )
