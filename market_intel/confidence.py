#!/usr/bin/env python3
"""
Confidence scoring for market analysis results.

    overall = 0.4 * identification + 0.6 * (data tier score * condition confidence)

clamped to [0, 1]. The data tier is keyed off comp sample size only.
"""

import logging
from typing import Optional

from market_intel import ConditionAssessment, ConfidenceScore, DataQuality, EbayCondition
from market_intel.config import CONDITION_DESCRIPTIONS, CONFIDENCE_CONFIG
from market_intel.market_stats import data_quality_tier

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def tier_score(tier: DataQuality) -> float:
    return CONFIDENCE_CONFIG['tier_scores'][tier.value]


def assess_condition(condition: EbayCondition, comp_count: int, days: int = 30,
                     confidence: Optional[float] = None) -> ConditionAssessment:
    """
    Build the condition assessment block.

    Args:
        condition: Requested listing condition
        comp_count: Number of comps the price was based on
        days: Look-back window the comps cover
        confidence: Caller-supplied condition confidence, if known

    Returns:
        ConditionAssessment
    """
    if confidence is None:
        key = 'condition_confidence' if comp_count > 0 else 'estimate_condition_confidence'
        confidence = CONFIDENCE_CONFIG[key]

    if comp_count > 0:
        basis = f"Based on {comp_count} sales in the last {days} days"
    else:
        basis = "Category-based price estimate"

    notes = (basis, CONDITION_DESCRIPTIONS.get(condition.value, ''))
    return ConditionAssessment(condition=condition, confidence=_clamp(confidence),
                               notes=tuple(note for note in notes if note))


def score_confidence(identification_confidence: float, comp_count: int,
                     condition_confidence: float) -> ConfidenceScore:
    """
    Combine upstream confidences into one score.

    Args:
        identification_confidence: Vision step confidence (0-1)
        comp_count: Deduplicated comp sample size
        condition_confidence: Confidence in the condition assessment (0-1)

    Returns:
        ConfidenceScore with sub-scores and data-quality tier
    """
    identification = _clamp(identification_confidence or 0.0)
    condition = _clamp(condition_confidence or 0.0)
    tier = data_quality_tier(comp_count)
    pricing = tier_score(tier)

    overall = _clamp(CONFIDENCE_CONFIG['identification_weight'] * identification +
                     CONFIDENCE_CONFIG['data_weight'] * pricing * condition)

    logger.debug(f"Confidence: id={identification:.2f} data={tier.value} "
                 f"condition={condition:.2f} -> {overall:.2f}")

    return ConfidenceScore(
        overall=round(overall, 4),
        identification=identification,
        condition=condition,
        pricing=pricing,
        data_quality=tier,
    )
