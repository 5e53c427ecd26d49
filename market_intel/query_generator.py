#!/usr/bin/env python3
"""
Search Query Generation

Turns a ProductIdentification into an ordered list of keyword sets, most
specific first, so the fetcher can stop once enough comps are collected.
"""

import logging
from typing import List

from market_intel import ProductIdentification

logger = logging.getLogger(__name__)

MAX_QUERY_TOKENS = 5

# Colorways this short are usually a generic single color ("Red", "Tan")
MIN_COLORWAY_LENGTH = 4


def generate_search_queries(identification: ProductIdentification) -> List[List[str]]:
    """
    Build search keyword sets from a product identification.

    Args:
        identification: ProductIdentification from the vision step

    Returns:
        Ordered list of token lists (style code > brand+model >
        brand+line+size+colorway > model only > brand only). Empty only when
        every identification field is empty.
    """
    brand = identification.brand.strip()
    model = identification.exact_model_name.strip()
    line = identification.product_line.strip()
    style_code = identification.style_code.strip()
    colorway = identification.colorway.strip()
    size = identification.size.strip()

    queries = []

    if style_code:
        queries.append([token for token in (brand, style_code) if token])

    if brand and model:
        queries.append([brand, model])

    if brand and line:
        tokens = [brand, line]
        if size and identification.category.is_apparel:
            tokens.append(size)
        if len(colorway) >= MIN_COLORWAY_LENGTH:
            tokens.append(colorway)
        queries.append(tokens)

    if model:
        queries.append([model])

    if not queries and brand:
        queries.append([brand])

    # Nothing identifying beyond descriptive fields, search on what is there
    if not queries:
        tokens = [token for token in (line, colorway, size) if token]
        if tokens:
            queries.append(tokens)

    unique_queries = []
    seen = set()
    for tokens in queries:
        tokens = tokens[:MAX_QUERY_TOKENS]
        key = tuple(token.lower() for token in tokens)
        if key in seen:
            continue
        seen.add(key)
        unique_queries.append(tokens)

    logger.debug(f"Generated {len(unique_queries)} query sets: {unique_queries}")
    return unique_queries


def format_query(tokens: List[str]) -> str:
    """Join a keyword set into the search string sent to the marketplace"""
    return " ".join(token.strip() for token in tokens if token.strip())
