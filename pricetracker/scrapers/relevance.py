"""Query relevance filter for search results.

Storefront search pages pad results with accessories and loosely related
items. A listing is kept only if its title shares enough significant words
with the query, and names the brand when the query does.
"""

import string
from typing import Iterable, List

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_BRAND_KEYWORDS = ("iphone", "macbook", "samsung", "alienware", "dell")

STOPWORDS = frozenset({
    "and", "the", "for", "with", "from", "new", "buy", "best", "cheap",
    "online", "sale", "deal", "deals", "price",
})

MIN_TOKEN_LENGTH = 3


def tokenize(query: str) -> List[str]:
    """Split a query into significant lowercase tokens."""
    tokens = []
    for raw in query.lower().split():
        token = raw.strip(string.punctuation)
        if len(token) < MIN_TOKEN_LENGTH or token in STOPWORDS:
            continue
        tokens.append(token)
    return tokens


def is_relevant(
    title: str,
    query: str,
    brand_keywords: Iterable[str] = DEFAULT_BRAND_KEYWORDS,
) -> bool:
    """Check whether a listing title plausibly answers the query.

    Args:
        title: Listing title
        query: Search query the listing was returned for
        brand_keywords: Brands that, when named in the query, must appear in the title

    Returns:
        True if the listing should be kept
    """
    if not title or not query:
        return True

    tokens = tokenize(query)
    if not tokens:
        return True

    title_lower = title.lower()
    query_lower = query.lower()

    brands = [b for b in brand_keywords if b in query_lower]
    if brands and not any(b in title_lower for b in brands):
        logger.debug("listing_missing_brand", title=title, query=query, brands=brands)
        return False

    matched = [t for t in tokens if t in title_lower]
    required = 2 if len(tokens) >= 4 else 1
    if len(matched) < required:
        logger.debug(
            "listing_not_relevant",
            title=title,
            query=query,
            matched=matched,
            required=required,
        )
        return False
    return True
