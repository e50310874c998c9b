"""Scraper utility modules."""

from pricetracker.scrapers.utils.normalizer import (
    ParsedPrice,
    PriceNormalizer,
    normalize_url,
    parse_count,
    parse_rating,
)
from pricetracker.scrapers.utils.user_agents import get_random_user_agent

__all__ = [
    "ParsedPrice",
    "PriceNormalizer",
    "normalize_url",
    "parse_count",
    "parse_rating",
    "get_random_user_agent",
]
