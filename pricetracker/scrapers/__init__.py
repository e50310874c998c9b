"""Scraping engine for e-commerce storefronts.

This package provides:
- A generic, ruleset-driven adapter with built-in rulesets per storefront
- Browser session management with anti-detection and CAPTCHA recovery
- Locale-aware price and currency normalization
- An orchestrator that queries every storefront concurrently
"""

from .base import BaseAdapter, PriceRefreshResult, Review, ScrapedProduct
from .errors import (
    AdapterNotFound,
    NavigationError,
    RulesetError,
    ScraperError,
    SessionStateError,
)
from .factory import AdapterFactory, build_adapter_factory, build_scraper_service
from .rules import DetailRules, FieldRule, SiteRules, load_rulesets
from .scraper_service import ScraperService
from .site_adapter import SiteAdapter

__all__ = [
    # Base classes
    "BaseAdapter",
    "SiteAdapter",
    # Data structures
    "ScrapedProduct",
    "Review",
    "PriceRefreshResult",
    # Rulesets
    "FieldRule",
    "DetailRules",
    "SiteRules",
    "load_rulesets",
    # Errors
    "ScraperError",
    "NavigationError",
    "AdapterNotFound",
    "SessionStateError",
    "RulesetError",
    # Orchestration
    "AdapterFactory",
    "ScraperService",
    "build_adapter_factory",
    "build_scraper_service",
]
