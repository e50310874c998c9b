"""Base scraper adapter interface.

Every storefront adapter implements BaseAdapter and returns
ScrapedProduct records, whatever the markup it reads.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

import structlog


@dataclass
class Review:
    """A customer review scraped from a product page."""

    text: str
    rating: float
    title: Optional[str] = None
    date: Optional[str] = None


@dataclass
class ScrapedProduct:
    """Normalized product data structure returned by all adapters."""

    title: str
    price: Decimal
    currency: str
    url: str
    source: str  # Adapter identity, e.g. "amazon_in"
    site_product_id: str  # ASIN, eBay item number, Flipkart pid...
    image_url: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    reviews: List[Review] = field(default_factory=list)
    synthetic_id: bool = False  # site_product_id was derived from the URL
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.title or not self.title.strip():
            raise ValueError("title is required")
        if not isinstance(self.price, Decimal) or self.price <= 0:
            raise ValueError("price must be a positive Decimal")
        if not self.url or not self.url.startswith(("http://", "https://")):
            raise ValueError(f"url must be absolute: {self.url!r}")
        if not self.source:
            raise ValueError("source is required")
        if not self.site_product_id:
            raise ValueError("site_product_id is required")
        if self.rating is not None and not 0 <= self.rating <= 5:
            raise ValueError(f"rating must be between 0 and 5: {self.rating}")
        if len(self.currency) != 3:
            raise ValueError(f"currency must be an ISO 4217 code: {self.currency!r}")


@dataclass
class PriceRefreshResult:
    """Outcome of re-scraping the price of a known product."""

    price_changed: bool = False
    old_price: Optional[Decimal] = None
    new_price: Optional[Decimal] = None
    currency: Optional[str] = None
    matched_via: Optional[str] = None  # 'search', 'direct' or None
    product: Optional[ScrapedProduct] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.product is not None

    @property
    def change_percent(self) -> Optional[Decimal]:
        """Percentage change from old to new price, rounded to 2 places."""
        if self.old_price and self.new_price is not None:
            return round((self.new_price - self.old_price) / self.old_price * 100, 2)
        return None


class BaseAdapter(ABC):
    """Abstract base class for all storefront adapters.

    Expected failures (CAPTCHA walls, empty pages, markup the rules no
    longer match) come back as an empty list or None. Exceptions are
    reserved for navigation failures on detail pages and programming errors.
    """

    source: str = ""  # Must be set by subclass or constructor (e.g., "ebay")
    name: str = ""  # Display name (e.g., "eBay")

    def __init__(self):
        self.logger = structlog.get_logger(__name__).bind(adapter=self.source)

    @abstractmethod
    async def search_products(self, query: str) -> List[ScrapedProduct]:
        """Search the storefront and return relevant listings.

        Args:
            query: Free-text search query

        Returns:
            List of ScrapedProduct objects, empty on soft failure
        """

    @abstractmethod
    async def get_product_details(self, url: str) -> Optional[ScrapedProduct]:
        """Fetch a single listing page.

        Args:
            url: Absolute listing URL on this storefront

        Returns:
            ScrapedProduct with reviews, or None if blocked or unparseable

        Raises:
            NavigationError: If the page could not be loaded
        """
