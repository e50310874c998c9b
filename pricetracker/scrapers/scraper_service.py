"""Scraper orchestration service.

Fans a query out to every storefront adapter concurrently and gathers
whatever comes back. One adapter failing, hanging or getting blocked never
affects the others: its slice of the result is simply empty.
"""

import asyncio
import time
from typing import Dict, List, Optional, Sequence

import structlog
from playwright.async_api import Error as PlaywrightError

from pricetracker.scrapers.base import BaseAdapter, PriceRefreshResult, ScrapedProduct
from pricetracker.scrapers.errors import AdapterNotFound, ScraperError

logger = structlog.get_logger(__name__)


class ScraperService:
    """Service for orchestrating storefront adapters.

    The adapter list is passed in explicitly; use
    ``pricetracker.scrapers.factory.build_scraper_service`` to assemble one
    from configuration.
    """

    def __init__(
        self,
        adapters: Sequence[BaseAdapter],
        max_concurrent_adapters: int = 4,
        adapter_timeout: Optional[float] = 420.0,
    ):
        """Initialize scraper service.

        Args:
            adapters: Adapters to fan out to, one per source
            max_concurrent_adapters: Maximum number of browser sessions alive at once
            adapter_timeout: Seconds each adapter call may take; None for no limit
        """
        if max_concurrent_adapters < 1:
            raise ValueError("max_concurrent_adapters must be at least 1")

        self._adapters: Dict[str, BaseAdapter] = {}
        for adapter in adapters:
            if adapter.source in self._adapters:
                raise ValueError(f"Duplicate adapter for source: {adapter.source}")
            self._adapters[adapter.source] = adapter

        self._semaphore = asyncio.Semaphore(max_concurrent_adapters)
        self._adapter_timeout = adapter_timeout
        self.logger = logger.bind(service="scraper_service")

    @property
    def sources(self) -> List[str]:
        """Registered source identifiers."""
        return list(self._adapters)

    async def search_all_sources(self, query: str) -> List[ScrapedProduct]:
        """Search every storefront concurrently.

        Args:
            query: Free-text search query

        Returns:
            Products from all adapters that succeeded. Order across
            adapters is unspecified; page order is kept within each.

        Raises:
            ValueError: If the query is blank
        """
        if not query or not query.strip():
            raise ValueError("query must not be blank")
        query = query.strip()

        self.logger.info("search_started", query=query, sources=self.sources)
        started = time.monotonic()

        slices = await asyncio.gather(
            *(self._search_isolated(adapter, query) for adapter in self._adapters.values())
        )
        products = [product for chunk in slices for product in chunk]

        self.logger.info(
            "search_finished",
            query=query,
            total=len(products),
            per_source={a.source: len(s) for a, s in zip(self._adapters.values(), slices)},
            elapsed_seconds=round(time.monotonic() - started, 2),
        )
        return products

    async def _search_isolated(self, adapter: BaseAdapter, query: str) -> List[ScrapedProduct]:
        """Run one adapter; any failure becomes an empty slice."""
        log = self.logger.bind(source=adapter.source)
        async with self._semaphore:
            try:
                products = await asyncio.wait_for(
                    adapter.search_products(query), timeout=self._adapter_timeout
                )
            except asyncio.TimeoutError:
                log.error("adapter_timed_out", query=query, timeout_seconds=self._adapter_timeout)
                return []
            except Exception as e:
                log.error("adapter_search_failed", query=query, error=str(e), exc_info=True)
                return []

        log.info("adapter_search_complete", query=query, count=len(products))
        return products

    async def get_product_details(self, url: str, source: str) -> Optional[ScrapedProduct]:
        """Fetch one listing through the adapter registered for ``source``.

        Args:
            url: Absolute listing URL
            source: Source identifier the URL belongs to

        Returns:
            ScrapedProduct, or None if the page was blocked or did not parse

        Raises:
            AdapterNotFound: If no adapter is registered for ``source``
            NavigationError: If the page could not be loaded
        """
        adapter = self._adapters.get(source)
        if adapter is None:
            raise AdapterNotFound(source)
        return await adapter.get_product_details(url)

    async def refresh_price(self, existing: ScrapedProduct) -> PriceRefreshResult:
        """Re-scrape the current price of a known product.

        Searches by title first and matches on source plus id or URL. If the
        search does not turn the listing up, loads its page directly.
        Nothing is persisted; the caller stores the result. Failures of the
        direct lookup, browser crashes included, end up in ``error`` so a
        catalog-wide refresh loop keeps going.

        Args:
            existing: Product as last stored

        Returns:
            PriceRefreshResult; ``error`` is set when no fresh price was found
        """
        log = self.logger.bind(
            source=existing.source, site_product_id=existing.site_product_id
        )
        result = PriceRefreshResult(old_price=existing.price, currency=existing.currency)

        candidates = await self.search_all_sources(existing.title)
        fresh = next((p for p in candidates if _same_listing(existing, p)), None)
        matched_via = "search"

        if fresh is None:
            log.info("refresh_falling_back_to_direct", url=existing.url)
            try:
                fresh = await self.get_product_details(existing.url, existing.source)
            except (ScraperError, PlaywrightError) as e:
                log.error("price_refresh_failed", url=existing.url, error=str(e))
                result.error = str(e)
                return result
            matched_via = "direct"

        if fresh is None:
            log.warning("price_refresh_not_found", url=existing.url)
            result.error = "product not found"
            return result

        result.product = fresh
        result.matched_via = matched_via
        result.new_price = fresh.price
        result.currency = fresh.currency
        result.price_changed = fresh.price != existing.price

        if result.price_changed:
            log.info(
                "price_changed",
                old_price=str(existing.price),
                new_price=str(fresh.price),
                change_percent=str(result.change_percent),
                matched_via=matched_via,
            )
        else:
            log.info("price_unchanged", price=str(fresh.price), matched_via=matched_via)
        return result


def _same_listing(existing: ScrapedProduct, candidate: ScrapedProduct) -> bool:
    if candidate.source != existing.source:
        return False
    return (
        candidate.site_product_id == existing.site_product_id
        or candidate.url == existing.url
    )
