"""Generic ruleset-driven storefront adapter.

One engine serves every storefront: the per-site differences live in the
SiteRules passed in. Every call opens its own browser session and closes
it before returning, whatever the outcome.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from playwright.async_api import Error as PlaywrightError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from pricetracker.config import Settings, get_settings
from pricetracker.scrapers.antibot import await_intervention, detect_challenge
from pricetracker.scrapers.base import BaseAdapter, ScrapedProduct
from pricetracker.scrapers.errors import NavigationError
from pricetracker.scrapers.extraction import extract_product_details, extract_search_results
from pricetracker.scrapers.relevance import is_relevant
from pricetracker.scrapers.rules import SiteRules
from pricetracker.scrapers.utils.browser_session import BrowserSession, BrowserSessionFactory

SessionFactory = Callable[[SiteRules], BrowserSession]

SEARCH_ATTEMPTS = 2


@dataclass
class SearchAttempt:
    """Result of one pass over the search page.

    ``retryable`` is False when the pass ended early (bot wall, navigation
    failure), in which case an immediate retry would hit the same wall.
    """

    products: List[ScrapedProduct] = field(default_factory=list)
    retryable: bool = True


def _empty_and_retryable(attempt: SearchAttempt) -> bool:
    return attempt.retryable and not attempt.products


class SiteAdapter(BaseAdapter):
    """Storefront adapter driven by a declarative ruleset."""

    def __init__(
        self,
        rules: SiteRules,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.rules = rules
        self.source = rules.source
        self.name = rules.name
        super().__init__()
        self._settings = settings or get_settings()
        self._session_factory = session_factory or BrowserSessionFactory(self._settings)

    def __repr__(self) -> str:
        return f"<SiteAdapter source={self.source!r}>"

    async def search_products(self, query: str) -> List[ScrapedProduct]:
        """Search the storefront, retrying once if a clean pass found nothing.

        Args:
            query: Free-text search query

        Returns:
            Relevant products in page order; empty on soft failure

        Raises:
            ValueError: If the query is blank
        """
        query = query.strip()
        if not query:
            raise ValueError("query must not be blank")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(SEARCH_ATTEMPTS),
            wait=wait_fixed(self._settings.SCRAPER_EMPTY_RETRY_DELAY_SECONDS),
            retry=retry_if_result(_empty_and_retryable),
            before_sleep=self._log_empty_retry,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        attempt = await retrying(self._search_once, query)
        return attempt.products

    def _log_empty_retry(self, retry_state: RetryCallState) -> None:
        self.logger.warning(
            "search_empty_retrying",
            attempt=retry_state.attempt_number,
            delay_seconds=self._settings.SCRAPER_EMPTY_RETRY_DELAY_SECONDS,
        )

    async def _search_once(self, query: str) -> SearchAttempt:
        cfg = self._settings
        url = self.rules.search_url(query)
        session = self._session_factory(self.rules)
        try:
            await session.start()
            self.logger.info("searching", query=query, url=url)
            await session.navigate(url)

            if not await self._clear_challenge(session):
                return SearchAttempt(retryable=False)

            await session.wait_for_any(self.rules.result_selectors, cfg.SCRAPER_RESULTS_WAIT_MS)
            await session.scroll()
            html = await session.content()

            products = extract_search_results(
                html,
                self.rules,
                max_results=cfg.SCRAPER_MAX_RESULTS,
                max_valid_price=cfg.SCRAPER_MAX_VALID_PRICE,
            )
            relevant = [
                p for p in products
                if is_relevant(p.title, query, self.rules.brand_keywords)
            ]
            self.logger.info(
                "search_complete",
                query=query,
                extracted=len(products),
                relevant=len(relevant),
            )
            return SearchAttempt(products=relevant)

        except NavigationError as e:
            self.logger.warning("search_navigation_failed", query=query, url=e.url, reason=e.reason)
            return SearchAttempt(retryable=False)
        except PlaywrightError as e:
            self.logger.error("search_browser_error", query=query, error=str(e))
            return SearchAttempt(retryable=False)
        finally:
            await session.close()

    async def get_product_details(self, url: str) -> Optional[ScrapedProduct]:
        """Fetch one listing page with its reviews.

        Args:
            url: Absolute listing URL

        Returns:
            ScrapedProduct, or None if blocked or the page did not parse

        Raises:
            NavigationError: If the page could not be loaded
        """
        cfg = self._settings
        session = self._session_factory(self.rules)
        try:
            await session.start()
            self.logger.info("fetching_details", url=url)
            await session.navigate(url)

            if not await self._clear_challenge(session):
                return None

            await session.wait_for_any(
                self.rules.detail.ready_selectors, cfg.SCRAPER_RESULTS_WAIT_MS
            )
            html = await session.content()
            return extract_product_details(
                html,
                url,
                self.rules,
                max_reviews=cfg.SCRAPER_MAX_REVIEWS,
                max_valid_price=cfg.SCRAPER_MAX_VALID_PRICE,
            )
        finally:
            await session.close()

    async def _clear_challenge(self, session: BrowserSession) -> bool:
        """Return True once the page shows no bot wall."""
        if not detect_challenge(await session.page_text()):
            return True
        self.logger.warning("captcha_detected", url=session.current_url)
        return await await_intervention(
            session,
            timeout=self._settings.SCRAPER_CAPTCHA_WAIT_SECONDS,
            poll_interval=self._settings.SCRAPER_CAPTCHA_POLL_SECONDS,
        )
