"""Factory for creating and managing storefront adapter instances."""

from typing import Dict, Iterable, List, Optional

import structlog

from pricetracker.config import Settings, get_settings
from pricetracker.scrapers.adapters import get_builtin_rulesets
from pricetracker.scrapers.errors import AdapterNotFound
from pricetracker.scrapers.rules import SiteRules, load_rulesets
from pricetracker.scrapers.scraper_service import ScraperService
from pricetracker.scrapers.site_adapter import SessionFactory, SiteAdapter
from pricetracker.scrapers.utils.browser_session import BrowserSessionFactory

logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Registry of storefront rulesets that builds configured adapters.

    Provides dependency injection for settings and the browser session
    factory, which tests replace with fakes.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self._settings = settings or get_settings()
        self._session_factory = session_factory or BrowserSessionFactory(self._settings)
        self._registry: Dict[str, SiteRules] = {}

        proxies = self._settings.get_proxy_list()
        if proxies:
            logger.info("proxy_rotation_enabled", proxy_count=len(proxies))

    def register_rules(self, rules: SiteRules) -> None:
        """Register a ruleset, replacing any earlier one for the same source.

        Args:
            rules: Storefront ruleset
        """
        replaced = rules.source in self._registry
        self._registry[rules.source] = rules
        logger.info("adapter_registered", source=rules.source, replaced=replaced)

    def create_adapter(self, source: str) -> SiteAdapter:
        """Create an adapter for a registered source.

        Args:
            source: Source identifier (e.g., "ebay")

        Returns:
            Configured adapter instance

        Raises:
            AdapterNotFound: If no ruleset is registered for ``source``
        """
        rules = self._registry.get(source)
        if rules is None:
            raise AdapterNotFound(source)
        return SiteAdapter(rules, settings=self._settings, session_factory=self._session_factory)

    def create_all(self, sources: Optional[Iterable[str]] = None) -> List[SiteAdapter]:
        """Create adapters for ``sources``, or for every registered source."""
        wanted = list(sources) if sources else self.get_registered_sources()
        unknown = [s for s in wanted if not self.has_adapter(s)]
        if unknown:
            logger.warning("unknown_sources_ignored", sources=unknown)
        return [self.create_adapter(s) for s in wanted if self.has_adapter(s)]

    def get_registered_sources(self) -> List[str]:
        """Get list of registered source identifiers."""
        return list(self._registry.keys())

    def has_adapter(self, source: str) -> bool:
        return source in self._registry


def build_adapter_factory(
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
) -> AdapterFactory:
    """Factory with the built-in rulesets plus any from ``SCRAPER_RULESET_PATH``.

    Raises:
        RulesetError: If the configured ruleset file cannot be loaded
    """
    settings = settings or get_settings()
    factory = AdapterFactory(settings, session_factory)
    for rules in get_builtin_rulesets():
        factory.register_rules(rules)
    if settings.SCRAPER_RULESET_PATH:
        for rules in load_rulesets(settings.SCRAPER_RULESET_PATH):
            factory.register_rules(rules)
    return factory


def build_scraper_service(
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
    sources: Optional[Iterable[str]] = None,
) -> ScraperService:
    """Assemble the default ScraperService from configuration.

    Args:
        settings: Settings to use; defaults to the process-wide instance
        session_factory: Browser session factory override
        sources: Sources to include; defaults to SCRAPER_ENABLED_SOURCES, then all

    Returns:
        ScraperService over the enabled sources
    """
    settings = settings or get_settings()
    factory = build_adapter_factory(settings, session_factory)
    adapters = factory.create_all(sources or settings.get_enabled_sources())
    return ScraperService(
        adapters,
        max_concurrent_adapters=settings.SCRAPER_MAX_CONCURRENT_SESSIONS,
        adapter_timeout=settings.SCRAPER_ADAPTER_TIMEOUT_SECONDS,
    )
