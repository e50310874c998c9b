"""Playwright browser sessions with anti-detection.

Each session owns its own browser process, context and page, is used by
exactly one adapter call and is closed exactly once. Sessions are never
pooled or shared between concurrent queries.
"""

import asyncio
import enum
import random
from typing import Callable, List, Optional, Sequence

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    async_playwright,
)

from pricetracker.config import Settings, get_settings
from pricetracker.scrapers.errors import NavigationError, SessionStateError
from pricetracker.scrapers.rules import SiteRules
from pricetracker.scrapers.utils.user_agents import accept_language_for, get_random_user_agent

logger = structlog.get_logger(__name__)

# Minimum size of a partially loaded document worth extracting from
USABLE_DOCUMENT_CHARS = 1000
NETWORK_IDLE_TIMEOUT_MS = 5000
SETTLE_SCROLL_PIXELS = 200

TRACKING_URL_MARKERS = (
    "google-analytics",
    "googletagmanager",
    "analytics",
    "doubleclick",
    "adservice",
    "adsystem",
    "tracking",
    "beacon",
    "facebook.net",
    "hotjar",
)


class SessionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LAUNCHING = "launching"
    READY = "ready"
    NAVIGATING = "navigating"
    CLOSED = "closed"


class BrowserSession:
    """One Chromium instance driven for a single adapter call.

    Creates the context with:
    - User-agent rotation per session
    - Optional proxy
    - Locale, timezone and Accept-Language from the site ruleset
    - Stealth JS injection to hide automation signals
    - Resource blocking (images, media, fonts, trackers) for faster loads
    """

    def __init__(
        self,
        rules: SiteRules,
        settings: Optional[Settings] = None,
        user_agent: Optional[str] = None,
        proxy: Optional[str] = None,
        playwright_factory: Callable = async_playwright,
    ):
        self.rules = rules
        self._settings = settings or get_settings()
        self.user_agent = user_agent or get_random_user_agent()
        self.proxy = proxy
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._state = SessionState.UNINITIALIZED
        self._blocked_types = frozenset(self._settings.get_blocked_resource_types())
        self.logger = logger.bind(adapter=rules.source)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_url(self) -> str:
        if self._page is None:
            return ""
        return self._page.url

    def _require(self, *states: SessionState) -> None:
        if self._state not in states:
            allowed = ", ".join(s.value for s in states)
            raise SessionStateError(
                f"Session is {self._state.value}; expected one of: {allowed}"
            )

    async def start(self) -> None:
        """Launch the browser and open a page. Call once per session."""
        self._require(SessionState.UNINITIALIZED)
        self._state = SessionState.LAUNCHING

        self._playwright = await self._playwright_factory().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._settings.SCRAPER_HEADLESS,
            args=[
                "--disable-blink-features=AutomationControlled",
                "--disable-dev-shm-usage",
                "--no-sandbox",
            ],
        )

        proxy_config = {"server": self.proxy} if self.proxy else None
        self._context = await self._browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": 1920, "height": 1080},
            locale=self.rules.locale,
            timezone_id=self.rules.timezone_id,
            extra_http_headers={"Accept-Language": accept_language_for(self.rules.locale)},
            proxy=proxy_config,
            java_script_enabled=True,
        )

        # Inject stealth script to avoid detection
        await self._context.add_init_script(build_stealth_js(self.rules.locale))

        if self._settings.SCRAPER_BLOCK_RESOURCES:
            await self._context.route("**/*", self._route_request)

        self._page = await self._context.new_page()
        self._state = SessionState.READY
        self.logger.info(
            "browser_session_started",
            headless=self._settings.SCRAPER_HEADLESS,
            has_proxy=bool(self.proxy),
            locale=self.rules.locale,
        )

    async def _route_request(self, route: Route) -> None:
        request = route.request
        url = request.url.lower()
        if request.resource_type in self._blocked_types or any(
            marker in url for marker in TRACKING_URL_MARKERS
        ):
            await route.abort()
        else:
            await route.continue_()

    async def navigate(self, url: str) -> None:
        """Load a page, falling back to a more permissive strategy.

        Args:
            url: Absolute URL to load

        Raises:
            NavigationError: If neither strategy produced a usable page
        """
        self._require(SessionState.READY)
        self._state = SessionState.NAVIGATING
        cfg = self._settings
        try:
            try:
                await self._page.goto(
                    url,
                    wait_until=cfg.SCRAPER_NAVIGATION_WAIT_UNTIL,
                    timeout=cfg.SCRAPER_NAVIGATION_TIMEOUT_MS,
                )
                await self._settle()
                self.logger.info("page_loaded", url=url, strategy="primary")
                return
            except PlaywrightError as e:
                self.logger.warning("navigation_primary_failed", url=url, error=str(e))

            if await self._has_usable_document():
                self.logger.info("page_partially_loaded", url=url)
                return

            try:
                await self._page.goto(
                    url,
                    wait_until=cfg.SCRAPER_FALLBACK_WAIT_UNTIL,
                    timeout=cfg.SCRAPER_FALLBACK_NAVIGATION_TIMEOUT_MS,
                )
            except PlaywrightError as e:
                self.logger.error("navigation_failed", url=url, error=str(e))
                raise NavigationError(url, str(e)) from e

            await self._settle()
            self.logger.info("page_loaded", url=url, strategy="fallback")
        finally:
            if self._state is SessionState.NAVIGATING:
                self._state = SessionState.READY

    async def _settle(self) -> None:
        """Give late scripts a moment, nudge lazy loading, wait for quiet network."""
        await asyncio.sleep(self._settings.SCRAPER_SETTLE_SECONDS)
        try:
            await self._page.evaluate(f"window.scrollBy(0, {SETTLE_SCROLL_PIXELS})")
            await self._page.wait_for_load_state("networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS)
        except PlaywrightError as e:
            self.logger.debug("network_idle_wait_skipped", error=str(e))

    async def _has_usable_document(self) -> bool:
        try:
            html = await self._page.content()
        except PlaywrightError:
            return False
        return len(html) > USABLE_DOCUMENT_CHARS and "<body" in html.lower()

    async def content(self) -> str:
        """Return the current page HTML."""
        self._require(SessionState.READY)
        return await self._page.content()

    async def page_text(self) -> str:
        """Return the visible body text, or "" while the page is unavailable."""
        self._require(SessionState.READY)
        try:
            return await self._page.evaluate(
                "() => document.body ? document.body.innerText : ''"
            )
        except PlaywrightError as e:
            self.logger.debug("page_text_unavailable", error=str(e))
            return ""

    async def wait_for_any(self, selectors: Sequence[str], timeout_ms: int) -> bool:
        """Wait until any selector is attached. Never raises.

        Returns:
            True if one of the selectors appeared within the timeout
        """
        self._require(SessionState.READY)
        if not selectors:
            return False
        try:
            await self._page.wait_for_selector(
                ", ".join(selectors), state="attached", timeout=timeout_ms
            )
            return True
        except PlaywrightError:
            self.logger.debug("wait_for_results_timed_out", selectors=list(selectors))
            return False

    async def scroll(self, steps: int = 3) -> None:
        """Scroll down in uneven steps with pauses, then back up a little."""
        self._require(SessionState.READY)
        try:
            for _ in range(steps):
                await self._page.mouse.wheel(0, random.randint(300, 700))
                await asyncio.sleep(random.uniform(0.3, 0.9))
            await self._page.mouse.wheel(0, -random.randint(100, 300))
        except PlaywrightError as e:
            self.logger.debug("scroll_failed", error=str(e))

    async def close(self) -> None:
        """Release page, context, browser and driver. Safe to call repeatedly."""
        if self._state is SessionState.CLOSED:
            return
        self._state = SessionState.CLOSED

        steps = (
            ("page", self._page, "close"),
            ("context", self._context, "close"),
            ("browser", self._browser, "close"),
            ("playwright", self._playwright, "stop"),
        )
        for name, resource, method in steps:
            if resource is None:
                continue
            try:
                await getattr(resource, method)()
            except Exception as e:
                self.logger.warning("browser_session_close_failed", resource=name, error=str(e))

        self._page = self._context = self._browser = self._playwright = None
        self.logger.info("browser_session_closed")


class BrowserSessionFactory:
    """Builds a fresh session per adapter call.

    Picks a random user agent and, when ``PROXY_LIST`` is set, a random proxy.
    Consecutive sessions never share a user agent, so a retry after an empty
    page presents a different browser.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._proxies: List[str] = self._settings.get_proxy_list()
        self._last_user_agent: Optional[str] = None

    def __call__(self, rules: SiteRules) -> BrowserSession:
        proxy = random.choice(self._proxies) if self._proxies else None
        user_agent = get_random_user_agent(exclude=self._last_user_agent)
        self._last_user_agent = user_agent
        return BrowserSession(
            rules,
            settings=self._settings,
            user_agent=user_agent,
            proxy=proxy,
        )


def build_stealth_js(locale: str) -> str:
    """Stealth init script masking common automation signals."""
    language = locale.split("-")[0]
    return STEALTH_JS.replace("__LANGUAGES__", f"['{locale}', '{language}']")


STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => __LANGUAGES__ });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters);
const originalToDataURL = HTMLCanvasElement.prototype.toDataURL;
HTMLCanvasElement.prototype.toDataURL = function (...args) {
  const ctx = this.getContext('2d');
  if (ctx && this.width && this.height) {
    const pixel = ctx.getImageData(0, 0, 1, 1);
    pixel.data[0] = (pixel.data[0] + Math.floor(Math.random() * 3)) % 256;
    ctx.putImageData(pixel, 0, 0);
  }
  return originalToDataURL.apply(this, args);
};
"""
