"""Pytest configuration and shared fixtures."""

from typing import Iterable, List, Optional

import pytest
import structlog

from pricetracker.config import Settings
from pricetracker.scrapers.rules import SiteRules


# ============================================================================
# SETTINGS
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    """Settings with every wait shrunk so tests run in milliseconds."""
    return Settings(
        _env_file=None,
        SCRAPER_HEADLESS=True,
        SCRAPER_SETTLE_SECONDS=0,
        SCRAPER_RESULTS_WAIT_MS=10,
        SCRAPER_CAPTCHA_WAIT_SECONDS=0.05,
        SCRAPER_CAPTCHA_POLL_SECONDS=0.01,
        SCRAPER_EMPTY_RETRY_DELAY_SECONDS=0,
        SCRAPER_ADAPTER_TIMEOUT_SECONDS=5,
    )


# ============================================================================
# FAKE BROWSER SESSIONS
# ============================================================================

class FakeSession:
    """Stands in for BrowserSession; behaviour is scripted by its factory."""

    def __init__(self, factory: "FakeSessionFactory", rules: SiteRules, index: int):
        self._factory = factory
        self.rules = rules
        self.index = index
        self.started = False
        self.close_calls = 0
        self.navigated: List[str] = []
        self.current_url = ""
        self._texts = list(factory.page_texts)

    async def start(self) -> None:
        if self._factory.start_error is not None:
            raise self._factory.start_error
        self.started = True

    async def navigate(self, url: str) -> None:
        self.navigated.append(url)
        self.current_url = url
        if self._factory.navigate_error is not None:
            raise self._factory.navigate_error

    async def page_text(self) -> str:
        if len(self._texts) > 1:
            return self._texts.pop(0)
        return self._texts[0] if self._texts else ""

    async def wait_for_any(self, selectors, timeout_ms: int) -> bool:
        return True

    async def scroll(self, steps: int = 3) -> None:
        return None

    async def content(self) -> str:
        if self._factory.content_error is not None:
            raise self._factory.content_error
        htmls = self._factory.htmls
        return htmls[min(self.index, len(htmls) - 1)]

    async def close(self) -> None:
        self.close_calls += 1


class FakeSessionFactory:
    """Session factory injected into adapters in place of real Chromium.

    Args:
        htmls: Page HTML served by the 1st, 2nd, ... session (last one repeats)
        page_texts: Successive visible-text snapshots (last one repeats)
    """

    def __init__(
        self,
        htmls: Iterable[str] = ("<html><body></body></html>",),
        page_texts: Iterable[str] = ("Results",),
        start_error: Optional[BaseException] = None,
        navigate_error: Optional[BaseException] = None,
        content_error: Optional[BaseException] = None,
    ):
        self.htmls = list(htmls)
        self.page_texts = list(page_texts)
        self.start_error = start_error
        self.navigate_error = navigate_error
        self.content_error = content_error
        self.sessions: List[FakeSession] = []

    def __call__(self, rules: SiteRules) -> FakeSession:
        session = FakeSession(self, rules, index=len(self.sessions))
        self.sessions.append(session)
        return session


# ============================================================================
# RULESETS AND HTML
# ============================================================================

def make_shop_rules(**overrides) -> SiteRules:
    """A small generic ruleset matching the markup built by ``shop_card``."""
    data = {
        "source": "testshop",
        "name": "Test Shop",
        "base_url": "https://shop.example.com",
        "search_path": "/search?q={query}",
        "currency": "USD",
        "brand_keywords": ["dell"],
        "result_selectors": [".product-grid .product", ".product"],
        "sponsored_selectors": [".ad-badge"],
        "skip_titles": ["shop on test"],
        "title": [".title", {"selector": "a", "attribute": "title"}],
        "price": [".price"],
        "url": [{"selector": "a", "attribute": "href"}],
        "image": [{"selector": "img", "attribute": "src"}],
        "rating": [".rating"],
        "review_count": [".reviews"],
        "stable_id": [{"attribute": "data-sku"}],
        "id_patterns": [r"/item/(\d+)"],
        "detail": {
            "ready_selectors": ["h1"],
            "title": ["h1"],
            "price": [".price"],
            "stable_id": [{"selector": "[data-sku]", "attribute": "data-sku"}],
            "review_selectors": [".review"],
            "review_title": [".headline"],
            "review_text": [".body"],
            "review_rating": [".stars"],
            "review_date": [".date"],
        },
    }
    data.update(overrides)
    return SiteRules.model_validate(data)


def shop_card(
    title: str,
    price: Optional[str],
    href: str,
    sku: Optional[str] = None,
    sponsored: bool = False,
    rating: Optional[str] = None,
) -> str:
    sku_attr = f' data-sku="{sku}"' if sku else ""
    parts = [f'<div class="product"{sku_attr}>']
    if sponsored:
        parts.append('<span class="ad-badge">Ad</span>')
    parts.append(f'<a href="{href}"><span class="title">{title}</span></a>')
    if price is not None:
        parts.append(f'<span class="price">{price}</span>')
    if rating is not None:
        parts.append(f'<span class="rating">{rating}</span>')
    parts.append('<img src="/img/1.jpg">')
    parts.append("</div>")
    return "".join(parts)


def shop_page(cards: Iterable[str]) -> str:
    return (
        "<html><body><div class='product-grid'>"
        + "".join(cards)
        + "</div></body></html>"
    )


@pytest.fixture
def shop_rules() -> SiteRules:
    return make_shop_rules()


@pytest.fixture
def shop_results_html() -> str:
    return shop_page([
        shop_card("Dell XPS 13 Laptop", "$999.99", "/item/1001?utm_source=x", sku="SKU-1001", rating="4.5"),
        shop_card("Dell XPS 13 Sleeve", "$25.00", "/item/1002"),
        shop_card("Shop on Test", "$10.00", "/promo"),
        shop_card("Dell XPS 13 Sponsored", "$899.00", "/item/1003", sponsored=True),
        shop_card("Dell XPS 13 Without Price", None, "/item/1004"),
        shop_card("Dell XPS 13 Laptop Duplicate", "$989.99", "/item/1001", sku="SKU-1001"),
        shop_card("Garden Hose 50ft", "$19.99", "/item/1005"),
    ])


AMAZON_SEARCH_HTML = """
<html><body><div class="s-main-slot">
  <div data-component-type="s-search-result" class="s-result-item" data-asin="B0CHX1W1XY">
    <h2><a class="a-link-normal" href="/Apple-iPhone-15-Pro/dp/B0CHX1W1XY/ref=sr_1_1?qid=1700000000&amp;sr=8-1">
      <span>Apple iPhone 15 Pro (128 GB) - Natural Titanium</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$999.00</span>
      <span aria-hidden="true"><span class="a-price-whole">999.</span></span></span>
    <img class="s-image" src="https://m.media-amazon.com/images/I/1.jpg"
         srcset="https://m.media-amazon.com/images/I/1.jpg 1x, https://m.media-amazon.com/images/I/1_2x.jpg 2x">
    <span class="a-icon-alt">4.5 out of 5 stars</span>
    <span class="s-underline-text">1,234</span>
  </div>
  <div data-component-type="s-search-result" class="s-result-item" data-asin="B0SPONSOR1">
    <span class="puis-sponsored-label-text">Sponsored</span>
    <h2><a href="/dp/B0SPONSOR1"><span>Apple iPhone 15 Pro Leather Case</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$19.99</span></span>
  </div>
  <div data-component-type="s-search-result" class="s-result-item" data-asin="B0NOPRICE1">
    <h2><a href="/dp/B0NOPRICE1"><span>Apple iPhone 15 Pro Max</span></a></h2>
  </div>
  <div data-component-type="s-search-result" class="s-result-item" data-asin="">
    <h2><a href="/Apple-iPhone-15-Pro-Blue/dp/B0CHX2ABCD"><span>Apple iPhone 15 Pro (256 GB) - Blue Titanium</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$1,099.00</span></span>
  </div>
  <div data-component-type="s-search-result" class="s-result-item" data-asin="">
    <h2><a href="/iphone-15-pro-renewed-listing"><span>Apple iPhone 15 Pro Renewed</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$749.00</span></span>
  </div>
  <div data-component-type="s-search-result" class="s-result-item" data-asin="B0CABLE001">
    <h2><a href="/dp/B0CABLE001"><span>USB-C Charging Cable 2m</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$9.99</span></span>
  </div>
  <div data-component-type="s-search-result" class="s-result-item" data-asin="B0CHX1W1XY">
    <h2><a href="/dp/B0CHX1W1XY"><span>Apple iPhone 15 Pro (128 GB) - Natural Titanium</span></a></h2>
    <span class="a-price"><span class="a-offscreen">$999.00</span></span>
  </div>
</div></body></html>
"""

EBAY_SEARCH_HTML = """
<html><body><ul class="srp-results">
  <li class="s-item">
    <a class="s-item__link" href="https://ebay.com/itm/123456"></a>
    <div class="s-item__title"><span role="heading">Shop on eBay</span></div>
    <span class="s-item__price">$20.00</span>
  </li>
  <li class="s-item">
    <a class="s-item__link" href="https://www.ebay.com/itm/Dell-XPS-13-9310/256012345678?hash=item3b9&amp;_trkparms=abc">
      <div class="s-item__title"><span role="heading">Dell XPS 13 9310 Laptop 16GB</span></div></a>
    <span class="s-item__price">$1,049.99</span>
    <img class="s-item__image-img" src="https://i.ebayimg.com/images/g/1.jpg">
  </li>
  <li class="s-item">
    <a class="s-item__link" href="https://www.ebay.com/itm/256012345679">
      <div class="s-item__title"><span role="heading">Dell XPS 13 Laptop Sleeve</span></div></a>
    <span class="s-item__price">$10.99 to $15.99</span>
  </li>
</ul></body></html>
"""

FLIPKART_SEARCH_HTML = """
<html><body><div class="DOjaWF">
  <div data-id="MOBGTAGPTB3VS24W">
    <a href="/apple-iphone-15-black-128-gb/p/itm6ac6485515ae4?pid=MOBGTAGPTB3VS24W&amp;lid=LSTMOBGTAGPTB3VS24W&amp;marketplace=FLIPKART">
      <img src="https://rukminim2.flixcart.com/image/312/312/iphone.jpg">
      <div class="KzDlHZ">Apple iPhone 15 (Black, 128 GB)</div>
      <div class="XQDdHH">4.6</div>
      <span class="Wphh3N">2,45,678 Ratings &amp; 9,876 Reviews</span>
      <div class="Nx9bqj">&#8377;69,999</div>
    </a>
  </div>
</div></body></html>
"""


def _amazon_review(title: str, stars: Optional[str], body: str, date: str) -> str:
    rating = (
        f'<i data-hook="review-star-rating"><span class="a-icon-alt">{stars}</span></i>'
        if stars else ""
    )
    return (
        '<div data-hook="review">'
        f'<a data-hook="review-title"><span>{title}</span></a>'
        f"{rating}"
        f'<span data-hook="review-date">{date}</span>'
        f'<span data-hook="review-body"><span>{body}</span></span>'
        "</div>"
    )


AMAZON_DETAIL_HTML = (
    "<html><body>"
    '<span id="productTitle">  Apple iPhone 15 Pro (128 GB) - Natural Titanium  </span>'
    '<input type="hidden" id="ASIN" value="B0CHX1W1XY">'
    '<div id="corePriceDisplay_desktop_feature_div">'
    '<span class="a-price priceToPay"><span class="a-offscreen">$999.00</span></span></div>'
    '<img id="landingImage" src="https://m.media-amazon.com/images/I/main.jpg">'
    '<span id="acrPopover"><span class="a-icon-alt">4.6 out of 5 stars</span></span>'
    '<span id="acrCustomerReviewText">2,345 ratings</span>'
    '<div id="cm-cr-dp-review-list">'
    + _amazon_review("Great phone", "5.0 out of 5 stars", "Love the titanium finish.", "1 January 2024")
    + _amazon_review("No words", "4.0 out of 5 stars", "", "2 January 2024")
    + _amazon_review("Solid", "4.0 out of 5 stars", "Battery lasts all day.", "3 January 2024")
    + _amazon_review("Unrated", None, "Forgot to rate it.", "4 January 2024")
    + _amazon_review("Good", "4.0 out of 5 stars", "Camera is excellent.", "5 January 2024")
    + _amazon_review("Okay", "3.0 out of 5 stars", "A bit heavy.", "6 January 2024")
    + _amazon_review("Pricey", "3.0 out of 5 stars", "Expensive but good.", "7 January 2024")
    + _amazon_review("Sixth valid", "5.0 out of 5 stars", "Should be cut off.", "8 January 2024")
    + "</div></body></html>"
)


@pytest.fixture
def amazon_search_html() -> str:
    return AMAZON_SEARCH_HTML


@pytest.fixture
def ebay_search_html() -> str:
    return EBAY_SEARCH_HTML


@pytest.fixture
def flipkart_search_html() -> str:
    return FLIPKART_SEARCH_HTML


@pytest.fixture
def amazon_detail_html() -> str:
    return AMAZON_DETAIL_HTML


# ============================================================================
# LOGGING
# ============================================================================

@pytest.fixture
def reset_structlog():
    """Undo any structlog.configure() done by the code under test."""
    yield
    structlog.reset_defaults()
