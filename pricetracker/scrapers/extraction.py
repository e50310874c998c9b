"""Rule-driven extraction of products from rendered HTML.

Each field is read by walking its fallback chain until one rule yields a
non-empty value. Elements missing a title, price or URL are dropped, as are
prices outside the sanity bounds.
"""

import hashlib
import re
from decimal import Decimal
from typing import List, Optional, Sequence, Set, Tuple
from urllib.parse import urljoin

import soupsieve
import structlog
from bs4 import BeautifulSoup, Tag

from pricetracker.scrapers.base import Review, ScrapedProduct
from pricetracker.scrapers.rules import DetailRules, FieldRule, SiteRules
from pricetracker.scrapers.utils.normalizer import (
    PriceNormalizer,
    normalize_url,
    parse_count,
    parse_rating,
)

logger = structlog.get_logger(__name__)

DEFAULT_MAX_VALID_PRICE = Decimal("1000000")


def select_value(element: Tag, rule: FieldRule) -> Optional[str]:
    """Apply a single rule to an element.

    Returns:
        Stripped value, or None if the rule matched nothing
    """
    target = element if rule.selector is None else element.select_one(rule.selector)
    if target is None:
        return None

    if rule.attribute:
        value = target.get(rule.attribute)
        if isinstance(value, list):  # multi-valued attributes like class
            value = " ".join(value)
        if value and rule.attribute == "srcset":
            # Last candidate is the largest rendition
            value = value.split(",")[-1].strip().split(" ")[0]
    else:
        value = target.get_text(" ", strip=True)

    if not value:
        return None
    value = " ".join(value.split())

    if rule.pattern:
        match = re.search(rule.pattern, value)
        if not match:
            return None
        value = match.group(1) if match.re.groups else match.group(0)

    return value.strip() or None


def select_first(element: Tag, chain: Sequence[FieldRule]) -> Optional[str]:
    """Walk a fallback chain and return the first non-empty value."""
    for rule in chain:
        value = select_value(element, rule)
        if value:
            return value
    return None


def find_result_elements(
    soup: Tag, selectors: Sequence[str], limit: Optional[int] = None
) -> List[Tag]:
    """Elements of the first container selector that matches anything.

    Args:
        soup: Parsed page
        selectors: Container selectors in priority order
        limit: Maximum number of elements, taken in page order; None for all

    Returns:
        Up to ``limit`` result elements
    """
    for selector in selectors:
        found = soup.select(selector)
        if found:
            logger.debug("result_selector_matched", selector=selector, count=len(found))
            return found if limit is None else found[:limit]
    return []


def is_sponsored(element: Tag, selectors: Sequence[str]) -> bool:
    for selector in selectors:
        if soupsieve.match(selector, element) or element.select_one(selector) is not None:
            return True
    return False


def is_valid_price(amount: Decimal, ceiling: Decimal) -> bool:
    return Decimal("0") < amount <= ceiling


def synthetic_product_id(source: str, url: str) -> str:
    """Deterministic id for listings that expose no stable identifier."""
    digest = hashlib.sha1(normalize_url(url).encode("utf-8")).hexdigest()[:16]
    return f"{source}-url-{digest}"


def resolve_product_id(
    element: Tag,
    url: str,
    chain: Sequence[FieldRule],
    id_patterns: Sequence[str],
    source: str,
) -> Tuple[str, bool]:
    """Find a listing's site id.

    Tries the stable id chain on the element, then each URL pattern, and
    finally falls back to a hash of the URL.

    Returns:
        (product_id, is_synthetic)
    """
    product_id = select_first(element, chain)
    if product_id:
        return product_id, False

    for pattern in id_patterns:
        match = re.search(pattern, url)
        if match:
            return (match.group(1) if match.re.groups else match.group(0)), False

    return synthetic_product_id(source, url), True


def _absolute_url(base_url: str, href: Optional[str]) -> Optional[str]:
    if not href:
        return None
    url = urljoin(base_url + "/", href.strip())
    if not url.startswith(("http://", "https://")):
        return None
    return url


def extract_search_results(
    html: str,
    rules: SiteRules,
    max_results: int = 20,
    max_valid_price: Decimal = DEFAULT_MAX_VALID_PRICE,
) -> List[ScrapedProduct]:
    """Extract product listings from a search results page.

    Args:
        html: Rendered page HTML
        rules: Ruleset for the storefront
        max_results: Maximum number of result elements to inspect
        max_valid_price: Price ceiling when the ruleset sets none

    Returns:
        Products in page order, without duplicates
    """
    log = logger.bind(adapter=rules.source)
    soup = BeautifulSoup(html, "html.parser")
    elements = find_result_elements(soup, rules.result_selectors, max_results)
    ceiling = rules.max_price or max_valid_price

    products: List[ScrapedProduct] = []
    seen_ids: Set[str] = set()
    skipped = 0
    discarded = 0

    for element in elements:
        if is_sponsored(element, rules.sponsored_selectors):
            skipped += 1
            continue

        title = select_first(element, rules.title)
        if title and any(phrase in title.lower() for phrase in rules.skip_titles):
            skipped += 1
            continue

        price_text = select_first(element, rules.price)
        url = _absolute_url(rules.base_url, select_first(element, rules.url))
        if not title or not price_text or not url:
            discarded += 1
            continue

        amount, currency = PriceNormalizer.parse_price(price_text, rules.currency)
        if not is_valid_price(amount, ceiling):
            log.debug("price_out_of_bounds", title=title, price_text=price_text)
            discarded += 1
            continue

        url = normalize_url(url)
        product_id, synthetic = resolve_product_id(
            element, url, rules.stable_id, rules.id_patterns, rules.source
        )
        if product_id in seen_ids:
            continue

        try:
            product = ScrapedProduct(
                title=title,
                price=amount,
                currency=currency,
                url=url,
                source=rules.source,
                site_product_id=product_id,
                image_url=_absolute_url(rules.base_url, select_first(element, rules.image)),
                rating=parse_rating(select_first(element, rules.rating)),
                review_count=parse_count(select_first(element, rules.review_count)),
                synthetic_id=synthetic,
                metadata={"price_text": price_text},
            )
        except ValueError as e:
            log.debug("listing_rejected", title=title, error=str(e))
            discarded += 1
            continue

        seen_ids.add(product_id)
        products.append(product)

    log.info(
        "search_results_extracted",
        elements=len(elements),
        products=len(products),
        skipped=skipped,
        discarded=discarded,
    )
    return products


def extract_reviews(soup: Tag, detail: DetailRules, max_reviews: int = 5) -> List[Review]:
    """Collect reviews that carry text and a positive rating."""
    elements = find_result_elements(soup, detail.review_selectors)
    reviews: List[Review] = []
    for element in elements:
        if len(reviews) >= max_reviews:
            break
        text = select_first(element, detail.review_text)
        rating = parse_rating(select_first(element, detail.review_rating))
        if not text or not rating:
            continue
        reviews.append(
            Review(
                text=text,
                rating=rating,
                title=select_first(element, detail.review_title),
                date=select_first(element, detail.review_date),
            )
        )
    return reviews


def extract_product_details(
    html: str,
    url: str,
    rules: SiteRules,
    max_reviews: int = 5,
    max_valid_price: Decimal = DEFAULT_MAX_VALID_PRICE,
) -> Optional[ScrapedProduct]:
    """Extract a single product from its listing page.

    Args:
        html: Rendered page HTML
        url: URL the page was loaded from
        rules: Ruleset for the storefront
        max_reviews: Maximum number of reviews to keep
        max_valid_price: Price ceiling when the ruleset sets none

    Returns:
        ScrapedProduct, or None if title or a valid price is missing
    """
    log = logger.bind(adapter=rules.source)
    detail = rules.detail
    soup = BeautifulSoup(html, "html.parser")

    title = select_first(soup, detail.title)
    price_text = select_first(soup, detail.price)
    if not title or not price_text:
        log.warning("detail_fields_missing", url=url, title=bool(title), price=bool(price_text))
        return None

    amount, currency = PriceNormalizer.parse_price(price_text, rules.currency)
    if not is_valid_price(amount, rules.max_price or max_valid_price):
        log.warning("detail_price_invalid", url=url, price_text=price_text)
        return None

    product_url = normalize_url(url)
    product_id, synthetic = resolve_product_id(
        soup, product_url, detail.stable_id, rules.id_patterns, rules.source
    )

    try:
        return ScrapedProduct(
            title=title,
            price=amount,
            currency=currency,
            url=product_url,
            source=rules.source,
            site_product_id=product_id,
            image_url=_absolute_url(rules.base_url, select_first(soup, detail.image)),
            rating=parse_rating(select_first(soup, detail.rating)),
            review_count=parse_count(select_first(soup, detail.review_count)),
            reviews=extract_reviews(soup, detail, max_reviews),
            synthetic_id=synthetic,
            metadata={"price_text": price_text},
        )
    except ValueError as e:
        log.warning("detail_rejected", url=url, error=str(e))
        return None
