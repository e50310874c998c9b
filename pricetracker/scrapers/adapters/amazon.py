"""Amazon storefront rulesets.

The .com and .in storefronts share markup; they differ only in domain,
currency and locale.
"""

from pricetracker.scrapers.relevance import DEFAULT_BRAND_KEYWORDS
from pricetracker.scrapers.rules import SiteRules


def amazon_rules(
    source: str,
    name: str,
    base_url: str,
    currency: str,
    locale: str,
    timezone_id: str,
) -> SiteRules:
    """Build the ruleset for one Amazon marketplace."""
    return SiteRules.model_validate({
        "source": source,
        "name": name,
        "base_url": base_url,
        "search_path": "/s?k={query}",
        "currency": currency,
        "locale": locale,
        "timezone_id": timezone_id,
        "brand_keywords": list(DEFAULT_BRAND_KEYWORDS),
        "result_selectors": [
            'div.s-result-item[data-component-type="s-search-result"]',
            ".sg-col-20-of-24.s-result-item",
            ".s-asin",
        ],
        "sponsored_selectors": [
            ".puis-sponsored-label-text",
            ".s-sponsored-label-info-icon",
        ],
        "title": [
            "h2 a span",
            "h2 span",
            ".a-size-medium.a-color-base.a-text-normal",
            ".a-size-base-plus.a-color-base.a-text-normal",
            ".a-link-normal .a-text-normal",
            {"selector": "img.s-image", "attribute": "alt"},
        ],
        "price": [
            ".a-price:not(.a-text-price) .a-offscreen",
            ".a-price .a-offscreen",
            ".a-price-whole",
            ".a-color-price",
        ],
        "url": [
            {"selector": "h2 a", "attribute": "href"},
            {"selector": "a.a-link-normal[href*='/dp/']", "attribute": "href"},
            {"selector": ".s-product-image-container a", "attribute": "href"},
        ],
        "image": [
            {"selector": "img.s-image", "attribute": "srcset"},
            {"selector": "img.s-image", "attribute": "src"},
            {"selector": "img[data-image-index]", "attribute": "src"},
        ],
        "rating": [
            ".a-icon-star-small .a-icon-alt",
            ".a-icon-alt",
            {"selector": "[aria-label*='out of 5 stars']", "attribute": "aria-label"},
        ],
        "review_count": [
            "a[href*='#customerReviews'] span",
            "span.s-underline-text",
        ],
        "stable_id": [{"attribute": "data-asin"}],
        "id_patterns": [
            r"/dp/([A-Z0-9]{10})",
            r"/gp/product/([A-Z0-9]{10})",
        ],
        "detail": {
            "ready_selectors": ["#productTitle", "#corePriceDisplay_desktop_feature_div"],
            "title": ["#productTitle", "#title"],
            "price": [
                ".priceToPay .a-offscreen",
                "#corePriceDisplay_desktop_feature_div .a-price:not(.a-text-price) .a-offscreen",
                ".a-price:not(.a-text-price) .a-offscreen",
                ".a-price .a-offscreen",
                "#priceblock_dealprice",
                "#priceblock_ourprice",
                ".a-size-large.a-color-price",
            ],
            "image": [
                {"selector": "#landingImage", "attribute": "data-old-hires"},
                {"selector": "#landingImage", "attribute": "src"},
                {"selector": "#imgBlkFront", "attribute": "src"},
            ],
            "rating": [
                "#acrPopover .a-icon-alt",
                "#averageCustomerReviews .a-icon-alt",
                ".a-icon-star-small .a-icon-alt",
            ],
            "review_count": ["#acrCustomerReviewText"],
            "stable_id": [
                {"selector": "input#ASIN", "attribute": "value"},
                {"selector": "[data-asin]", "attribute": "data-asin"},
            ],
            "review_selectors": [
                'div[data-hook="review"]',
                "#cm-cr-dp-review-list .a-section.review",
                ".review-data .a-section.review",
            ],
            "review_title": [
                '[data-hook="review-title"] span:not(.a-icon-alt)',
                '[data-hook="review-title"]',
                ".review-title",
            ],
            "review_text": [
                '[data-hook="review-body"] span',
                '[data-hook="review-body"]',
                ".review-text-content span",
                ".review-text",
            ],
            "review_rating": [
                '[data-hook="review-star-rating"] .a-icon-alt',
                '[data-hook="cmps-review-star-rating"] .a-icon-alt',
                ".review-rating",
            ],
            "review_date": ['[data-hook="review-date"]', ".review-date"],
        },
    })


RULES = amazon_rules(
    source="amazon",
    name="Amazon",
    base_url="https://www.amazon.com",
    currency="USD",
    locale="en-US",
    timezone_id="America/New_York",
)
