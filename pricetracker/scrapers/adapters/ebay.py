"""eBay ruleset.

The first search result is a "Shop on eBay" placeholder card with no real
listing behind it; ``skip_titles`` drops it.
"""

from pricetracker.scrapers.relevance import DEFAULT_BRAND_KEYWORDS
from pricetracker.scrapers.rules import SiteRules

RULES = SiteRules.model_validate({
    "source": "ebay",
    "name": "eBay",
    "base_url": "https://www.ebay.com",
    "search_path": "/sch/i.html?_nkw={query}",
    "currency": "USD",
    "locale": "en-US",
    "timezone_id": "America/New_York",
    "brand_keywords": list(DEFAULT_BRAND_KEYWORDS),
    "result_selectors": ["li.s-item", ".s-item", "li.s-card"],
    "skip_titles": ["shop on ebay"],
    "title": [
        ".s-item__title span[role='heading']",
        ".s-item__title",
        ".s-card__title",
    ],
    "price": [".s-item__price", ".s-card__price"],
    "url": [
        {"selector": "a.s-item__link", "attribute": "href"},
        {"selector": "a[href*='/itm/']", "attribute": "href"},
    ],
    "image": [
        {"selector": ".s-item__image-img", "attribute": "src"},
        {"selector": "img", "attribute": "data-src"},
        {"selector": "img", "attribute": "src"},
    ],
    "rating": [".x-star-rating .clipped", ".x-star-rating"],
    "review_count": [".s-item__reviews-count span", ".s-item__reviews-count"],
    "id_patterns": [r"/itm/(?:.*?/)?(\d{12})"],
    "detail": {
        "ready_selectors": ["h1.x-item-title__mainTitle", ".x-price-primary"],
        "title": ["h1.x-item-title__mainTitle span", "h1.x-item-title__mainTitle", "h1"],
        "price": [
            ".x-price-primary span",
            ".x-price-primary",
            {"selector": "[itemprop='price']", "attribute": "content"},
        ],
        "image": [
            {"selector": ".ux-image-carousel-item img", "attribute": "src"},
            {"selector": "#icImg", "attribute": "src"},
        ],
        "rating": [".ux-summary__start--rating .ux-textspans", ".x-star-rating .clipped"],
        "review_count": [".ux-summary__count .ux-textspans", ".x-star-rating + span"],
        "review_selectors": [".x-review", ".fdbk-container"],
        "review_title": [".x-review-title"],
        "review_text": [".x-review-text", ".fdbk-container__details__comment"],
        "review_rating": [".x-review-rating", ".x-star-rating .clipped"],
        "review_date": [".x-review-date", ".fdbk-container__details__info__divide__time"],
    },
})
