"""Flipkart ruleset.

Flipkart ships obfuscated class names that rotate with every frontend
release, so each chain lists the current names first and older ones after.
"""

from pricetracker.scrapers.relevance import DEFAULT_BRAND_KEYWORDS
from pricetracker.scrapers.rules import SiteRules

RULES = SiteRules.model_validate({
    "source": "flipkart",
    "name": "Flipkart",
    "base_url": "https://www.flipkart.com",
    "search_path": "/search?q={query}",
    "currency": "INR",
    "locale": "en-IN",
    "timezone_id": "Asia/Kolkata",
    "brand_keywords": list(DEFAULT_BRAND_KEYWORDS),
    "result_selectors": [
        "div[data-id]",
        "._1AtVbE ._2kHMtA",
        "._4ddWXP",
        "._1xHGtK._373qXS",
    ],
    "title": [
        ".KzDlHZ",
        ".wjcEIp",
        "._4rR01T",
        ".s1Q9rs",
        ".IRpwTa",
        {"selector": "a[title]", "attribute": "title"},
    ],
    "price": [".Nx9bqj", "._30jeq3", "._1_WHN1"],
    "url": [
        {"selector": "a[href*='/p/']", "attribute": "href"},
        {"selector": "a[href]", "attribute": "href"},
    ],
    "image": [
        {"selector": "img", "attribute": "srcset"},
        {"selector": "img", "attribute": "src"},
        {"selector": "img", "attribute": "data-src"},
    ],
    "rating": [".XQDdHH", "._3LWZlK"],
    "review_count": [".Wphh3N", "._2_R_DZ"],
    "stable_id": [{"attribute": "data-id"}],
    "id_patterns": [r"[?&]pid=([^&]+)", r"/p/([^/?]+)"],
    "detail": {
        "ready_selectors": [".VU-ZEz", ".B_NuCI", ".Nx9bqj", "._30jeq3"],
        "title": [".VU-ZEz", ".B_NuCI", "h1"],
        "price": [".Nx9bqj.CxhGGd", "._30jeq3._16Jk6d", ".Nx9bqj", "._30jeq3"],
        "image": [
            {"selector": "img.DByuf4", "attribute": "src"},
            {"selector": "._396cs4", "attribute": "src"},
            {"selector": "img._2r_T1I", "attribute": "src"},
        ],
        "rating": [".XQDdHH", "._2d4LTz", "._3LWZlK"],
        "review_count": [".Wphh3N", "._2_R_DZ"],
        "review_selectors": [".col.EPCmJX", "._27M-vq", ".t-ZTKy"],
        "review_title": ["p.z9E0IG", "._2-N8zT", ".t-ZTKy strong"],
        "review_text": [".ZmyHeo", "._6K-7Co", ".t-ZTKy div"],
        "review_rating": [".XQDdHH", "._3LWZlK", "._1BLPMq"],
        "review_date": ["._2NsDsF", "._2sc7ZR", "._3LYOAd"],
    },
})
