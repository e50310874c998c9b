"""Manual scraper runner.

Runs the scraping engine from a terminal, mainly to check rulesets against
live storefronts. Browser windows are visible by default so a CAPTCHA can
be solved by hand.

Usage:
    # Search every enabled storefront
    pricetracker search "iphone 15 pro"

    # Only eBay and Flipkart, JSON output
    pricetracker search "dell xps 13" --source ebay --source flipkart --json

    # One listing page with reviews
    pricetracker details https://www.amazon.in/dp/B0CHX1W1XY --source amazon_in

    # List storefronts
    pricetracker sources

Setup (run once):
    playwright install chromium
"""

import argparse
import asyncio
import dataclasses
import json
import sys
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog

from pricetracker.config import get_settings
from pricetracker.logging_config import configure_logging
from pricetracker.scrapers.base import ScrapedProduct
from pricetracker.scrapers.errors import ScraperError
from pricetracker.scrapers.factory import build_adapter_factory, build_scraper_service

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _decimal_default(obj: Any) -> Any:
    """JSON serializer for Decimal values."""
    if isinstance(obj, Decimal):
        return str(obj)
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def product_to_dict(product: ScrapedProduct) -> Dict[str, Any]:
    return dataclasses.asdict(product)


def _print_products(products: List[ScrapedProduct], as_json: bool) -> None:
    if as_json:
        payload = [product_to_dict(p) for p in products]
        print(json.dumps(payload, default=_decimal_default, ensure_ascii=False, indent=2))
        return

    if not products:
        print("No products found.")
        return

    for i, p in enumerate(products, start=1):
        rating = f"{p.rating}/5" if p.rating is not None else "N/A"
        print(f"{i:>3}. [{p.source}] {p.title[:80]}")
        print(f"     {p.price} {p.currency}  rating {rating}  id {p.site_product_id}")
        print(f"     {p.url}")
        for review in p.reviews:
            print(f"       - {review.rating}/5 {review.title or ''}: {review.text[:100]}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_search(query: str, sources: Optional[List[str]], as_json: bool) -> int:
    service = build_scraper_service(sources=sources)
    if not service.sources:
        print("No storefronts enabled.", file=sys.stderr)
        return 2
    products = await service.search_all_sources(query)
    _print_products(products, as_json)
    return 0 if products else 1


async def run_details(url: str, source: str, as_json: bool) -> int:
    service = build_scraper_service(sources=[source])
    product = await service.get_product_details(url, source)
    if product is None:
        print("Listing could not be extracted (blocked or unrecognised page).", file=sys.stderr)
        return 1
    _print_products([product], as_json)
    return 0


def run_sources(as_json: bool) -> int:
    factory = build_adapter_factory(get_settings())
    sources = factory.get_registered_sources()
    if as_json:
        print(json.dumps(sources))
    else:
        for source in sources:
            print(source)
    return 0


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed Namespace object.
    """
    parser = argparse.ArgumentParser(
        prog="pricetracker",
        description="Scrape product listings and prices from e-commerce storefronts.",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL)")
    parser.add_argument(
        "--json-logs", action="store_true", default=None, help="Emit logs as JSON lines"
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run Chromium headless (CAPTCHAs cannot be solved by hand)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search storefronts for a query")
    search.add_argument("query", help="Search query")
    search.add_argument(
        "--source",
        action="append",
        dest="sources",
        help="Storefront to search (repeatable; default: all enabled)",
    )
    search.add_argument("--json", action="store_true", help="Print results as JSON")

    details = sub.add_parser("details", help="Scrape a single listing page")
    details.add_argument("url", help="Listing URL")
    details.add_argument("--source", required=True, help="Storefront the URL belongs to")
    details.add_argument("--json", action="store_true", help="Print result as JSON")

    sources = sub.add_parser("sources", help="List available storefronts")
    sources.add_argument("--json", action="store_true", help="Print as JSON")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, args.json_logs)

    if args.headless:
        get_settings().SCRAPER_HEADLESS = True

    try:
        if args.command == "search":
            return asyncio.run(run_search(args.query, args.sources, args.json))
        if args.command == "details":
            return asyncio.run(run_details(args.url, args.source, args.json))
        return run_sources(args.json)
    except ScraperError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
