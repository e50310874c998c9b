"""Built-in storefront rulesets."""

from typing import List

from pricetracker.scrapers.adapters.amazon import RULES as AMAZON_RULES
from pricetracker.scrapers.adapters.amazon_in import RULES as AMAZON_IN_RULES
from pricetracker.scrapers.adapters.ebay import RULES as EBAY_RULES
from pricetracker.scrapers.adapters.flipkart import RULES as FLIPKART_RULES
from pricetracker.scrapers.rules import SiteRules

BUILTIN_RULESETS = (AMAZON_RULES, AMAZON_IN_RULES, EBAY_RULES, FLIPKART_RULES)


def get_builtin_rulesets() -> List[SiteRules]:
    """Rulesets for every storefront supported out of the box."""
    return list(BUILTIN_RULESETS)
