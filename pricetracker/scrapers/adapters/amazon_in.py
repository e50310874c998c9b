"""Amazon India ruleset."""

from pricetracker.scrapers.adapters.amazon import amazon_rules

RULES = amazon_rules(
    source="amazon_in",
    name="Amazon India",
    base_url="https://www.amazon.in",
    currency="INR",
    locale="en-IN",
    timezone_id="Asia/Kolkata",
)
