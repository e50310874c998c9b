"""Multi-source e-commerce scraping engine.

Gathers product listings from several JavaScript-rendered storefronts,
normalizes their prices, and hands validated records to the caller.
"""

__version__ = "0.1.0"
