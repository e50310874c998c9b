"""User-Agent rotation utilities for anti-detection."""

import random
from typing import List, Optional


# Sessions run Chromium, so only Chromium-family agents are in the pool;
# a Firefox or Safari agent on a Blink engine is an easy fingerprint mismatch.
USER_AGENTS: List[str] = [
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36 Edg/130.0.0.0",
    # Chrome on Linux
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
]


def get_random_user_agent(exclude: Optional[str] = None) -> str:
    """Get a random user-agent string from the pool.

    Args:
        exclude: Agent to avoid, e.g. the one a blocked session just used

    Returns:
        Random user-agent string
    """
    candidates = [ua for ua in USER_AGENTS if ua != exclude] or USER_AGENTS
    return random.choice(candidates)


def accept_language_for(locale: str) -> str:
    """Build an Accept-Language header value for a locale like "en-IN"."""
    language = locale.split("-")[0]
    values = [locale]
    if language != locale:
        values.append(f"{language};q=0.9")
    if language != "en":
        values.append("en;q=0.8")
    return ",".join(values)
