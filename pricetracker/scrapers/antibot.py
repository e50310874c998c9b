"""CAPTCHA / bot-wall detection and operator-assisted recovery.

Challenges are never solved automatically. When one is detected the
session is held open in a visible window for a bounded time so an operator
can clear it by hand; the adapter then carries on or gives up with an
empty result.
"""

import asyncio
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)

# Full phrases only: "robot" alone matches the meta robots tag on normal pages
CHALLENGE_PHRASES = (
    "captcha",
    "robot check",
    "verify you are a human",
    "unusual traffic",
    "enter the characters you see below",
    "type the characters you see",
    "not a robot",
    "human verification",
    "to discuss automated access",
)


class ChallengePage(Protocol):
    """What the recovery loop needs from a browser session."""

    @property
    def current_url(self) -> str: ...

    async def page_text(self) -> str: ...


def detect_challenge(page_text: str) -> bool:
    """Check visible page text for a CAPTCHA or bot-check wall."""
    if not page_text:
        return False
    text = page_text.lower()
    return any(phrase in text for phrase in CHALLENGE_PHRASES)


async def await_intervention(
    session: ChallengePage,
    timeout: float = 120.0,
    poll_interval: float = 5.0,
) -> bool:
    """Wait for an operator to clear a challenge in the open browser window.

    Polls the page every ``poll_interval`` seconds and always checks once
    more when ``timeout`` expires.

    Args:
        session: Session whose page currently shows the challenge
        timeout: Maximum seconds to wait
        poll_interval: Seconds between checks

    Returns:
        True if the challenge is gone, False if it is still present
    """
    url = session.current_url
    logger.warning(
        "captcha_awaiting_operator",
        url=url,
        timeout_seconds=timeout,
        hint="solve the challenge in the open browser window",
    )

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    checks = 0

    while True:
        remaining = max(deadline - loop.time(), 0.0)
        await asyncio.sleep(min(poll_interval, remaining))
        checks += 1

        text = await session.page_text()
        # Empty text means the page is mid-navigation, not that the wall is gone
        if text and not detect_challenge(text):
            logger.info("captcha_cleared", url=url, checks=checks)
            return True

        if loop.time() >= deadline:
            break

    logger.warning("captcha_not_cleared", url=url, timeout_seconds=timeout, checks=checks)
    return False
