"""Tests for CAPTCHA detection and the operator wait loop."""

from typing import List

import pytest
from structlog.testing import capture_logs

from pricetracker.scrapers.antibot import await_intervention, detect_challenge


class ScriptedPage:
    """Returns successive page texts; the last one repeats."""

    def __init__(self, texts: List[str]):
        self.current_url = "https://www.amazon.com/errors/validateCaptcha"
        self._texts = list(texts)
        self.checks = 0

    async def page_text(self) -> str:
        self.checks += 1
        if len(self._texts) > 1:
            return self._texts.pop(0)
        return self._texts[0]


class TestDetectChallenge:
    """Challenge phrase detection."""

    @pytest.mark.parametrize(
        "text",
        [
            "Enter the characters you see below",
            "Sorry, we just need to make sure you're not a robot.",
            "Our systems have detected unusual traffic from your computer",
            "Please complete the CAPTCHA",
            "To discuss automated access to Amazon data please contact api-services-support@amazon.com",
        ],
    )
    def test_challenge_pages(self, text):
        assert detect_challenge(text)

    @pytest.mark.parametrize(
        "text",
        ["", "Apple iPhone 15 Pro - $999.00", "Robots love our vacuum cleaners"],
    )
    def test_normal_pages(self, text):
        assert not detect_challenge(text)


class TestAwaitIntervention:
    """Bounded operator wait."""

    async def test_returns_true_once_cleared(self):
        page = ScriptedPage(["Type the characters you see", "Results for iphone"])

        with capture_logs() as logs:
            cleared = await await_intervention(page, timeout=1.0, poll_interval=0.01)

        assert cleared is True
        assert page.checks == 2
        events = [e["event"] for e in logs]
        assert events == ["captcha_awaiting_operator", "captcha_cleared"]

    async def test_returns_false_after_timeout(self):
        page = ScriptedPage(["Enter the characters you see below"])

        with capture_logs() as logs:
            cleared = await await_intervention(page, timeout=0.05, poll_interval=0.01)

        assert cleared is False
        assert page.checks >= 2
        assert logs[-1]["event"] == "captcha_not_cleared"
        assert logs[-1]["log_level"] == "warning"

    async def test_checks_once_even_with_zero_timeout(self):
        page = ScriptedPage(["Results for iphone"])

        assert await await_intervention(page, timeout=0, poll_interval=5.0) is True
        assert page.checks == 1

    async def test_empty_text_is_not_treated_as_cleared(self):
        page = ScriptedPage([""])

        assert await await_intervention(page, timeout=0.03, poll_interval=0.01) is False
