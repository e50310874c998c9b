"""Data normalization utilities for price, rating and URL parsing."""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import NamedTuple, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import structlog

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")
_CENTS = Decimal("0.01")

# Amounts above this are almost always a lost decimal separator
PRICE_SANITY_LIMIT = Decimal("1000000")

# Ordered: longer, more specific markers first so "AU$" wins over "$"
CURRENCY_SYMBOLS: Tuple[Tuple[str, str], ...] = (
    ("Mex$", "MXN"),
    ("AU$", "AUD"),
    ("NZ$", "NZD"),
    ("HK$", "HKD"),
    ("US$", "USD"),
    ("C$", "CAD"),
    ("S$", "SGD"),
    ("R$", "BRL"),
    ("$", "USD"),
    ("€", "EUR"),
    ("£", "GBP"),
    ("¥", "JPY"),
    ("₹", "INR"),
    ("₽", "RUB"),
    ("₩", "KRW"),
    ("₺", "TRY"),
    ("₴", "UAH"),
    ("₱", "PHP"),
)

CURRENCY_CODES: Tuple[str, ...] = (
    "USD", "EUR", "GBP", "INR", "JPY", "CNY", "CAD", "AUD", "NZD", "HKD",
    "SGD", "BRL", "MXN", "CHF", "RUB", "KRW", "TRY", "UAH", "PHP",
)

_CODE_PATTERN = re.compile(
    r"(?<![A-Za-z])(" + "|".join(CURRENCY_CODES) + r")(?![A-Za-z])"
)
_RUPEE_PATTERN = re.compile(r"(?<![A-Za-z])rs\.?(?![A-Za-z])", re.IGNORECASE)
_RANGE_PATTERN = re.compile(r"\s(?:-|–|to)\s", re.IGNORECASE)

TRACKING_PARAMS = frozenset({
    "ref", "ref_", "source", "fbclid", "gclid", "mc_cid", "mc_eid",
    # Amazon search context
    "qid", "sr", "sprefix", "crid", "dib", "dib_tag", "keywords", "content-id",
    # eBay
    "_trksid", "_trkparms", "hash", "amdata",
    # Flipkart
    "lid", "srno", "otracker", "otracker1", "fm", "iid", "ppt", "ppn", "ssid",
    "qH", "spotlightTagId",
})
TRACKING_PREFIXES = ("utm_", "pd_rd_", "pf_rd_")


class ParsedPrice(NamedTuple):
    """Canonical price: amount plus ISO 4217 currency code."""

    amount: Decimal
    currency: str


class PriceNormalizer:
    """Locale-aware price text parsing.

    Handles formats like:
    - "$1,234.56" -> (1234.56, USD)
    - "₹99,999" -> (99999, INR)
    - "1.234,56 €" -> (1234.56, EUR)
    - "Rs. 1,499" -> (1499, INR)
    - "Free" -> (0, default currency)
    """

    @classmethod
    def parse_price(cls, text: Optional[str], default_currency: str = "USD") -> ParsedPrice:
        """Parse a scraped price string. Never raises.

        Args:
            text: Raw price text from the page
            default_currency: Currency assumed when the text carries no marker

        Returns:
            ParsedPrice; amount is 0 when nothing usable was found
        """
        if not text or not text.strip():
            logger.warning("price_parse_failed", text=text, reason="empty")
            return ParsedPrice(_ZERO, default_currency)

        currency, remainder = cls.detect_currency(text, default_currency)
        # Price ranges ("$10.99 to $15.99") are priced at their lower bound
        remainder = _RANGE_PATTERN.split(remainder, maxsplit=1)[0]

        amount = cls._parse_amount(remainder)
        if not amount:
            fallback = cls._fallback_amount(remainder)
            if fallback is not None:
                amount = fallback

        if amount is None:
            logger.warning(
                "price_parse_failed",
                text=text,
                default_currency=default_currency,
            )
            return ParsedPrice(_ZERO, default_currency)

        if amount > PRICE_SANITY_LIMIT:
            adjusted = amount / 100
            logger.warning(
                "price_sanity_adjusted",
                text=text,
                extracted=str(amount),
                adjusted=str(adjusted),
            )
            amount = adjusted

        return ParsedPrice(amount.quantize(_CENTS, rounding=ROUND_HALF_UP), currency)

    @staticmethod
    def detect_currency(text: str, default_currency: str) -> Tuple[str, str]:
        """Find the currency marker in ``text``.

        ISO codes take precedence over symbols. All matched markers are
        removed from the returned remainder.
        """
        currency = None
        remainder = text

        code_match = _CODE_PATTERN.search(remainder)
        if code_match:
            currency = code_match.group(1).upper()
            remainder = _CODE_PATTERN.sub(" ", remainder)

        for symbol, code in CURRENCY_SYMBOLS:
            if symbol in remainder:
                currency = currency or code
                remainder = remainder.replace(symbol, " ")
                break

        if _RUPEE_PATTERN.search(remainder):
            currency = currency or "INR"
            remainder = _RUPEE_PATTERN.sub(" ", remainder)

        return currency or default_currency, remainder

    @staticmethod
    def _parse_amount(text: str) -> Optional[Decimal]:
        cleaned = re.sub(r"[^\d.,]", "", text).rstrip(".,")
        if not cleaned or not any(ch.isdigit() for ch in cleaned):
            return None

        has_dot = "." in cleaned
        has_comma = "," in cleaned

        if has_dot and has_comma:
            # Whichever separator comes last is the decimal point
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif has_comma:
            head, _, tail = cleaned.rpartition(",")
            if len(tail) <= 2:
                cleaned = f"{head.replace(',', '')}.{tail}"
            else:
                cleaned = cleaned.replace(",", "")
        elif has_dot:
            head, _, tail = cleaned.rpartition(".")
            if cleaned.count(".") == 1:
                if len(tail) > 3:
                    cleaned = head + tail
            elif len(tail) <= 2:
                cleaned = f"{head.replace('.', '')}.{tail}"
            else:
                cleaned = cleaned.replace(".", "")

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return None

    @staticmethod
    def _fallback_amount(text: str) -> Optional[Decimal]:
        """Use the first digit runs; a short second run is read as cents."""
        runs = re.findall(r"\d+", text)
        if runs:
            if len(runs) >= 2 and len(runs[1]) <= 2:
                return Decimal(f"{runs[0]}.{runs[1]}")
            return Decimal(runs[0])
        if "free" in text.lower():
            return _ZERO
        return None


def parse_rating(text: Optional[str]) -> Optional[float]:
    """Extract a 0-5 star rating from text like "4.5 out of 5 stars"."""
    if not text:
        return None
    match = re.search(r"\d+(?:[.,]\d+)?", text)
    if not match:
        return None
    value = float(match.group(0).replace(",", "."))
    if 0 <= value <= 5:
        return value
    return None


def parse_count(text: Optional[str]) -> Optional[int]:
    """Extract a count from text like "(1,234)" or "1.2K ratings"."""
    if not text:
        return None
    match = re.search(r"(\d[\d,.]*)\s*([kKmM])?(?![A-Za-z])", text)
    if not match:
        return None
    number, suffix = match.group(1).rstrip(".,"), match.group(2)
    if suffix:
        multiplier = 1000 if suffix.lower() == "k" else 1_000_000
        try:
            return int(Decimal(number.replace(",", "")) * multiplier)
        except InvalidOperation:
            return None
    digits = re.sub(r"\D", "", number)
    return int(digits) if digits else None


def normalize_url(url: str) -> str:
    """Normalize a URL by removing tracking parameters and the fragment.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    parsed = urlparse(url)
    query_params = parse_qsl(parsed.query, keep_blank_values=True)

    filtered_params = [
        (k, v)
        for k, v in query_params
        if k not in TRACKING_PARAMS and not k.startswith(TRACKING_PREFIXES)
    ]

    return urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, parsed.params, urlencode(filtered_params), "")
    )
