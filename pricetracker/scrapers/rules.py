"""Declarative extraction rulesets.

A ruleset describes one storefront: where its search page lives, which
elements hold the result cards, and an ordered fallback chain of rules per
field. Rulesets are plain data so markup changes are fixed by editing
selectors, not code. Built-in rulesets live in
``pricetracker.scrapers.adapters``; more can be loaded from JSON.

Chain entries accept either a full rule or a bare CSS selector::

    "title": ["h2 a span", {"selector": "img.s-image", "attribute": "alt"}]
"""

import json
import re
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any, List, Optional, Union
from urllib.parse import quote_plus

import soupsieve
import structlog
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from pricetracker.scrapers.errors import RulesetError

logger = structlog.get_logger(__name__)


def _as_list(value: Any) -> Any:
    if isinstance(value, (str, dict)):
        return [value]
    return value


def _check_selector(selector: str) -> str:
    try:
        soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as e:
        raise ValueError(f"invalid CSS selector {selector!r}: {e}") from e
    return selector


def _check_selectors(selectors: List[str]) -> List[str]:
    for selector in selectors:
        _check_selector(selector)
    return selectors


def _check_patterns(patterns: List[str]) -> List[str]:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"invalid regular expression {pattern!r}: {e}") from e
    return patterns


class FieldRule(BaseModel):
    """One way of reading a value out of an element.

    ``selector`` picks a descendant (``None`` means the element itself),
    ``attribute`` reads an attribute instead of the text, and ``pattern``
    narrows the value to a regex match (group 1 when the pattern has one).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    selector: Optional[str] = None
    attribute: Optional[str] = None
    pattern: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"selector": value}
        return value

    @field_validator("selector")
    @classmethod
    def _validate_selector(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _check_selector(value)
        return value

    @field_validator("pattern")
    @classmethod
    def _validate_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _check_patterns([value])
        return value


FieldChain = Annotated[List[FieldRule], BeforeValidator(_as_list)]
SelectorList = Annotated[
    List[str], BeforeValidator(_as_list), AfterValidator(_check_selectors)
]
PatternList = Annotated[
    List[str], BeforeValidator(_as_list), AfterValidator(_check_patterns)
]


class DetailRules(BaseModel):
    """Rules for a single product listing page."""

    model_config = ConfigDict(extra="forbid")

    ready_selectors: SelectorList = Field(default_factory=list)
    title: FieldChain
    price: FieldChain
    image: FieldChain = Field(default_factory=list)
    rating: FieldChain = Field(default_factory=list)
    review_count: FieldChain = Field(default_factory=list)
    stable_id: FieldChain = Field(default_factory=list)

    review_selectors: SelectorList = Field(default_factory=list)
    review_title: FieldChain = Field(default_factory=list)
    review_text: FieldChain = Field(default_factory=list)
    review_rating: FieldChain = Field(default_factory=list)
    review_date: FieldChain = Field(default_factory=list)


class SiteRules(BaseModel):
    """Everything the generic site adapter needs to know about one storefront."""

    model_config = ConfigDict(extra="forbid")

    source: str = Field(pattern=r"^[a-z0-9_]+$")
    name: str
    base_url: str
    search_path: str
    currency: str = "USD"
    locale: str = "en-US"
    timezone_id: str = "America/New_York"

    brand_keywords: List[str] = Field(default_factory=list)
    result_selectors: SelectorList
    sponsored_selectors: SelectorList = Field(default_factory=list)
    skip_titles: List[str] = Field(default_factory=list)

    title: FieldChain
    price: FieldChain
    url: FieldChain
    image: FieldChain = Field(default_factory=list)
    rating: FieldChain = Field(default_factory=list)
    review_count: FieldChain = Field(default_factory=list)
    stable_id: FieldChain = Field(default_factory=list)

    id_patterns: PatternList = Field(default_factory=list)
    max_price: Optional[Decimal] = None

    detail: DetailRules

    @field_validator("search_path")
    @classmethod
    def _validate_search_path(cls, value: str) -> str:
        if "{query}" not in value:
            raise ValueError("search_path must contain a {query} placeholder")
        return value

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("base_url must be an absolute http(s) URL")
        return value.rstrip("/")

    @field_validator("brand_keywords", "skip_titles")
    @classmethod
    def _lowercase(cls, values: List[str]) -> List[str]:
        return [v.lower() for v in values]

    def search_url(self, query: str) -> str:
        """Build the search results URL for a query."""
        return self.base_url + self.search_path.format(query=quote_plus(query.strip()))


def load_rulesets(path: Union[str, Path]) -> List[SiteRules]:
    """Load rulesets from a JSON file.

    The file holds either a list of rulesets or an object with a
    ``"rulesets"`` list.

    Args:
        path: Path to the JSON file

    Returns:
        Validated rulesets in file order

    Raises:
        RulesetError: If the file is unreadable or a ruleset is invalid
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RulesetError(f"Cannot read ruleset file {path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("rulesets")
    if not isinstance(raw, list):
        raise RulesetError(f"Ruleset file {path} must contain a list of rulesets")

    rulesets = []
    for index, entry in enumerate(raw):
        try:
            rulesets.append(SiteRules.model_validate(entry))
        except ValidationError as e:
            raise RulesetError(f"Invalid ruleset #{index} in {path}: {e}") from e

    logger.info(
        "rulesets_loaded",
        path=str(path),
        sources=[r.source for r in rulesets],
    )
    return rulesets
