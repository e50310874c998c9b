"""Application configuration via Pydantic Settings."""

from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Scraper settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Browser sessions
    SCRAPER_HEADLESS: bool = False  # operators solve CAPTCHAs in a visible window
    SCRAPER_NAVIGATION_TIMEOUT_MS: int = 60_000
    SCRAPER_FALLBACK_NAVIGATION_TIMEOUT_MS: int = 40_000
    SCRAPER_NAVIGATION_WAIT_UNTIL: str = "domcontentloaded"
    SCRAPER_FALLBACK_WAIT_UNTIL: str = "commit"
    SCRAPER_SETTLE_SECONDS: float = 2.0
    SCRAPER_RESULTS_WAIT_MS: int = 10_000
    SCRAPER_BLOCK_RESOURCES: bool = True
    SCRAPER_BLOCKED_RESOURCE_TYPES: str = "image,media,font"

    # Anti-bot
    SCRAPER_CAPTCHA_WAIT_SECONDS: float = 120.0
    SCRAPER_CAPTCHA_POLL_SECONDS: float = 5.0

    # Extraction
    SCRAPER_MAX_RESULTS: int = 20
    SCRAPER_MAX_REVIEWS: int = 5
    SCRAPER_MAX_VALID_PRICE: Decimal = Decimal("1000000")
    SCRAPER_EMPTY_RETRY_DELAY_SECONDS: float = 2.0

    # Orchestration
    SCRAPER_MAX_CONCURRENT_SESSIONS: int = 4
    SCRAPER_ADAPTER_TIMEOUT_SECONDS: float = 420.0
    SCRAPER_ENABLED_SOURCES: str = ""  # Comma-separated; empty means all
    SCRAPER_RULESET_PATH: Optional[str] = None

    # Proxy
    PROXY_LIST: str = ""  # Comma-separated list of proxy URLs

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    def get_proxy_list(self) -> List[str]:
        """Parse PROXY_LIST into a list of proxy URLs.

        Returns:
            List of proxy URL strings, empty if PROXY_LIST is not set
        """
        return _split_csv(self.PROXY_LIST)

    def get_enabled_sources(self) -> List[str]:
        """Sources to register; an empty list means every known ruleset."""
        return _split_csv(self.SCRAPER_ENABLED_SOURCES)

    def get_blocked_resource_types(self) -> List[str]:
        return _split_csv(self.SCRAPER_BLOCKED_RESOURCE_TYPES)


def _split_csv(value: str) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


settings = Settings()


def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return settings
