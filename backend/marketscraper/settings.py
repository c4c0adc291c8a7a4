"""
Scraper Configuration
Loads engine settings from environment variables (prefix SCRAPER_) with sensible defaults.

The settings object is frozen: build it once at process start and pass it
into every component constructor.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36"
)


class ScraperSettings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Browser
    headless: bool = True
    browser_executable: Optional[str] = None  # System Chrome path; bundled Chromium if unset
    viewport_width: int = 1366
    viewport_height: int = 768
    user_agent: str = DEFAULT_USER_AGENT
    accept_language: str = "en-AU,en-US;q=0.9,en;q=0.8"

    # Timeouts (seconds)
    navigation_timeout: float = 60.0
    warmup_timeout: float = 30.0

    # Run shape
    retries: int = 2
    concurrency: int = 2
    max_pages: int = 5
    proxy_file: Optional[str] = None

    # Delays (seconds)
    settle_delay_min: float = 0.8
    settle_delay_max: float = 1.8
    page_delay_min: float = 1.5
    page_delay_max: float = 3.0
    detail_delay_min: float = 1.0
    detail_delay_max: float = 2.0

    # Retry backoff: base + attempt_index * step + uniform(0, jitter)
    backoff_base: float = 1.0
    backoff_step: float = 0.5
    backoff_jitter: float = 0.5

    # Query expansion (OpenAI-compatible chat completions)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    expansion_timeout: float = 20.0
    max_variants: int = 5

    # Output
    output_dir: str = "output"
    artifacts_dir: Optional[str] = None  # Save HTML + screenshot of blocked pages here

    @property
    def navigation_timeout_ms(self) -> int:
        return int(self.navigation_timeout * 1000)

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)

    class Config:
        env_prefix = "SCRAPER_"
        # Only load .env if it exists to avoid permission errors
        env_file = ".env" if Path(".env").exists() else None
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"
        frozen = True
