"""
Application Configuration
Loads service settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    """Service settings loaded from environment variables."""

    # Database Configuration
    database_url: str = "sqlite:///./data/scrape_runs.db"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # CORS Configuration
    cors_origins: List[str] = ["*"]

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Runs listing
    runs_page_size: int = 50

    # Paths
    @property
    def log_dir(self) -> Path:
        """Get the log directory path."""
        return Path(__file__).parent.parent.parent / "logs"

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.log_dir / "scraper_api.log"

    class Config:
        # Only load .env if it exists to avoid permission errors
        env_file = ".env" if Path(".env").exists() else None
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


# Global settings instance
settings = Settings()
