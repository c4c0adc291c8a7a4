"""
Browser-driven classifieds scraper.

This package provides the scrape orchestration engine:
- Retry/backoff with proxy rotation around every page fetch
- Block and challenge detection
- Pagination traversal with optional detail-page scraping
- Query expansion fanned out under a concurrency limit
"""

from .base import (
    Listing,
    ScrapeReport,
    ScrapeObserver,
    SearchRequest,
    ScraperError,
    BrowserLaunchError,
    RetryExhaustedError,
)
from .config import SITES, get_site_config, get_enabled_sites
from .manager import ScrapeManager, get_site
from .settings import ScraperSettings

__version__ = "1.0.0"

__all__ = [
    'Listing',
    'ScrapeReport',
    'ScrapeObserver',
    'SearchRequest',
    'ScraperError',
    'BrowserLaunchError',
    'RetryExhaustedError',
    'SITES',
    'get_site_config',
    'get_enabled_sites',
    'ScrapeManager',
    'get_site',
    'ScraperSettings',
]
