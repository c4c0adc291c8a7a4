"""
Tests for application and engine configuration.
"""

import pytest
from pydantic import ValidationError

from marketscraper.config import SITES, get_enabled_sites, get_site_config, list_sites
from marketscraper.settings import ScraperSettings


class TestSettings:
    """Test the service Settings configuration class."""

    def test_settings_defaults(self):
        """Test that settings have sensible defaults."""
        from scraper_api.config import settings

        assert settings.api_host == "0.0.0.0"
        assert settings.api_port == 8000
        assert settings.log_level == "INFO"

    def test_settings_database_url(self):
        from scraper_api.config import settings

        assert settings.database_url is not None
        assert settings.database_url.startswith("sqlite")

    def test_settings_cors_origins(self):
        from scraper_api.config import settings

        assert isinstance(settings.cors_origins, list)
        assert len(settings.cors_origins) > 0

    def test_settings_log_paths(self):
        from scraper_api.config import settings

        assert settings.log_file.name == "scraper_api.log"
        assert settings.log_file.parent == settings.log_dir

    def test_settings_runs_page_size(self):
        from scraper_api.config import settings

        assert settings.runs_page_size == 50


class TestScraperSettings:
    """Test engine settings."""

    def test_defaults(self, monkeypatch):
        for key in ("SCRAPER_RETRIES", "SCRAPER_CONCURRENCY", "SCRAPER_NAVIGATION_TIMEOUT", "SCRAPER_MAX_PAGES"):
            monkeypatch.delenv(key, raising=False)

        settings = ScraperSettings()

        assert settings.retries == 2
        assert settings.concurrency == 2
        assert settings.max_pages == 5
        assert settings.navigation_timeout_ms == 60000
        assert settings.openai_model == "gpt-4o-mini"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SCRAPER_CONCURRENCY", "4")
        monkeypatch.setenv("SCRAPER_PROXY_FILE", "/tmp/proxies.txt")

        settings = ScraperSettings()

        assert settings.concurrency == 4
        assert settings.proxy_file == "/tmp/proxies.txt"

    def test_frozen(self, settings):
        with pytest.raises(ValidationError):
            settings.retries = 10


class TestSiteConfig:
    """Test the site registry."""

    def test_gumtree_configured(self):
        config = get_site_config('gumtree')

        assert config.base_url == "https://www.gumtree.com.au"
        assert config.listing_link_pattern == "/s-ad/"
        assert config.selectors['title'][0] == 'h1'

    def test_every_field_has_fallbacks(self):
        for config in SITES.values():
            for name, locators in config.selectors.items():
                assert isinstance(locators, tuple) and locators, name

    def test_unknown_site(self):
        with pytest.raises(ValueError, match="Valid sites: gumtree"):
            get_site_config('nope')

    def test_listing_helpers(self):
        assert 'gumtree' in list_sites()
        assert 'gumtree' in get_enabled_sites()
