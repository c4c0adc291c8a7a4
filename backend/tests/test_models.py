"""
Tests for the core data model.
"""

from datetime import datetime, timezone

import pytest

from marketscraper.base import (
    Listing,
    PageFetchAttempt,
    RetryExhaustedError,
    AttemptOutcome,
    ScrapeError,
    SearchRequest,
)
from marketscraper.utils import timing
from marketscraper.utils.output import sanitize_filename, save_json


class TestSearchRequest:
    """Test request validation."""

    def test_defaults(self):
        request = SearchRequest("lamp")

        assert request.max_pages == 5
        assert request.scrape_details is False
        assert request.location is None

    def test_empty_query(self):
        with pytest.raises(ValueError):
            SearchRequest("  ")

    def test_max_pages_at_least_one(self):
        with pytest.raises(ValueError):
            SearchRequest("lamp", max_pages=0)

    def test_immutable(self):
        request = SearchRequest("lamp")
        with pytest.raises(AttributeError):
            request.max_pages = 10


class TestListing:
    """Test listing merge and serialization."""

    def test_merge_details_augments(self):
        listing = Listing(url="https://market.test/item/1", title="Lamp", price="$20")

        listing.merge_details({
            'title': "Brass desk lamp",
            'price': "",
            'description': "Works",
            'attributes': {'Condition': 'Used'},
            'images': ["https://i/1.jpg", "https://i/2.jpg", "https://i/1.jpg"],
            'url': "https://elsewhere.test/",
        })

        assert listing.url == "https://market.test/item/1"
        assert listing.title == "Brass desk lamp"
        assert listing.price == "$20"
        assert listing.description == "Works"
        assert listing.attributes == {'Condition': 'Used'}
        assert listing.images == ["https://i/1.jpg", "https://i/2.jpg"]
        assert listing.image == "https://i/1.jpg"

    def test_to_dict_camel_case(self):
        scraped = datetime(2024, 5, 1, tzinfo=timezone.utc)
        listing = Listing(url="u", posted_date="today", source_query="lamp", scraped_at=scraped)

        data = listing.to_dict()

        assert data['postedDate'] == "today"
        assert data['sourceQuery'] == "lamp"
        assert data['scrapedAt'] == "2024-05-01T00:00:00+00:00"
        assert 'error' not in data

    def test_to_dict_includes_error(self):
        assert Listing(url="u", error="Blocked (HTTP 403)").to_dict()['error'] == "Blocked (HTTP 403)"


class TestAttemptsAndErrors:
    """Test attempt records and error types."""

    def test_attempt_constructors(self):
        assert PageFetchAttempt.success(1, "v").ok
        blocked = PageFetchAttempt.blocked(2, "Blocked (HTTP 403)", "http://p:1", 403)
        assert blocked.outcome is AttemptOutcome.BLOCKED
        assert blocked.error_message == "Blocked (HTTP 403)"
        assert PageFetchAttempt.failed(3, "reset").outcome is AttemptOutcome.ERROR

    def test_retry_exhausted_message(self):
        err = RetryExhaustedError("Challenge detected (x)", 3, AttemptOutcome.BLOCKED, 200)
        assert str(err) == "Challenge detected (x)"

    def test_scrape_error_to_dict(self):
        assert ScrapeError(error="boom").to_dict() == {"error": "boom"}
        assert ScrapeError(error="boom", page=2, query="lamp").to_dict() == {"page": 2, "query": "lamp", "error": "boom"}


class TestUtilities:
    """Test timing and output helpers."""

    def test_jitter_bounds(self):
        for _ in range(50):
            assert 1.5 <= timing.jitter(1.5, 3.0) <= 3.0

    def test_jitter_fixed(self):
        assert timing.jitter(2.0) == 2.0
        assert timing.jitter(2.0, 1.0) == 2.0

    @pytest.mark.asyncio
    async def test_delay_goes_through_pause(self, no_delays):
        waited = await timing.delay(1.0, 2.0)

        assert no_delays == [waited]
        assert 1.0 <= waited <= 2.0

    def test_sanitize_filename(self):
        assert sanitize_filename("desk lamp") == "desk_lamp"
        assert sanitize_filename("a/b?c") == "a_b_c"
        assert len(sanitize_filename("x" * 300)) == 100

    def test_save_json(self, tmp_path):
        path = save_json(tmp_path / "out" / "report.json", {"query": "lamp", "when": datetime(2024, 1, 1)})

        assert path.exists()
        assert '"query": "lamp"' in path.read_text()
