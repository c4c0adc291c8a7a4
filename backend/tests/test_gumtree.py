"""
Tests for the Gumtree adapter.
"""

import pytest

from marketscraper.base import PaginationState, SearchRequest
from marketscraper.sites.gumtree import _LISTINGS_JS, _PAGINATION_JS, GumtreeSite, build_search_url

BASE = "https://www.gumtree.com.au"


class TestBuildSearchUrl:
    """Test search URL construction."""

    def test_term_only(self):
        assert build_search_url(BASE, "iphone") == f"{BASE}/s-iphone/k0"

    def test_spaces_are_percent_encoded(self):
        """Spaces become %20, never '+'."""
        url = build_search_url(BASE, "desk lamp")

        assert url == f"{BASE}/s-desk%20lamp/k0"
        assert "+" not in url

    def test_location_is_slugged(self):
        assert build_search_url(BASE, "bike", location="North Sydney") == f"{BASE}/s-north-sydney/bike/k0"

    def test_blank_location_ignored(self):
        assert build_search_url(BASE, "bike", location="   ") == f"{BASE}/s-bike/k0"

    def test_category(self):
        assert build_search_url(BASE, "bike", category="bicycles") == f"{BASE}/s-bicycles/bike/k0"

    def test_category_and_location(self):
        url = build_search_url(BASE, "bike", location="Sydney", category="bicycles")
        assert url == f"{BASE}/s-bicycles/sydney/bike/k0"

    def test_page_parameter(self):
        assert build_search_url(BASE, "bike", page=1) == f"{BASE}/s-bike/k0"
        assert build_search_url(BASE, "bike", page=3) == f"{BASE}/s-bike/k0?page=3"

    def test_sort_parameter(self):
        assert build_search_url(BASE, "bike", page=2, sort="price_asc") == f"{BASE}/s-bike/k0?page=2&sort=price_asc"

    def test_adapter_uses_request(self):
        site = GumtreeSite()
        request = SearchRequest("desk lamp", location="Melbourne")

        assert site.build_search_url(request, "cheap desk lamp", 2) == (
            f"{BASE}/s-melbourne/cheap%20desk%20lamp/k0?page=2"
        )


class TestExtractListings:
    """Test listing card extraction."""

    @pytest.mark.asyncio
    async def test_cards_deduplicated_and_tagged(self, page):
        page.scripted[_LISTINGS_JS] = [
            {"url": f"{BASE}/s-ad/sydney/lamp/1", "title": "Lamp", "price": "$20", "location": "Sydney", "image": ""},
            {"url": f"{BASE}/s-ad/sydney/lamp/1", "title": "Lamp (dup)", "price": "", "location": "", "image": ""},
            {"url": "", "title": "No link"},
            {"url": f"{BASE}/s-ad/sydney/lamp/2", "title": "Other lamp"},
        ]

        listings = await GumtreeSite().extract_listings(page, "lamp")

        assert [l.url for l in listings] == [f"{BASE}/s-ad/sydney/lamp/1", f"{BASE}/s-ad/sydney/lamp/2"]
        assert listings[0].title == "Lamp"
        assert listings[0].price == "$20"
        assert listings[1].price == ""
        assert all(l.source_query == "lamp" for l in listings)

    @pytest.mark.asyncio
    async def test_selectors_passed_to_page(self, page):
        page.scripted[_LISTINGS_JS] = []

        await GumtreeSite().extract_listings(page, "lamp")

        _, arg = page.evaluations[-1]
        assert arg['link'] == "/s-ad/"
        assert '.user-ad-row' in arg['cards']

    @pytest.mark.asyncio
    async def test_card_fields_keep_fallback_order(self, page):
        """Card field selectors go to the page as ordered lists, not one joined selector."""
        page.scripted[_LISTINGS_JS] = []

        await GumtreeSite().extract_listings(page, "lamp")

        _, arg = page.evaluations[-1]
        assert arg['title'] == ['h2', 'h3', '.listing-title', '[data-testid="listing-title"]']
        assert arg['price'][0] == '.listing-price'
        assert arg['location'][0] == '.listing-location'


class TestExtractDetails:
    """Test detail page extraction."""

    @pytest.mark.asyncio
    async def test_fields_from_fallback_selectors(self, page):
        page.values = {
            "h1": "Brass desk lamp",
            ".price": "$45",
            "[data-testid='listing-description']": "Works well",
            "time": "2 days ago",
        }
        page.collections = {
            ".attribute-row, [data-testid=\"attribute\"], .specs-row": [["Condition", "Used"]],
            ".gallery img, .carousel img, [data-testid=\"gallery\"] img": ["https://i/1.jpg", "https://i/1.jpg"],
        }

        details = await GumtreeSite().extract_details(page)

        assert details['title'] == "Brass desk lamp"
        assert details['price'] == "$45"
        assert details['description'] == "Works well"
        assert details['posted_date'] == "2 days ago"
        assert details['seller'] == ""
        assert details['attributes'] == {"Condition": "Used"}
        assert details['images'] == ["https://i/1.jpg"]


class TestPagination:
    """Test pagination reading."""

    @pytest.mark.asyncio
    async def test_reads_pager(self, page):
        page.scripted[_PAGINATION_JS] = {"currentPage": 2, "totalPages": 9, "hasNext": True, "nextUrl": f"{BASE}/s-bike/k0?page=3"}

        state = await GumtreeSite().get_pagination(page)

        assert state == PaginationState(2, 9, True, f"{BASE}/s-bike/k0?page=3")

    @pytest.mark.asyncio
    async def test_no_pager_means_no_next(self, page):
        page.scripted[_PAGINATION_JS] = None

        state = await GumtreeSite().get_pagination(page)

        assert state.has_next is False
        assert state.total_pages == 1

    @pytest.mark.asyncio
    async def test_read_failure(self, page):
        page.scripted[_PAGINATION_JS] = RuntimeError("Execution context was destroyed")

        assert await GumtreeSite().get_pagination(page) == PaginationState()
