"""
Tests for session warm-up.
"""

import random

import pytest

from marketscraper.session import bootstrap, humanize, warmup
from tests.fakes import FakeMouse, PageSpec


class TestHumanize:
    """Test the interaction sequence."""

    @pytest.mark.asyncio
    async def test_two_moves_and_two_scrolls(self, page, no_delays):
        assert await humanize(page, rng=random.Random(1)) is True

        assert len(page.mouse.moves) == 2
        scroll_fractions = [arg for _, arg in page.evaluations]
        assert len(scroll_fractions) == 2
        assert 0.2 <= scroll_fractions[0] <= 0.5
        assert 0.3 <= scroll_fractions[1] <= 0.7
        assert len(no_delays) == 4

    @pytest.mark.asyncio
    async def test_delays_within_bounds(self, page, no_delays):
        await humanize(page)

        assert all(0.10 <= w <= 0.50 for w in no_delays)

    @pytest.mark.asyncio
    async def test_failure_returns_false(self, page):
        page.mouse = FakeMouse(fail=True)

        assert await humanize(page) is False


class TestWarmup:
    """Test landing-page warm-up."""

    @pytest.mark.asyncio
    async def test_visits_home_page(self, page, market):
        assert await warmup(page, "https://market.test/", timeout=30) is True

        assert market.visits == ["https://market.test/"]
        assert page.gotos[0]['wait_until'] == "networkidle"
        assert page.gotos[0]['timeout'] == 30000

    @pytest.mark.asyncio
    async def test_navigation_failure_returns_false(self, page, market):
        market.serve("https://market.test/", PageSpec(error=TimeoutError("Timeout 30000ms exceeded")))

        assert await warmup(page, "https://market.test/") is False

    @pytest.mark.asyncio
    async def test_bootstrap_never_raises(self, page, market, settings):
        market.serve("https://market.test/", PageSpec(error=RuntimeError("net::ERR_NAME_NOT_RESOLVED")))

        assert await bootstrap(page, "https://market.test/", settings) is False
