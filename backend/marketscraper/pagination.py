"""
Pagination walker.

Drives sequential results-page fetches for one query variant:

    FETCHING(n) -> EXTRACTED(n) -> FETCHING(n+1) | DONE

Each page fetch runs under the retry controller. A page that still fails
after retries ends the walk at that page with one error record; pages
already collected are kept.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from .base import (
    BotDefenseError,
    BrowserLaunchError,
    Colors,
    Listing,
    MarketplaceSite,
    PageEvent,
    PageFetchAttempt,
    PaginationState,
    RetryExhaustedError,
    ScrapeError,
    ScrapeObserver,
    SearchRequest,
    WalkResult,
    WalkState,
)
from .crawlers.browser import launch_session
from .detection import classify_page
from .proxies import ProxyPool
from .retry import BackoffPolicy, RetryContext, with_retry
from .session import bootstrap, humanize
from .utils import timing
from .utils.output import sanitize_filename, save_html, save_screenshot

SessionFactory = Callable[..., Awaitable]


@dataclass(frozen=True)
class PageExtraction:
    """Listings and pagination read from one results page."""
    url: str
    listings: List[Listing]
    pagination: PaginationState


class PaginationWalker:
    """
    Pages sequentially through one query's results.

    The walker owns at most one browser session at a time. A session that
    served a failed attempt is closed before the next attempt, and whatever
    session is held is closed when the walk ends, on every exit path.
    """

    def __init__(
        self,
        site: MarketplaceSite,
        settings,
        proxy_pool: Optional[ProxyPool] = None,
        session_factory: Optional[SessionFactory] = None,
        proxy: Optional[str] = None,
        observer: Optional[ScrapeObserver] = None,
    ):
        """
        Initialize the walker.

        Args:
            site: Marketplace adapter
            settings: ScraperSettings
            proxy_pool: Shared read-only pool used for rotation on retry
            session_factory: async (settings, proxy) -> session; defaults to Playwright
            proxy: Proxy bound to this walker for its first attempt
            observer: Progress hooks
        """
        self.site = site
        self.settings = settings
        self.proxy_pool = proxy_pool or ProxyPool()
        self.session_factory = session_factory or launch_session
        self.observer = observer or ScrapeObserver()
        self.backoff = BackoffPolicy.from_settings(settings)
        self.logger = logging.getLogger(f"scraper.{site.key}")

        self.state = WalkState.DONE
        self._proxy = proxy
        self._session = None

    # ------------------------------------------------------------
    # Session handling
    # ------------------------------------------------------------

    async def _acquire_session(self, proxy: Optional[str]):
        """Return the held session, launching and warming up a new one if needed."""
        if self._session is not None and self._session.proxy == proxy:
            return self._session
        await self._release_session()

        self._session = await self.session_factory(self.settings, proxy)
        self._proxy = proxy
        await bootstrap(self._session.page, self.site.home_url, self.settings)
        return self._session

    async def _release_session(self):
        session, self._session = self._session, None
        if session is not None:
            await session.close()

    # ------------------------------------------------------------
    # Page fetch
    # ------------------------------------------------------------

    async def _fetch_page(self, context: RetryContext, query: str, url: str) -> PageFetchAttempt:
        """One attempt: navigate, classify, extract."""
        session = await self._acquire_session(context.proxy)
        page = session.page

        response = await page.goto(url, wait_until="networkidle", timeout=self.settings.navigation_timeout_ms)
        status = response.status if response is not None else None

        classification = await classify_page(page, status)
        if not classification.is_clean:
            await self._save_artifacts(page, url)
            return PageFetchAttempt.blocked(
                context.attempt_number, classification.reason, context.proxy, status
            )

        await timing.delay(self.settings.settle_delay_min, self.settings.settle_delay_max)
        await humanize(page)

        listings = await self.site.extract_listings(page, query)
        pagination = await self.site.get_pagination(page)
        return PageFetchAttempt.success(
            context.attempt_number,
            PageExtraction(url=url, listings=listings, pagination=pagination),
            context.proxy,
            status,
        )

    async def _save_artifacts(self, page, url: str):
        """Keep HTML and a screenshot of a blocked page when an artifacts dir is configured."""
        if not self.settings.artifacts_dir:
            return
        base = Path(self.settings.artifacts_dir) / sanitize_filename(url, max_length=200)
        try:
            await save_html(page, base / "page.html")
            await save_screenshot(page, base / "screenshot.png")
        except Exception as e:
            self.logger.debug(f"Could not save artifacts for {url}: {e}")

    # ------------------------------------------------------------
    # Detail pages
    # ------------------------------------------------------------

    async def _scrape_details(self, listings: List[Listing]):
        """
        Visit each listing's detail page sequentially and merge the fields.

        A failing listing gets `error` set; the rest of the page continues.
        """
        for idx, listing in enumerate(listings, 1):
            try:
                session = await self._acquire_session(self._proxy)
                page = session.page
                response = await page.goto(
                    listing.url, wait_until="networkidle", timeout=self.settings.navigation_timeout_ms
                )
                status = response.status if response is not None else None
                classification = await classify_page(page, status)
                if not classification.is_clean:
                    raise BotDefenseError(classification.reason, status)

                await timing.delay(self.settings.settle_delay_min, self.settings.settle_delay_max)
                await humanize(page)

                details = await self.site.extract_details(page)
                listing.merge_details(details)
                self.logger.info(f"   ➤ [{idx}/{len(listings)}] {listing.title or listing.url}")
            except BrowserLaunchError:
                raise
            except Exception as e:
                listing.error = str(e) or type(e).__name__
                self.logger.warning(f"   {Colors.red('[ERR]')} detail {listing.url}: {listing.error}")

            self.observer.on_listing(listing)

            if idx < len(listings):
                await timing.delay(self.settings.detail_delay_min, self.settings.detail_delay_max)

    # ------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------

    async def walk(self, request: SearchRequest, query: Optional[str] = None) -> WalkResult:
        """
        Walk the results pages for one query.

        Args:
            request: Search request (max_pages, location, category, details flag)
            query: Query variant; defaults to request.query

        Returns:
            WalkResult with listings, errors and the number of pages scraped
        """
        query = query or request.query
        result = WalkResult(query=query)
        current = 1

        self.logger.info(f"{Colors.cyan('❯❯❯')} Walking '{query}' (max {request.max_pages} pages)")

        try:
            while current <= request.max_pages:
                self.state = WalkState.FETCHING
                url = self.site.build_search_url(request, query, current)

                try:
                    attempt = await with_retry(
                        lambda ctx, u=url: self._fetch_page(ctx, query, u),
                        retries=self.settings.retries,
                        proxy_pool=self.proxy_pool,
                        initial_proxy=self._proxy,
                        release=self._release_session,
                        backoff=self.backoff,
                        label=url,
                    )
                except RetryExhaustedError as e:
                    result.errors.append(ScrapeError(error=e.reason, page=current, query=query))
                    self.logger.error(f"   {Colors.red('[ERR]')} page {current} of '{query}': {e.reason}")
                    break

                extraction: PageExtraction = attempt.value
                self.state = WalkState.EXTRACTED

                if request.scrape_details and extraction.listings:
                    await self._scrape_details(extraction.listings)

                result.listings.extend(extraction.listings)
                result.pages_scraped += 1
                self.logger.info(
                    f"{Colors.bold(f'[page {current}]')} '{query}': {len(extraction.listings)} listings"
                )
                self.observer.on_page(PageEvent(
                    query=query, page=current, url=url, listings=list(extraction.listings)
                ))

                pagination = extraction.pagination
                last_page = min(request.max_pages, pagination.total_pages)
                if not (pagination.has_next and current + 1 <= last_page):
                    break

                await timing.delay(self.settings.page_delay_min, self.settings.page_delay_max)
                current += 1
        finally:
            await self._release_session()
            self.state = WalkState.DONE

        result.state = self.state
        return result
