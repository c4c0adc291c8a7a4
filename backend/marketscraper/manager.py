"""
Scrape Manager - fans one search out across query variants.

Expands the search term, runs one pagination walker per variant under a
bounded concurrency limit and aggregates everything into a single report.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Type

from .aggregator import build_report
from .base import (
    BrowserLaunchError,
    Colors,
    MarketplaceSite,
    ScrapeError,
    ScrapeObserver,
    ScrapeReport,
    SearchRequest,
    WalkResult,
)
from .config import get_site_config
from .expansion import OpenAIQueryExpander, QueryExpander, expand_query
from .pagination import PaginationWalker, SessionFactory
from .proxies import ProxyPool
from .settings import ScraperSettings

from .sites.gumtree import GumtreeSite

logger = logging.getLogger(__name__)


# Registry of implemented site adapters
SITE_REGISTRY: Dict[str, Type[MarketplaceSite]] = {
    'gumtree': GumtreeSite,
}


def get_site(site_key: str) -> MarketplaceSite:
    """
    Get an adapter instance for a site.

    Raises:
        ValueError: If the site is unknown or has no adapter
    """
    get_site_config(site_key)
    if site_key not in SITE_REGISTRY:
        raise ValueError(f"No adapter implemented for site: {site_key}")
    return SITE_REGISTRY[site_key]()


class ScrapeManager:
    """
    Runs a search across its query variants.

    Usage:
        manager = ScrapeManager(settings)
        report = await manager.run(SearchRequest("desk lamp", location="Sydney"))
    """

    def __init__(
        self,
        settings: Optional[ScraperSettings] = None,
        site: Optional[MarketplaceSite] = None,
        proxy_pool: Optional[ProxyPool] = None,
        expander: Optional[QueryExpander] = None,
        session_factory: Optional[SessionFactory] = None,
        observer: Optional[ScrapeObserver] = None,
    ):
        """
        Initialize the manager.

        Args:
            settings: Engine settings (environment defaults if None)
            site: Marketplace adapter (Gumtree if None)
            proxy_pool: Proxies (loaded from settings.proxy_file if None)
            expander: Expansion backend (OpenAI when a key is configured)
            session_factory: Browser session factory passed to every walker
            observer: Progress hooks passed to every walker
        """
        self.settings = settings or ScraperSettings()
        self.site = site or get_site('gumtree')
        self.proxy_pool = proxy_pool if proxy_pool is not None else ProxyPool.from_file(self.settings.proxy_file)
        if expander is None and self.settings.openai_api_key:
            expander = OpenAIQueryExpander(self.settings)
        self.expander = expander
        self.session_factory = session_factory
        self.observer = observer or ScrapeObserver()

    async def variants_for(self, request: SearchRequest, expand: bool = True) -> List[str]:
        """Variants to run for a request; just the term when expansion is off."""
        if not expand:
            return [request.query.strip()]
        return await expand_query(request.query, self.expander, self.settings.max_variants)

    def _walker(self, proxy: Optional[str]) -> PaginationWalker:
        return PaginationWalker(
            self.site,
            self.settings,
            proxy_pool=self.proxy_pool,
            session_factory=self.session_factory,
            proxy=proxy,
            observer=self.observer,
        )

    async def _run_variant(
        self,
        semaphore: asyncio.Semaphore,
        index: int,
        query: str,
        request: SearchRequest,
    ) -> WalkResult:
        """Run one variant's walker while holding a concurrency slot."""
        async with semaphore:
            proxy = self.proxy_pool.for_index(index)
            try:
                return await self._walker(proxy).walk(request, query)
            except BrowserLaunchError:
                raise
            except Exception as e:
                logger.error(f"{Colors.red('[ERR]')} Variant '{query}' failed: {e}")
                return WalkResult(query=query, errors=[ScrapeError(error=str(e) or type(e).__name__, query=query)])

    async def run(self, request: SearchRequest, expand: bool = True) -> ScrapeReport:
        """
        Run a search.

        Args:
            request: The search
            expand: Whether to expand the term into variants

        Returns:
            ScrapeReport aggregated over all variants

        Raises:
            BrowserLaunchError: The browser could not be started; remaining walkers are cancelled
        """
        variants = await self.variants_for(request, expand)
        concurrency = max(1, self.settings.concurrency)
        logger.info(
            f"{Colors.bold('Search')} '{request.query}' -> {len(variants)} variants "
            f"(concurrency {concurrency}, {len(self.proxy_pool)} proxies)"
        )

        semaphore = asyncio.Semaphore(concurrency)
        tasks = [
            asyncio.create_task(self._run_variant(semaphore, i, query, request))
            for i, query in enumerate(variants)
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        report = build_report(request, variants, results)
        logger.info(
            f"{Colors.green('✓')} '{request.query}': {report.total_found} listings, "
            f"{report.pages_scraped} pages, {len(report.errors)} errors"
        )
        return report
