"""
Playwright browser session.

One BrowserSession is one Chromium process with a single context and page,
optionally routed through a proxy. A session is owned by exactly one walker
and must be closed on every exit path.
"""

import asyncio
import os
from typing import Optional, Dict
from playwright.async_api import async_playwright, Browser, BrowserContext, Page
import logging

from ..base import BrowserLaunchError
from ..proxies import parse_proxy

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-blink-features=AutomationControlled',
]


class BrowserSession:
    """
    A launched browser with one ready-to-use page.

    Usage:
        async with await BrowserSession.launch(settings, proxy) as session:
            await session.page.goto(url)
    """

    def __init__(self, proxy: Optional[str] = None):
        self.proxy = proxy
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    @classmethod
    async def launch(cls, settings, proxy: Optional[str] = None) -> 'BrowserSession':
        """
        Start a browser session.

        Args:
            settings: ScraperSettings
            proxy: Optional proxy URL

        Returns:
            Started BrowserSession

        Raises:
            BrowserLaunchError: If the browser is missing or fails to start
            ValueError: If `proxy` is malformed (an ordinary, retryable failure)
        """
        # Resolved before launching so a bad proxy entry never looks like a browser fault
        proxy_settings = parse_proxy(proxy) if proxy else None
        session = cls(proxy)
        try:
            await session._start(settings, proxy_settings)
        except BrowserLaunchError:
            await session.close()
            raise
        except Exception as e:
            await session.close()
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e
        return session

    async def _start(self, settings, proxy_settings: Optional[Dict[str, str]] = None):
        self._playwright = await async_playwright().start()

        # Verify the browser is installed before launching
        executable = settings.browser_executable
        if executable:
            if not os.path.exists(executable):
                raise BrowserLaunchError(f"Browser executable not found: {executable}")
        else:
            chromium_path = self._playwright.chromium.executable_path
            if not chromium_path or not os.path.exists(chromium_path):
                raise BrowserLaunchError("Chromium browser not found. Run: playwright install chromium")

        launch_options = {
            'headless': settings.headless,
            'args': LAUNCH_ARGS,
            'handle_sigint': False,
            'handle_sigterm': False,
            'handle_sighup': False,
        }
        if executable:
            launch_options['executable_path'] = executable
        if proxy_settings:
            launch_options['proxy'] = proxy_settings

        logger.debug(f"Launching Chromium (proxy={self.proxy or 'none'})...")
        self._browser = await self._playwright.chromium.launch(**launch_options)

        self._context = await self._browser.new_context(
            viewport={'width': settings.viewport_width, 'height': settings.viewport_height},
            user_agent=settings.user_agent,
            locale='en-AU',
            extra_http_headers={
                'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
                'Accept-Language': settings.accept_language,
            },
        )
        self._context.set_default_timeout(settings.navigation_timeout_ms)
        self._context.set_default_navigation_timeout(settings.navigation_timeout_ms)

        self.page = await self._context.new_page()
        logger.debug("Browser session ready")

    async def close(self):
        """Clean up browser resources with timeouts to prevent hanging."""
        cleanup_timeout = 2.0

        if self.page:
            try:
                await asyncio.wait_for(self.page.close(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Page close timed out, forcing cleanup")
            except Exception as e:
                logger.debug(f"Error closing page: {e}")
            self.page = None

        if self._context:
            try:
                await asyncio.wait_for(self._context.close(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Context close timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error closing context: {e}")
            self._context = None

        if self._browser:
            try:
                await asyncio.wait_for(self._browser.close(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Browser close timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright:
            try:
                await asyncio.wait_for(self._playwright.stop(), timeout=cleanup_timeout)
            except asyncio.TimeoutError:
                logger.warning("Playwright stop timed out, forcing cleanup")
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self._playwright = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


async def launch_session(settings, proxy: Optional[str] = None) -> BrowserSession:
    """Default session factory used by the walker."""
    return await BrowserSession.launch(settings, proxy)
