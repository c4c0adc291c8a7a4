"""
Session warm-up.

Before the first real request a fresh browser visits the marketplace's
landing page and performs a short human-like interaction sequence. This is
best effort: every function here reports failure through its return value
and never raises.
"""

import random
import logging
from typing import Optional

from .utils import timing

logger = logging.getLogger(__name__)

_SCROLL_FRACTION_JS = "(f) => window.scrollBy(0, Math.floor(window.innerHeight * f))"


async def humanize(page, rng: Optional[random.Random] = None) -> bool:
    """
    Simulate human-like behavior on a page.

    - Two random mouse movements with 100-350ms pauses
    - Two incremental scrolls by a fraction of the viewport with 150-500ms pauses

    Returns:
        True if the whole sequence ran, False if the page refused any step
    """
    rng = rng or random
    try:
        await page.mouse.move(100 + rng.random() * 200, 100 + rng.random() * 200)
        await timing.delay(0.15, 0.35)

        await page.mouse.move(300 + rng.random() * 300, 200 + rng.random() * 300)
        await timing.delay(0.10, 0.25)

        await page.evaluate(_SCROLL_FRACTION_JS, 0.2 + rng.random() * 0.3)
        await timing.delay(0.20, 0.50)

        await page.evaluate(_SCROLL_FRACTION_JS, 0.3 + rng.random() * 0.4)
        await timing.delay(0.15, 0.40)
        return True
    except Exception as e:
        logger.debug(f"Humanize step failed: {e}")
        return False


async def warmup(page, home_url: str, timeout: float = 30.0) -> bool:
    """
    Warm up a session by visiting the landing page first.

    Args:
        page: Browser page
        home_url: Marketplace landing page
        timeout: Navigation timeout in seconds

    Returns:
        True if the landing page loaded and the interaction ran
    """
    try:
        await page.goto(home_url, wait_until="networkidle", timeout=int(timeout * 1000))
    except Exception as e:
        logger.debug(f"Warm-up navigation to {home_url} failed: {e}")
        return False
    await timing.delay(0.5, 1.5)
    return await humanize(page)


async def bootstrap(page, home_url: str, settings) -> bool:
    """
    Establish a credible browsing session on a freshly opened page.

    A failed warm-up is logged and otherwise ignored.
    """
    ok = await warmup(page, home_url, timeout=settings.warmup_timeout)
    if not ok:
        logger.debug(f"Session warm-up incomplete for {home_url}, continuing")
    return ok
