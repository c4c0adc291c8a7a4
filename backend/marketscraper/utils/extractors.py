"""
Data extraction utilities for scrapers.

These functions pull values out of a live browser page using ordered
selector fallbacks. Markup drifts between page variants and over time, so
a selector that matches nothing is an expected condition: every function
here returns an empty value instead of raising.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, List, Sequence, Any

from . import timing

logger = logging.getLogger(__name__)


# In-page script reading one value from the first element matching a selector.
# Evaluated with a single [selector, attribute] argument.
_READ_VALUE_JS = """
([sel, attr]) => {
    const el = document.querySelector(sel);
    if (!el) return "";
    if (attr === "text") return (el.innerText || "").trim();
    if (attr === "html") return (el.innerHTML || "").trim();
    return (el.getAttribute(attr) || "").trim();
}
"""


class ExtractionStrategy(Enum):
    """
    Statically defined per-element extractors for `extract_all`.

    Each member maps to a fixed in-page script; no script is ever built
    from data at run time.
    """
    TEXT = "text"
    HREF = "href"
    IMAGE_SRC = "image_src"
    KEY_VALUE = "key_value"


_STRATEGY_JS = {
    ExtractionStrategy.TEXT: """
        (sel) => Array.from(document.querySelectorAll(sel))
            .map(el => (el.innerText || "").trim())
            .filter(Boolean)
    """,
    ExtractionStrategy.HREF: """
        (sel) => Array.from(document.querySelectorAll(sel))
            .map(el => (el.href || el.getAttribute("href") || "").trim())
            .filter(Boolean)
    """,
    ExtractionStrategy.IMAGE_SRC: """
        (sel) => Array.from(document.querySelectorAll(sel))
            .map(img => img.src || (img.dataset && img.dataset.src) || "")
            .filter(Boolean)
    """,
    ExtractionStrategy.KEY_VALUE: """
        (sel) => Array.from(document.querySelectorAll(sel))
            .map(row => {
                const label = row.querySelector("dt, .label, .attr-name");
                const value = row.querySelector("dd, .value, .attr-value");
                if (!label || !value) return null;
                const k = (label.innerText || "").trim();
                const v = (value.innerText || "").trim();
                return k && v ? [k, v] : null;
            })
            .filter(Boolean)
    """,
}

_LINKS_JS = """
(pattern) => Array.from(document.querySelectorAll("a[href]"))
    .map(a => a.href.trim())
    .filter(h => h.includes(pattern) && h.startsWith("https://"))
"""

_SCROLL_HEIGHT_JS = "() => document.body.scrollHeight"
_SCROLL_BY_JS = "(step) => window.scrollBy(0, step)"


async def try_extract(page, locator: str, attribute: str = "text") -> Optional[str]:
    """
    Read one value with a single locator.

    Args:
        page: Browser page
        locator: CSS selector
        attribute: 'text', 'html' or an attribute name

    Returns:
        The trimmed value, "" if nothing matched, or None if the page or
        locator raised
    """
    try:
        value = await page.evaluate(_READ_VALUE_JS, [locator, attribute])
    except Exception as e:
        logger.debug(f"Locator {locator!r} failed: {e}")
        return None
    if not isinstance(value, str):
        return ""
    return value.strip()


async def extract_first(page, locators: Sequence[str], attribute: str = "text") -> str:
    """
    Try multiple CSS selectors until one returns a value.

    Args:
        page: Browser page
        locators: Ordered CSS selectors to try
        attribute: 'text', 'html' or an attribute name ('href', 'src', ...)

    Returns:
        First non-empty value, or "" if every locator missed or failed
    """
    for locator in locators:
        value = await try_extract(page, locator, attribute)
        if value:
            return value
    return ""


async def extract_all(page, selector: str, strategy: ExtractionStrategy) -> List[Any]:
    """
    Extract a value from every element matching `selector`.

    Args:
        page: Browser page
        selector: CSS selector
        strategy: Which fixed extractor to run on each element

    Returns:
        List of extracted values; empty if the selector matched nothing or failed
    """
    try:
        values = await page.evaluate(_STRATEGY_JS[strategy], selector)
    except Exception as e:
        logger.debug(f"extract_all({selector!r}, {strategy.value}) failed: {e}")
        return []
    return list(values or [])


async def extract_links(page, pattern: str) -> List[str]:
    """
    Extract all absolute https links whose href contains `pattern`.

    Returns:
        Links deduplicated in first-seen order
    """
    try:
        links = await page.evaluate(_LINKS_JS, pattern)
    except Exception as e:
        logger.debug(f"extract_links({pattern!r}) failed: {e}")
        return []
    return list(dict.fromkeys(links or []))


async def wait_for_any(page, selectors: Sequence[str], timeout: float = 10.0) -> Optional[str]:
    """
    Wait for any of the given selectors to appear.

    Args:
        page: Browser page
        selectors: CSS selectors to wait for
        timeout: Seconds to wait

    Returns:
        The selector that matched first, or None
    """
    async def _wait(selector: str) -> str:
        await page.wait_for_selector(selector, timeout=int(timeout * 1000))
        return selector

    tasks = [asyncio.ensure_future(_wait(sel)) for sel in selectors]
    if not tasks:
        return None
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    pending = set(tasks)
    try:
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            done, pending = await asyncio.wait(pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
            if not done:
                return None
            # A selector that errored just drops out of the race
            for task in done:
                if not task.cancelled() and task.exception() is None:
                    return task.result()
        return None
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def scroll_to_bottom(page, step: int = 300, max_scrolls: int = 20, delay_seconds: float = 0.2) -> int:
    """
    Scroll incrementally to load lazy content.

    Stops when the document height stops changing or after `max_scrolls`.

    Returns:
        Number of scroll steps performed
    """
    scrolls = 0
    last_height = 0
    try:
        while scrolls < max_scrolls:
            height = await page.evaluate(_SCROLL_HEIGHT_JS)
            if height == last_height:
                break
            last_height = height
            await page.evaluate(_SCROLL_BY_JS, step)
            await timing.delay(delay_seconds, delay_seconds + 0.1)
            scrolls += 1
    except Exception as e:
        logger.debug(f"scroll_to_bottom stopped early: {e}")
    return scrolls
