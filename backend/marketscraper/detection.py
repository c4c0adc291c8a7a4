"""
Blocking and challenge detection.

Classifies a loaded page as clean, blocked (by status code) or challenged
(by an interstitial such as Cloudflare's "Just a moment..."). Both failure
verdicts carry a reason string so logs and error records can tell
bot-defense apart from network faults.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from bs4 import BeautifulSoup
import logging

logger = logging.getLogger(__name__)

BLOCKED_STATUS_CODES = frozenset({403, 429, 503})

CHALLENGE_TITLE_MARKERS = ("just a moment", "attention required")
CHALLENGE_BODY_MARKERS = ("checking your browser", "cloudflare")
CHALLENGE_ELEMENT_SELECTORS = ("#challenge-form", "#cf-challenge-running", ".cf-browser-verification")


class Verdict(Enum):
    """Page classification."""
    CLEAN = "clean"
    BLOCKED = "blocked"
    CHALLENGED = "challenged"


@dataclass(frozen=True)
class Classification:
    """Verdict plus the evidence behind it."""
    verdict: Verdict
    status: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_clean(self) -> bool:
        return self.verdict is Verdict.CLEAN

    @classmethod
    def clean(cls, status: Optional[int] = None) -> 'Classification':
        return cls(Verdict.CLEAN, status)

    @classmethod
    def blocked(cls, status: int) -> 'Classification':
        return cls(Verdict.BLOCKED, status, f"Blocked (HTTP {status})")

    @classmethod
    def challenged(cls, signal: str, status: Optional[int] = None) -> 'Classification':
        return cls(Verdict.CHALLENGED, status, f"Challenge detected ({signal})")


@dataclass(frozen=True)
class PageSignals:
    """What the detector looks at."""
    status: Optional[int] = None
    title: str = ""
    body_text: str = ""
    has_challenge_marker: bool = False

    @classmethod
    def from_html(cls, status: Optional[int], html: str) -> 'PageSignals':
        """
        Build signals from raw page HTML.

        Script and style contents are dropped so only visible text is
        matched (similar to innerText).
        """
        soup = BeautifulSoup(html or "", 'html.parser')
        title = soup.title.get_text(strip=True) if soup.title else ""

        has_marker = any(soup.select_one(sel) is not None for sel in CHALLENGE_ELEMENT_SELECTORS)

        for tag in soup(['script', 'style', 'noscript', 'template']):
            tag.decompose()
        body = soup.body or soup
        body_text = body.get_text(" ", strip=True)

        return cls(status=status, title=title, body_text=body_text, has_challenge_marker=has_marker)


def classify(signals: PageSignals) -> Classification:
    """
    Classify a loaded page.

    A challenge title wins over the status code, so a "Just a moment..."
    interstitial served with 403 or 503 is still a challenge. Otherwise a
    block status is BLOCKED before the marker element and body text are
    looked at: Cloudflare's own block page mentions "cloudflare" too.

    Args:
        signals: Status, title, visible text and marker presence

    Returns:
        Classification (CLEAN, BLOCKED(status) or CHALLENGED)
    """
    title = (signals.title or "").lower()
    body = (signals.body_text or "").lower()

    for marker in CHALLENGE_TITLE_MARKERS:
        if marker in title:
            return Classification.challenged(f"title contains '{marker}'", signals.status)

    if signals.status in BLOCKED_STATUS_CODES:
        return Classification.blocked(signals.status)

    if signals.has_challenge_marker:
        return Classification.challenged("challenge form present", signals.status)

    for marker in CHALLENGE_BODY_MARKERS:
        if marker in body:
            return Classification.challenged(f"body contains '{marker}'", signals.status)

    return Classification.clean(signals.status)


async def read_signals(page, status: Optional[int]) -> PageSignals:
    """Collect detector signals from a live page."""
    html = await page.content()
    return PageSignals.from_html(status, html)


async def classify_page(page, status: Optional[int]) -> Classification:
    """Read signals from `page` and classify them."""
    classification = classify(await read_signals(page, status))
    if not classification.is_clean:
        logger.warning(f"{classification.reason} at {getattr(page, 'url', '?')}")
    return classification
