"""
Base classes for the marketplace scraper.

This module defines the data structures shared by every stage of a scrape
run, the exception taxonomy, the observer hooks and the abstract site
adapter that per-marketplace implementations subclass.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def gray(text):
        return f"{Colors.GRAY}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


# ============================================================
# EXCEPTIONS
# ============================================================

class ScraperError(Exception):
    """Base class for scraper failures."""


class BrowserLaunchError(ScraperError):
    """
    The browser could not be started (missing executable, launch crash).

    Retrying cannot fix a missing dependency, so this is fatal for the
    whole run and is never retried.
    """


class BotDefenseError(ScraperError):
    """A page answered with a block or a challenge instead of content."""

    def __init__(self, reason: str, status: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.status = status


class RetryExhaustedError(ScraperError):
    """
    Raised when every attempt of a retried operation failed.

    The message is the most recent failure's reason, not an aggregate.

    Attributes:
        reason: Reason string of the last failed attempt
        attempts: Total number of attempts made
        outcome: Outcome of the last attempt (BLOCKED or ERROR)
        http_status: HTTP status of the last attempt, if any
    """

    def __init__(
        self,
        reason: str,
        attempts: int,
        outcome: 'AttemptOutcome',
        http_status: Optional[int] = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.attempts = attempts
        self.outcome = outcome
        self.http_status = http_status


# ============================================================
# DATA MODEL
# ============================================================

@dataclass(frozen=True)
class SearchRequest:
    """A user search. Immutable once a scrape starts."""
    query: str
    location: Optional[str] = None
    category: Optional[str] = None
    max_pages: int = 5
    scrape_details: bool = False
    sort: Optional[str] = None

    def __post_init__(self):
        if not self.query or not self.query.strip():
            raise ValueError("query must not be empty")
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {self.max_pages}")


class AttemptOutcome(Enum):
    """Terminal state of one page fetch attempt."""
    OK = "ok"
    BLOCKED = "blocked"     # Blocked by status code or challenged by content
    ERROR = "error"         # Transport/script failure


@dataclass(frozen=True)
class PageFetchAttempt:
    """Result of a single attempt inside the retry controller."""
    attempt_number: int
    outcome: AttemptOutcome
    proxy: Optional[str] = None
    http_status: Optional[int] = None
    error_message: Optional[str] = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome is AttemptOutcome.OK

    @classmethod
    def success(cls, attempt_number: int, value: Any, proxy: Optional[str] = None,
                http_status: Optional[int] = None) -> 'PageFetchAttempt':
        return cls(attempt_number, AttemptOutcome.OK, proxy, http_status, None, value)

    @classmethod
    def blocked(cls, attempt_number: int, reason: str, proxy: Optional[str] = None,
                http_status: Optional[int] = None) -> 'PageFetchAttempt':
        return cls(attempt_number, AttemptOutcome.BLOCKED, proxy, http_status, reason)

    @classmethod
    def failed(cls, attempt_number: int, error: str, proxy: Optional[str] = None,
               http_status: Optional[int] = None) -> 'PageFetchAttempt':
        return cls(attempt_number, AttemptOutcome.ERROR, proxy, http_status, error)


# Fields a detail scrape may fill in on a summary listing
DETAIL_FIELDS = ('title', 'price', 'location', 'description', 'seller', 'posted_date')


@dataclass
class Listing:
    """
    One marketplace item.

    Created from a search results card and augmented in place by a detail
    scrape. `url` is the identity key within a run.
    """
    url: str
    title: str = ""
    price: str = ""
    location: str = ""
    image: str = ""

    # Detail page fields
    description: Optional[str] = None
    seller: Optional[str] = None
    posted_date: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    images: List[str] = field(default_factory=list)

    source_query: str = ""
    scraped_at: datetime = field(default_factory=utc_now)

    # Set when the detail scrape for this listing failed
    error: Optional[str] = None

    def merge_details(self, details: Dict[str, Any]) -> None:
        """
        Merge detail page data into this record.

        Empty values never overwrite data from the summary card, and the
        url is never changed (it is the dedup key).
        """
        for name in DETAIL_FIELDS:
            value = details.get(name)
            if value:
                setattr(self, name, value)

        attributes = details.get('attributes') or {}
        if attributes:
            self.attributes.update(attributes)

        for src in details.get('images') or []:
            if src and src not in self.images:
                self.images.append(src)

        if not self.image and self.images:
            self.image = self.images[0]

        self.scraped_at = details.get('scraped_at') or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'url': self.url,
            'title': self.title,
            'price': self.price,
            'location': self.location,
            'image': self.image,
            'description': self.description,
            'seller': self.seller,
            'postedDate': self.posted_date,
            'attributes': dict(self.attributes),
            'images': list(self.images),
            'sourceQuery': self.source_query,
            'scrapedAt': self.scraped_at.isoformat(),
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass(frozen=True)
class PaginationState:
    """Pagination affordance of the currently loaded results page."""
    current_page: int = 1
    total_pages: int = 1
    has_next: bool = False
    next_url: Optional[str] = None


@dataclass(frozen=True)
class ScrapeError:
    """A failure captured as data instead of being raised to the caller."""
    error: str
    page: Optional[int] = None
    query: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.page is not None:
            data['page'] = self.page
        if self.query is not None:
            data['query'] = self.query
        data['error'] = self.error
        return data


class WalkState(Enum):
    """States of the pagination walker."""
    FETCHING = "fetching"
    EXTRACTED = "extracted"
    DONE = "done"


@dataclass
class WalkResult:
    """Everything one pagination walk produced for a single query variant."""
    query: str
    listings: List[Listing] = field(default_factory=list)
    errors: List[ScrapeError] = field(default_factory=list)
    pages_scraped: int = 0
    state: WalkState = WalkState.DONE


@dataclass
class ScrapeReport:
    """Terminal artifact of one run. Owned by the caller once returned."""
    query: str
    location: Optional[str] = None
    expanded_queries: List[str] = field(default_factory=list)
    listings: List[Listing] = field(default_factory=list)
    errors: List[ScrapeError] = field(default_factory=list)
    pages_scraped: int = 0
    pages_by_query: Dict[str, int] = field(default_factory=dict)
    total_pages_fetched: int = 0

    @property
    def total_found(self) -> int:
        return len(self.listings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'query': self.query,
            'location': self.location,
            'expandedQueries': list(self.expanded_queries),
            'listings': [listing.to_dict() for listing in self.listings],
            'errors': [error.to_dict() for error in self.errors],
            'pagesScraped': self.pages_scraped,
            'pagesByQuery': dict(self.pages_by_query),
            'totalPagesFetched': self.total_pages_fetched,
            'totalFound': self.total_found,
        }


@dataclass(frozen=True)
class PageEvent:
    """Payload passed to observers after a results page was extracted."""
    query: str
    page: int
    url: str
    listings: List[Listing]


class ScrapeObserver:
    """
    Progress hooks supplied by the caller.

    Called synchronously, once per event, in event order. The default
    implementation does nothing; override what you need.
    """

    def on_page(self, event: PageEvent) -> None:
        pass

    def on_listing(self, listing: Listing) -> None:
        pass


# ============================================================
# SITE ADAPTER
# ============================================================

class MarketplaceSite(ABC):
    """
    Abstract base class for per-marketplace adapters.

    Subclasses must implement:
    - build_search_url(): URL of one results page for a query
    - extract_listings(): Summary listings from a loaded results page
    - extract_details(): Detail fields from a loaded listing page
    - get_pagination(): Pagination affordance of a loaded results page
    """

    def __init__(self, config):
        """
        Initialize the adapter.

        Args:
            config: SiteConfig for this marketplace
        """
        self.config = config
        self.logger = logging.getLogger(f"scraper.{config.short_name}")

    @property
    def key(self) -> str:
        return self.config.short_name

    @property
    def home_url(self) -> str:
        return self.config.home_url

    @abstractmethod
    def build_search_url(self, request: SearchRequest, query: str, page: int = 1) -> str:
        """
        Build the results page URL.

        Args:
            request: The search request (location, category, sort)
            query: Query variant to search for
            page: 1-based page number

        Returns:
            Absolute URL
        """
        pass

    @abstractmethod
    async def extract_listings(self, page, query: str) -> List[Listing]:
        """Extract summary listings from a loaded results page."""
        pass

    @abstractmethod
    async def extract_details(self, page) -> Dict[str, Any]:
        """Extract detail fields from a loaded listing page."""
        pass

    @abstractmethod
    async def get_pagination(self, page) -> PaginationState:
        """Read the pagination affordance of a loaded results page."""
        pass
