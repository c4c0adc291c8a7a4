"""
Gumtree Australia adapter.

Site structure:
- Search URL: /s-{category}/{location}/{query}/k0?page=N
- Results page: listing cards (`[data-testid="listing-card"]`, `.user-ad-row`)
  linking to `/s-ad/` detail pages; bare `/s-ad/` links as a fallback
- Detail page: title/price/location/description blocks, attribute rows, gallery
- Pagination: `.pagination` with numbered links and a rel=next link
"""

from typing import List, Dict, Any, Optional
from urllib.parse import quote

from ..base import MarketplaceSite, SearchRequest, Listing, PaginationState, utc_now
from ..config import get_site_config
from ..utils.extractors import extract_first, extract_all, ExtractionStrategy


# Reads every listing card. Falls back to bare listing links when no card
# container matched. Argument: {cards, title, price, location, link}, where
# title/price/location are selector arrays tried in order per card.
_LISTINGS_JS = """
(s) => {
    const text = (root, sels) => {
        for (const sel of sels) {
            const el = root.querySelector(sel);
            const value = el ? (el.innerText || "").trim() : "";
            if (value) return value;
        }
        return "";
    };
    const listings = [];
    document.querySelectorAll(s.cards).forEach(card => {
        const link = card.querySelector(`a[href*="${s.link}"]`);
        if (!link) return;
        const img = card.querySelector("img");
        listings.push({
            url: link.href,
            title: text(card, s.title),
            price: text(card, s.price),
            location: text(card, s.location),
            image: img ? (img.src || "") : "",
        });
    });
    if (listings.length === 0) {
        document.querySelectorAll(`a[href*="${s.link}"]`).forEach(a => {
            listings.push({
                url: a.href,
                title: (a.innerText || "").trim(),
                price: "",
                location: "",
                image: "",
            });
        });
    }
    return listings;
}
"""

# Reads the pagination block. Argument: pager selector list
_PAGINATION_JS = """
(sel) => {
    const pager = document.querySelector(sel);
    if (!pager) return null;
    const current = pager.querySelector('.active, .current, [aria-current="page"]');
    const next = pager.querySelector('a[rel="next"], .next:not(.disabled), [aria-label*="Next"]');
    const pages = Array.from(pager.querySelectorAll("a, button"))
        .map(el => parseInt(el.innerText))
        .filter(n => !isNaN(n));
    return {
        currentPage: current ? (parseInt(current.innerText) || 1) : 1,
        totalPages: pages.length > 0 ? Math.max(...pages) : 1,
        hasNext: !!next,
        nextUrl: next && next.href ? next.href : null,
    };
}
"""


def _slug(text: str) -> str:
    """Lowercase, trim and hyphenate whitespace ("North Sydney" -> "north-sydney")."""
    return '-'.join(text.lower().split())


def _encode(text: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent (spaces become %20, not +)."""
    return quote(text, safe="-_.!~*'()")


def build_search_url(
    base_url: str,
    query: str,
    location: Optional[str] = None,
    category: Optional[str] = None,
    page: int = 1,
    sort: Optional[str] = None,
) -> str:
    """
    Build a Gumtree search URL.

    Examples:
        ("iphone")                      -> https://www.gumtree.com.au/s-iphone/k0
        ("bike", location="Sydney")     -> https://www.gumtree.com.au/s-sydney/bike/k0
        ("bike", category="bicycles")   -> https://www.gumtree.com.au/s-bicycles/bike/k0
        ("bike", page=2)                -> https://www.gumtree.com.au/s-bike/k0?page=2
    """
    q = _encode(query.strip())
    loc = _encode(_slug(location)) if location and location.strip() else None

    if loc and category:
        url = f"{base_url}/s-{category}/{loc}/{q}/k0"
    elif loc:
        url = f"{base_url}/s-{loc}/{q}/k0"
    elif category:
        url = f"{base_url}/s-{category}/{q}/k0"
    else:
        url = f"{base_url}/s-{q}/k0"

    params = []
    if page > 1:
        params.append(f"page={page}")
    if sort:
        params.append(f"sort={sort}")
    if params:
        url += '?' + '&'.join(params)
    return url


class GumtreeSite(MarketplaceSite):
    """Adapter for gumtree.com.au."""

    def __init__(self):
        super().__init__(get_site_config('gumtree'))

    def _selector(self, name: str) -> str:
        """Join a field's fallbacks into one CSS selector list (any match, DOM order)."""
        return ', '.join(self.config.selectors.get(name, ()))

    def _fallbacks(self, name: str) -> List[str]:
        return list(self.config.selectors.get(name, ()))

    def build_search_url(self, request: SearchRequest, query: str, page: int = 1) -> str:
        return build_search_url(
            self.config.base_url,
            query,
            location=request.location,
            category=request.category,
            page=page,
            sort=request.sort,
        )

    async def extract_listings(self, page, query: str) -> List[Listing]:
        """
        Extract listing cards from a loaded search results page.

        Cards without a listing link are skipped; duplicate links on the
        same page collapse to the first card.
        """
        raw = await page.evaluate(_LISTINGS_JS, {
            'cards': self._selector('card'),
            'title': self._fallbacks('card_title'),
            'price': self._fallbacks('card_price'),
            'location': self._fallbacks('card_location'),
            'link': self.config.listing_link_pattern,
        })

        scraped_at = utc_now()
        listings: Dict[str, Listing] = {}
        for item in raw or []:
            url = (item.get('url') or '').strip()
            if not url or url in listings:
                continue
            listings[url] = Listing(
                url=url,
                title=item.get('title') or '',
                price=item.get('price') or '',
                location=item.get('location') or '',
                image=item.get('image') or '',
                source_query=query,
                scraped_at=scraped_at,
            )
        return list(listings.values())

    async def extract_details(self, page) -> Dict[str, Any]:
        """Extract detail fields from a loaded listing page."""
        selectors = self.config.selectors
        data: Dict[str, Any] = {}
        for name in ('title', 'price', 'location', 'description', 'seller', 'posted_date'):
            data[name] = await extract_first(page, selectors[name])

        pairs = await extract_all(page, self._selector('attribute_rows'), ExtractionStrategy.KEY_VALUE)
        data['attributes'] = {label: value for label, value in pairs}

        images = await extract_all(page, self._selector('gallery_images'), ExtractionStrategy.IMAGE_SRC)
        data['images'] = list(dict.fromkeys(images))

        data['scraped_at'] = utc_now()
        return data

    async def get_pagination(self, page) -> PaginationState:
        """Read pagination; a page without a pager has no next page."""
        try:
            info = await page.evaluate(_PAGINATION_JS, self._selector('pagination'))
        except Exception as e:
            self.logger.debug(f"Pagination read failed: {e}")
            return PaginationState()
        if not info:
            return PaginationState()
        return PaginationState(
            current_page=int(info.get('currentPage') or 1),
            total_pages=int(info.get('totalPages') or 1),
            has_next=bool(info.get('hasNext')),
            next_url=info.get('nextUrl'),
        )
