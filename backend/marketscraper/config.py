"""
Site configurations for supported marketplaces.

Each site has a SiteConfig that defines:
- Landing page used to warm up a browsing session
- Search URL base and the link pattern of listing pages
- Ordered CSS selector fallbacks per extracted field
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class SiteConfig:
    """Configuration for a marketplace."""
    name: str                           # Full display name
    short_name: str                     # Identifier used in logs and registry
    base_url: str                       # Search URLs are built on this
    home_url: str                       # Landing page for session warm-up
    listing_link_pattern: str           # Substring identifying listing page hrefs
    selectors: Dict[str, Tuple[str, ...]] = field(default_factory=dict)  # Ordered fallbacks
    enabled: bool = True


# ============================================================
# SITE CONFIGURATIONS
# ============================================================

SITES = {
    'gumtree': SiteConfig(
        name='Gumtree Australia',
        short_name='gumtree',
        base_url='https://www.gumtree.com.au',
        home_url='https://www.gumtree.com.au/',
        listing_link_pattern='/s-ad/',
        selectors={
            # Search results page
            'card': (
                '[data-testid="listing-card"]',
                '.user-ad-row',
                '.listing-card',
            ),
            'card_title': ('h2', 'h3', '.listing-title', '[data-testid="listing-title"]'),
            'card_price': ('.listing-price', '[data-testid="listing-price"]', '.price'),
            'card_location': ('.listing-location', '[data-testid="listing-location"]', '.location'),
            'pagination': ('.pagination', '[data-testid="pagination"]', '.pager'),

            # Listing detail page
            'title': (
                'h1',
                "[data-testid='listing-title']",
                '.listing-title',
                '.ad-title',
            ),
            'price': (
                "[data-testid='listing-price']",
                '.listing-price',
                '.price',
                "[itemprop='price']",
            ),
            'location': (
                "[data-testid='listing-location']",
                '.listing-location',
                '.location',
                "[itemprop='address']",
            ),
            'description': (
                "[data-testid='listing-description']",
                '.listing-description',
                '.description',
                "[itemprop='description']",
            ),
            'seller': (
                "[data-testid='seller-name']",
                '.seller-name',
                '.seller-info .name',
            ),
            'posted_date': (
                "[data-testid='listing-date']",
                '.listing-date',
                '.posted-date',
                'time',
            ),
            'attribute_rows': (
                '.attribute-row',
                '[data-testid="attribute"]',
                '.specs-row',
            ),
            'gallery_images': (
                '.gallery img',
                '.carousel img',
                '[data-testid="gallery"] img',
            ),
        },
    ),
}


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_site_config(site_key: str) -> SiteConfig:
    """
    Get configuration for a site by its key.

    Args:
        site_key: Site identifier (e.g., 'gumtree')

    Returns:
        SiteConfig for the site

    Raises:
        ValueError: If site_key is not found
    """
    if site_key not in SITES:
        valid_keys = ', '.join(sorted(SITES.keys()))
        raise ValueError(f"Unknown site: '{site_key}'. Valid sites: {valid_keys}")
    return SITES[site_key]


def get_enabled_sites() -> dict:
    """Get all enabled sites."""
    return {k: v for k, v in SITES.items() if v.enabled}


def list_sites() -> list:
    """List all site keys."""
    return list(SITES.keys())
