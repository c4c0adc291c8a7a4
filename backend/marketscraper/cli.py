#!/usr/bin/env python3
"""
Command-line entry point.

Usage:
    cd backend
    python -m marketscraper "term" [location] [options]

Examples:
    python -m marketscraper "desk lamp"                      # One query, up to 5 pages
    python -m marketscraper "desk lamp" Sydney --pages 2     # Location-scoped
    python -m marketscraper "bike" --expand --details        # Variants + detail pages
    python -m marketscraper --list                           # List configured sites
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .base import BrowserLaunchError, Colors, Listing, PageEvent, ScrapeObserver, SearchRequest
from .config import list_sites, get_site_config
from .manager import ScrapeManager, get_site
from .settings import ScraperSettings
from .utils.output import sanitize_filename, save_json


class ConsoleObserver(ScrapeObserver):
    """Prints progress lines as pages and listings come in."""

    def on_page(self, event: PageEvent) -> None:
        print(f"{Colors.cyan('[page]')} '{event.query}' p{event.page}: {len(event.listings)} listings")

    def on_listing(self, listing: Listing) -> None:
        if listing.error:
            print(f"   {Colors.red('✗')} {listing.url} ({listing.error})")
        else:
            print(f"   {Colors.green('✓')} {listing.title or listing.url}")


def list_configured_sites():
    """Print every configured site."""
    print(f"\n{'='*60}")
    print("Available Sites")
    print(f"{'='*60}\n")
    for key in list_sites():
        config = get_site_config(key)
        status = "✅" if config.enabled else "⏳"
        print(f"{status} {key:12} - {config.name} ({config.base_url})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Scrape marketplace listings for a search term')
    parser.add_argument('term', nargs='?', help='Search term (e.g., "desk lamp")')
    parser.add_argument('location', nargs='?', help='Location (e.g., Sydney)')
    parser.add_argument('--site', default='gumtree', help='Site key (default: gumtree)')
    parser.add_argument('--category', help='Category slug')
    parser.add_argument('--sort', help='Site sort order (e.g., price_asc)')
    parser.add_argument('--pages', type=int, default=None, help='Max results pages per query')
    parser.add_argument('--details', action='store_true', help='Also scrape each listing page')
    parser.add_argument('--expand', action='store_true', help='Expand the term into query variants')
    parser.add_argument('--output', default=None, help='Directory for the JSON report')
    parser.add_argument('--list', action='store_true', help='List configured sites')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


async def run_search(args: argparse.Namespace, settings: ScraperSettings) -> int:
    """Run one search and save its report. Returns a process exit code."""
    request = SearchRequest(
        query=args.term,
        location=args.location,
        category=args.category,
        max_pages=args.pages or settings.max_pages,
        scrape_details=args.details,
        sort=args.sort,
    )

    manager = ScrapeManager(settings, site=get_site(args.site), observer=ConsoleObserver())
    try:
        report = await manager.run(request, expand=args.expand)
    except BrowserLaunchError as e:
        print(f"{Colors.red('Browser could not start:')} {e}")
        return 2

    output_dir = Path(args.output) if args.output else settings.output_path
    path = save_json(output_dir / f"{sanitize_filename(request.query)}.json", report.to_dict())

    print(f"\n{'='*60}")
    print(f"Query:     {report.query}")
    print(f"Variants:  {', '.join(report.expanded_queries)}")
    print(f"Pages:     {report.pages_scraped}")
    print(f"Listings:  {report.total_found}")
    print(f"Errors:    {len(report.errors)}")
    for error in report.errors:
        print(f"   {Colors.red('✗')} {error.query or ''} p{error.page or '-'}: {error.error}")
    print(f"Saved to:  {path}")
    print(f"{'='*60}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.list:
        list_configured_sites()
        return 0

    if not args.term:
        parser.print_help()
        print('\nExample: python -m marketscraper "desk lamp" Sydney --pages 2')
        return 1

    if args.pages is not None and args.pages < 1:
        parser.error("--pages must be at least 1")

    return asyncio.run(run_search(args, ScraperSettings()))


if __name__ == '__main__':
    sys.exit(main())
