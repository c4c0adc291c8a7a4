"""
Result aggregation: merges per-variant walk results into one report.
"""

from typing import Dict, Iterable, List

from .base import Listing, ScrapeError, ScrapeReport, SearchRequest, WalkResult


def merge_listings(*batches: Iterable[Listing]) -> List[Listing]:
    """
    Merge listing batches, keeping the first listing seen for each URL.

    Matching is on the exact URL string. Merging a result with itself
    changes nothing.
    """
    merged: Dict[str, Listing] = {}
    for batch in batches:
        for listing in batch:
            if listing.url not in merged:
                merged[listing.url] = listing
    return list(merged.values())


def build_report(
    request: SearchRequest,
    expanded_queries: List[str],
    walk_results: Iterable[WalkResult],
) -> ScrapeReport:
    """
    Build the final report from walk results, in variant order.

    `pages_scraped` is the deepest walk of any variant, so it never exceeds
    `request.max_pages`; the sum over variants is `total_pages_fetched`.

    Args:
        request: The originating search
        expanded_queries: Variants that were run
        walk_results: One WalkResult per variant

    Returns:
        ScrapeReport with deduplicated listings and concatenated errors
    """
    results = list(walk_results)
    errors: List[ScrapeError] = []
    pages_by_query: Dict[str, int] = {}
    for result in results:
        errors.extend(result.errors)
        pages_by_query[result.query] = pages_by_query.get(result.query, 0) + result.pages_scraped

    return ScrapeReport(
        query=request.query,
        location=request.location,
        expanded_queries=list(expanded_queries),
        listings=merge_listings(*(r.listings for r in results)),
        errors=errors,
        pages_scraped=max((r.pages_scraped for r in results), default=0),
        pages_by_query=pages_by_query,
        total_pages_fetched=sum(r.pages_scraped for r in results),
    )
