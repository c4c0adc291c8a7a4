"""Per-marketplace adapter implementations."""

from .gumtree import GumtreeSite, build_search_url

__all__ = ['GumtreeSite', 'build_search_url']
