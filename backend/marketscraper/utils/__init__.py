"""Shared utilities for scrapers."""

from .timing import jitter, delay, pause
from .extractors import (
    ExtractionStrategy,
    try_extract,
    extract_first,
    extract_all,
    extract_links,
    wait_for_any,
    scroll_to_bottom,
)
from .output import sanitize_filename, save_json, save_html, save_screenshot

__all__ = [
    'jitter',
    'delay',
    'pause',
    'ExtractionStrategy',
    'try_extract',
    'extract_first',
    'extract_all',
    'extract_links',
    'wait_for_any',
    'scroll_to_bottom',
    'sanitize_filename',
    'save_json',
    'save_html',
    'save_screenshot',
]
