"""
Run artifact helpers: JSON reports, page HTML and screenshots.
"""

import json
import re
import logging
from pathlib import Path
from typing import Any, Union

logger = logging.getLogger(__name__)


def sanitize_filename(text: str, max_length: int = 100) -> str:
    """
    Make a string safe to use as a file name.

    Examples:
        "desk lamp" -> "desk_lamp"
        "https://x.com/s-ad/1?a=b" -> "https___x_com_s-ad_1_a_b"
    """
    return re.sub(r'[^a-z0-9_-]', '_', text, flags=re.IGNORECASE)[:max_length]


def save_json(filepath: Union[str, Path], data: Any) -> Path:
    """Write `data` as pretty-printed JSON, creating parent directories."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str, ensure_ascii=False), encoding='utf-8')
    return path


async def save_html(page, filepath: Union[str, Path]) -> Path:
    """Save the current page HTML."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    html = await page.content()
    path.write_text(html, encoding='utf-8')
    return path


async def save_screenshot(page, filepath: Union[str, Path]) -> Path:
    """Save a full-page screenshot."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    await page.screenshot(path=str(path), full_page=True)
    return path
