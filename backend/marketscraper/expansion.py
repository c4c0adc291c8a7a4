"""
Query expansion.

Turns one search term into a handful of query variants. The language-model
call is optional: without an API key, or when the call fails, a fixed set of
modifier variants is synthesized so a run always has at least one query.
"""

import re
import json
import logging
from typing import List, Optional

import httpx

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Expand search queries for marketplace listings. "
    "Return a JSON array of 5 concise variations only."
)

_JSON_ARRAY = re.compile(r'\[.*\]', re.DOTALL)


class ExpansionError(Exception):
    """The expansion capability could not produce variants."""


class QueryExpander:
    """Interface for expansion backends. Returns raw variants; may raise."""

    async def expand(self, term: str) -> List[str]:
        raise NotImplementedError


class OpenAIQueryExpander(QueryExpander):
    """Expands terms through an OpenAI-compatible chat completions API."""

    def __init__(self, settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            settings: ScraperSettings (key, model, base URL, timeout)
            transport: Optional httpx transport, used to stub the API
        """
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self.base_url = settings.openai_base_url.rstrip('/')
        self.timeout = settings.expansion_timeout
        self.transport = transport

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    async def expand(self, term: str) -> List[str]:
        """
        Ask the model for variants of `term`.

        Raises:
            ExpansionError: No key configured, HTTP failure, or no JSON array in the reply
        """
        if not self.available:
            raise ExpansionError("No API key configured")

        payload = {
            "model": self.model,
            "temperature": 0.4,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f'Expand this term: "{term}"'},
            ],
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                headers={"Authorization": f"Bearer {self.api_key}"},
                transport=self.transport,
            ) as client:
                response = await client.post("/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ExpansionError(f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ExpansionError(str(e) or type(e).__name__) from e

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ExpansionError("Malformed completion response") from e
        return parse_variants(content)


def parse_variants(text: str) -> List[str]:
    """
    Pull the first JSON array out of a model reply.

    Raises:
        ExpansionError: If the reply holds no parseable array
    """
    match = _JSON_ARRAY.search(text or "")
    if not match:
        raise ExpansionError("No JSON array in reply")
    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ExpansionError(f"Invalid JSON array: {e}") from e
    if not isinstance(items, list):
        raise ExpansionError("Reply is not an array")
    return [str(item).strip() for item in items if str(item).strip()]


def fallback_variants(term: str) -> List[str]:
    """Deterministic variants used when expansion is unavailable."""
    term = term.strip()
    return [term, f"used {term}", f"cheap {term}", f"{term} near me"]


def _dedupe(terms: List[str]) -> List[str]:
    seen = set()
    result = []
    for t in terms:
        key = t.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(t.strip())
    return result


async def expand_query(
    term: str,
    expander: Optional[QueryExpander] = None,
    max_variants: int = 5,
) -> List[str]:
    """
    Expand a term into query variants.

    The term itself is always first. Never raises: any expander failure, or
    an empty answer, falls back to `fallback_variants`.

    Args:
        term: User search term
        expander: Expansion backend; fallback only if None
        max_variants: Upper bound on the number of variants (at least 1)

    Returns:
        Distinct variants (case-insensitive), term first
    """
    limit = max(1, max_variants)
    variants: List[str] = []

    if expander is not None:
        try:
            variants = await expander.expand(term)
        except Exception as e:
            logger.warning(f"Query expansion failed for '{term}', using fallback: {e}")
            variants = []

    if not variants:
        variants = fallback_variants(term)

    return _dedupe([term] + list(variants))[:limit]
