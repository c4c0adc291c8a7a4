"""
Randomized delays.

Every explicit wait in the scraper goes through `pause()` so a run's
pacing can be observed (and skipped in tests) from one place.
"""

import asyncio
import random
from typing import Optional


def jitter(min_seconds: float, max_seconds: Optional[float] = None, rng: Optional[random.Random] = None) -> float:
    """
    Pick a wait duration.

    Args:
        min_seconds: Lower bound (or the exact duration if max_seconds is None)
        max_seconds: Upper bound
        rng: Random source (defaults to the module-level generator)

    Returns:
        Duration in seconds
    """
    if max_seconds is None or max_seconds <= min_seconds:
        return min_seconds
    rng = rng or random
    return min_seconds + rng.random() * (max_seconds - min_seconds)


async def pause(seconds: float) -> None:
    """Suspend the current task for `seconds`."""
    if seconds > 0:
        await asyncio.sleep(seconds)


async def delay(min_seconds: float, max_seconds: Optional[float] = None) -> float:
    """Wait a random duration between min and max seconds. Returns the duration waited."""
    seconds = jitter(min_seconds, max_seconds)
    await pause(seconds)
    return seconds
