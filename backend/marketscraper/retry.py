"""
Retry/backoff controller with proxy rotation.

Wraps one unit of work (a page fetch) with bounded retries. Transport
failures (exceptions) and bot-defense failures (a returned non-OK
PageFetchAttempt) are retried the same way; only the terminal error keeps
the distinguishing reason.
"""

import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Any

from .base import (
    BrowserLaunchError,
    PageFetchAttempt,
    RetryExhaustedError,
)
from .proxies import ProxyPool
from .utils import timing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryContext:
    """What an attempt needs to know about itself."""
    attempt_number: int         # 1-based
    proxy: Optional[str] = None


@dataclass(frozen=True)
class BackoffPolicy:
    """Wait before retry = base + attempt_index * step + uniform(0, jitter)."""
    base: float = 1.0
    step: float = 0.5
    jitter: float = 0.5

    @classmethod
    def from_settings(cls, settings) -> 'BackoffPolicy':
        return cls(settings.backoff_base, settings.backoff_step, settings.backoff_jitter)

    def compute(self, attempt_index: int, rng: Optional[random.Random] = None) -> float:
        rng = rng or random
        return self.base + attempt_index * self.step + rng.random() * self.jitter


AttemptFn = Callable[[RetryContext], Awaitable[PageFetchAttempt]]
ReleaseFn = Callable[[], Awaitable[Any]]


async def with_retry(
    attempt_fn: AttemptFn,
    *,
    retries: int = 2,
    proxy_pool: Optional[ProxyPool] = None,
    initial_proxy: Optional[str] = None,
    release: Optional[ReleaseFn] = None,
    backoff: Optional[BackoffPolicy] = None,
    label: str = "operation",
) -> PageFetchAttempt:
    """
    Execute with retry logic and optional proxy rotation.

    Args:
        attempt_fn: Async function taking a RetryContext and returning a PageFetchAttempt
        retries: Number of retries after the first attempt
        proxy_pool: Pool to draw a fresh random proxy from before each retry
        initial_proxy: Proxy for the first attempt
        release: Awaited after every failed attempt to free its resources
        backoff: Backoff policy (defaults to 1s + 0.5s/attempt + 0-0.5s jitter)
        label: Name used in log lines

    Returns:
        The successful PageFetchAttempt

    Raises:
        RetryExhaustedError: After `retries + 1` failed attempts, carrying the last reason
        BrowserLaunchError: Immediately, without retrying
    """
    backoff = backoff or BackoffPolicy()
    total_attempts = max(0, retries) + 1
    proxy = initial_proxy
    last: Optional[PageFetchAttempt] = None

    for attempt_index in range(total_attempts):
        attempt_number = attempt_index + 1
        if attempt_index > 0 and proxy_pool:
            proxy = proxy_pool.random()

        context = RetryContext(attempt_number=attempt_number, proxy=proxy)
        try:
            result = await attempt_fn(context)
        except BrowserLaunchError:
            await _release(release)
            raise
        except Exception as e:
            result = PageFetchAttempt.failed(attempt_number, str(e) or type(e).__name__, proxy)
        except BaseException:
            # Cancellation: free the attempt's resources, then propagate
            await _release(release)
            raise

        if result.ok:
            if attempt_number > 1:
                logger.info(f"{label} succeeded on attempt {attempt_number}/{total_attempts}")
            return result
        last = result

        logger.warning(
            f"Attempt {attempt_number}/{total_attempts} failed for {label}: {last.error_message}"
        )
        await _release(release)

        if attempt_index < total_attempts - 1:
            wait = backoff.compute(attempt_index)
            await timing.pause(wait)

    raise RetryExhaustedError(
        reason=last.error_message or "unknown error",
        attempts=total_attempts,
        outcome=last.outcome,
        http_status=last.http_status,
    )


async def _release(release: Optional[ReleaseFn]) -> None:
    if release is None:
        return
    try:
        await release()
    except Exception as e:
        logger.warning(f"Error releasing attempt resources: {e}")
