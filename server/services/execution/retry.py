"""Retry wrapper with exponential backoff around a single node action."""

import asyncio
from typing import Awaitable, Callable, List, Optional, TypeVar

from constants import RETRY_WARNING_PREFIX
from core.logging import get_logger
from .exceptions import FatalStepError
from .models import RetryPolicy

logger = get_logger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class RetriesExhausted(Exception):
    """Every attempt failed. ``__cause__`` is the last error."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(str(last_error))


async def run_with_retry(action: Callable[[], Awaitable[T]],
                         policy: RetryPolicy,
                         logs: List[str],
                         node_id: str = "",
                         sleep: Optional[SleepFn] = None) -> T:
    """Run ``action`` up to ``policy.max_attempts`` times.

    Each failed attempt that still has a successor appends one warning line
    to ``logs`` and waits ``policy.calculate_delay(attempt)`` seconds.
    ``FatalStepError`` propagates immediately without a retry.

    Raises:
        FatalStepError: Non-retryable failure, on the first occurrence
        RetriesExhausted: All attempts failed
    """
    sleep = sleep or asyncio.sleep
    attempt = 0

    while True:
        attempt += 1
        try:
            return await action()
        except asyncio.CancelledError:
            raise  # Propagate cancellation
        except FatalStepError:
            raise
        except Exception as e:
            if not policy.has_attempts_left(attempt):
                logger.error("Retries exhausted", node_id=node_id,
                             attempts=attempt, error=str(e))
                raise RetriesExhausted(attempt, e) from e

            delay = policy.calculate_delay(attempt)
            logs.append(
                f"{RETRY_WARNING_PREFIX} {attempt}/{policy.max_attempts - 1}: "
                f"attempt failed ({e}). Retrying in {delay:g}s..."
            )
            logger.warning("Retrying node after failure",
                           node_id=node_id,
                           attempt=attempt,
                           max_attempts=policy.max_attempts,
                           delay=delay,
                           error=str(e)[:100])
            await sleep(delay)
