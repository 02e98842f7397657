"""Bounded async retry with an explicit outcome type.

An attempt function receives ``(bail, attempt_number)`` and returns one of
``Success``, ``Retryable`` or ``Terminal``. ``bail`` is simply the ``Terminal``
constructor, so ``return bail(exc)`` stops the loop. Exceptions that escape the
attempt function are treated the same as ``Retryable``.
"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from payrelay.common.logging import logger
from payrelay.common.metrics import retries_total


T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Retryable:
    error: BaseException


@dataclass(frozen=True)
class Terminal:
    error: BaseException


Outcome = Union[Success[T], Retryable, Terminal]
Bail = Callable[[BaseException], Terminal]
AttemptFn = Callable[[Bail, int], Awaitable[Outcome]]


class RetryExhausted(Exception):
    """Raised when every allowed attempt ended in a retryable failure."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{operation} failed after {attempts} attempt(s): {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    max_elapsed: float = 30.0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following `attempt` (1-based)."""

        delay = min(self.max_delay, self.base_delay * 2 ** (attempt - 1))
        if self.jitter:
            # Full jitter keeps concurrent retries from lining up.
            return random.uniform(0, delay)
        return delay

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            max_elapsed=settings.retry_max_elapsed_seconds,
        )


async def run_with_retry(
    attempt_fn: AttemptFn,
    policy: RetryPolicy,
    *,
    operation: str,
    service_name: str = "payrelay",
    dependency: str = "external",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Any:
    """Run `attempt_fn` until it succeeds, bails, or the policy is spent.

    Attempts never overlap. `Terminal` errors are raised as-is; exhausting the
    policy raises `RetryExhausted` chained from the last retryable error.
    """

    started = clock()
    attempt = 1
    while True:
        try:
            outcome = await attempt_fn(Terminal, attempt)
        except Exception as exc:
            outcome = Retryable(exc)

        match outcome:
            case Success(value=value):
                if attempt > 1:
                    logger.info("%s succeeded attempt=%s", operation, attempt)
                return value
            case Terminal(error=error):
                logger.error("%s bailed attempt=%s cause=%r", operation, attempt, error)
                raise error
            case Retryable(error=error):
                logger.warning("%s failed attempt=%s cause=%r", operation, attempt, error)
            case _:
                raise TypeError(f"attempt returned {outcome!r}, expected an outcome")

        if attempt >= policy.max_attempts:
            raise RetryExhausted(operation, attempt, error) from error
        delay = policy.delay_for(attempt)
        if clock() - started + delay > policy.max_elapsed:
            logger.warning("%s retry budget of %ss spent", operation, policy.max_elapsed)
            raise RetryExhausted(operation, attempt, error) from error

        retries_total.labels(service=service_name, dependency=dependency).inc()
        logger.debug("%s retrying attempt=%s backoff_s=%.3f", operation, attempt + 1, delay)
        await sleep(delay)
        attempt += 1
