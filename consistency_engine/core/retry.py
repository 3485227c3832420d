"""
Reusable retry policy with exponential backoff.

Built on tenacity. The policy is independent of consistency scoring and
can wrap any call whose failures are classified by ErrorCode: only
externally caused, transient failures are retried by default.
"""

import functools
import logging
import time
from typing import Any, Callable, TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from consistency_engine.core.exceptions import ConsistencyEngineError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable_error(error: BaseException) -> bool:
    """Return True for transient, externally caused engine errors.

    Scoring errors (dimension mismatch, no entities, ...) and anything that
    is not an engine error are never retried.
    """
    return isinstance(error, ConsistencyEngineError) and error.retryable


class RetryPolicy:
    """Exponential-backoff retry policy.

    The delay before retry n (1-based) is
    ``min(base_delay * multiplier ** (n - 1), max_delay)`` plus a uniform
    random jitter in ``[0, jitter]``.

    Example:
        policy = RetryPolicy(max_attempts=3, base_delay=1.0)
        embedding = policy.call(extractor.extract_embedding, url, "image")

        @policy
        def fetch():
            ...
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        max_delay: float = 10.0,
        jitter: float = 0.0,
        retryable: Callable[[BaseException], bool] = is_retryable_error,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the policy.

        Args:
            max_attempts: Total attempts including the first call.
            base_delay: Delay in seconds before the first retry.
            multiplier: Growth factor applied per retry.
            max_delay: Upper bound for the exponential part of the delay.
            jitter: Upper bound of random seconds added to each delay.
            retryable: Predicate deciding whether an exception is retried.
            sleep: Sleep function (injectable for tests).
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay < 0 or max_delay < 0 or jitter < 0:
            raise ValueError("Delays must be non-negative")
        if multiplier < 1:
            raise ValueError("multiplier must be at least 1")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self.retryable = retryable
        self.sleep = sleep

    @classmethod
    def from_config(cls, config: Any, **overrides: Any) -> "RetryPolicy":
        """Build a policy from a RetryConfig model."""
        params = {
            "max_attempts": config.max_attempts,
            "base_delay": config.base_delay,
            "multiplier": config.multiplier,
            "max_delay": config.max_delay,
            "jitter": config.jitter,
        }
        params.update(overrides)
        return cls(**params)

    def delay_for(self, retry_number: int) -> float:
        """Return the delay (without jitter) before the given retry."""
        return min(
            self.base_delay * self.multiplier ** (retry_number - 1),
            self.max_delay,
        )

    def retrying(self) -> Retrying:
        """Create a tenacity controller configured with this policy."""
        wait = wait_exponential(
            multiplier=self.base_delay,
            exp_base=self.multiplier,
            max=self.max_delay,
        )
        if self.jitter > 0:
            wait = wait + wait_random(0, self.jitter)

        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait,
            retry=retry_if_exception(self.retryable),
            sleep=self.sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call ``fn`` under this policy.

        Non-retryable errors propagate immediately; when attempts are
        exhausted the last error is re-raised unchanged.
        """
        return self.retrying()(fn, *args, **kwargs)

    def __call__(self, fn: Callable[..., T]) -> Callable[..., T]:
        """Use the policy as a decorator."""

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return self.call(fn, *args, **kwargs)

        return wrapper
