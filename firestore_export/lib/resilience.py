"""Retry policy for checkpoint storage calls.

Only object-store checkpoint I/O is retried. A failed Firestore page aborts
the run and the Google clients apply their own retry settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import tenacity

__all__ = ["RetryPolicy", "with_retry"]

F = TypeVar("F", bound=Callable[..., Any])
Predicate = Callable[[BaseException], bool]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff settings.

    Attributes:
        max_attempts: Total attempts including the first call
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for any single delay
        jitter: Random extra delay, as a fraction of ``base_delay``
        retry_on: Exception types eligible for retry
        retry_if: Further narrows ``retry_on``; return False for permanent errors
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.5
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    retry_if: Optional[Predicate] = None

    def should_retry(self, exc: BaseException) -> bool:
        if not isinstance(exc, self.retry_on):
            return False
        return self.retry_if is None or bool(self.retry_if(exc))

    def wait(self) -> tenacity.wait.wait_base:
        strategy = tenacity.wait_exponential(
            multiplier=self.base_delay, min=self.base_delay, max=self.max_delay
        )
        if self.jitter > 0:
            strategy = strategy + tenacity.wait_random(0, self.base_delay * self.jitter)
        return strategy


def with_retry(policy: Optional[RetryPolicy] = None) -> Callable[[F], F]:
    """Decorate ``fn`` so transient failures are retried under ``policy``.

    The last exception is re-raised unchanged once attempts run out.

    Example:
        @with_retry(RetryPolicy(max_attempts=5, retry_if=is_transient_s3_error))
        def put(key, body):
            client.put_object(Bucket=bucket, Key=key, Body=body)
    """
    policy = policy or RetryPolicy()

    def decorator(fn: F) -> F:
        fn_logger = logging.getLogger(getattr(fn, "__module__", None) or __name__)
        name = getattr(fn, "__qualname__", type(fn).__name__)

        def log_retry(state: tenacity.RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0
            fn_logger.warning(
                "%s failed (attempt %d of %d): %s; retrying in %.1fs",
                name,
                state.attempt_number,
                policy.max_attempts,
                exc,
                delay,
            )

        retrying = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(policy.max_attempts),
            wait=policy.wait(),
            retry=tenacity.retry_if_exception(policy.should_retry),
            before_sleep=log_retry,
            reraise=True,
        )

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return retrying.copy()(fn, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
