"""Bounded retries for transient capability failures, built on tenacity."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from taxbinder.config.settings import Settings
from taxbinder.logging.logger import Log

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    initial_wait_seconds: float = 0.5
    max_wait_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            attempts=settings.capability_retry_attempts,
            max_wait_seconds=settings.capability_retry_max_wait_seconds,
        )


def call_with_retry(
    fn: Callable[[], T],
    *,
    retry_on: tuple[type[BaseException], ...],
    policy: RetryPolicy,
    description: str,
) -> T:
    """Call ``fn``, retrying only the given exception types.

    The last exception is re-raised once attempts are exhausted.
    """

    def _log_retry(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        Log.warning(
            f"{description} failed (attempt {state.attempt_number}/{policy.attempts}), "
            f"retrying: {exc}"
        )

    retrying = Retrying(
        retry=retry_if_exception_type(retry_on),
        stop=stop_after_attempt(max(1, policy.attempts)),
        wait=wait_exponential(
            multiplier=policy.initial_wait_seconds,
            max=policy.max_wait_seconds,
        ),
        before_sleep=_log_retry,
        reraise=True,
    )
    return retrying(fn)
