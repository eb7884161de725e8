"""Bounded retries for store writes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from gearscout.domain.errors import TransientStoreError

if TYPE_CHECKING:
    from collections.abc import Callable

DEFAULT_RETRY_ATTEMPTS: Final[int] = 3


def store_retrying(attempts: int = DEFAULT_RETRY_ATTEMPTS) -> Retrying:
    return Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        retry=retry_if_exception_type(TransientStoreError),
        reraise=True,
    )


def run_with_retry[T](operation: Callable[[], T], *, attempts: int = DEFAULT_RETRY_ATTEMPTS) -> T:
    """Run ``operation``, retrying transient store failures with exponential backoff."""

    return store_retrying(attempts)(operation)
