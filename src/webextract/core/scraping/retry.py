"""Bounded retry wrapper around a fetcher.

Attempt accounting and backoff reuse urllib3's `Retry` (the same knobs the
requests `HTTPAdapter` takes), but retries happen here, above the Fetcher,
so the Fetcher itself stays single-shot.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple

from prefect.logging import get_logger
from urllib3.exceptions import MaxRetryError
from urllib3.util.retry import Retry

from webextract.core.cancel import CancelToken
from webextract.core.errors import (
    BadStatus,
    FetchCancelled,
    FetchError,
    FetchTimeout,
    NetworkError,
)
from webextract.core.models import FetchRequest, FetchResponse

logger = get_logger(__name__)


class SupportsFetch(Protocol):
    def fetch(
        self, request: FetchRequest, cancel: Optional[CancelToken] = None
    ) -> FetchResponse: ...


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_factor: float = 0.3
    retry_statuses: Tuple[int, ...] = (429, 500, 502, 503, 504)
    backoff_max: float = 30.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def to_retry(self) -> Retry:
        retry = Retry(
            total=self.max_attempts - 1,
            status_forcelist=self.retry_statuses,
            allowed_methods=frozenset(["GET"]),
            backoff_factor=self.backoff_factor,
            raise_on_status=False,
        )
        # urllib3 2.x takes backoff_max in the constructor, 1.x as a class attribute
        retry.backoff_max = self.backoff_max
        return retry

    def is_retryable(self, exc: FetchError) -> bool:
        if isinstance(exc, FetchCancelled):
            return False
        if isinstance(exc, BadStatus):
            return exc.code in self.retry_statuses
        return isinstance(exc, (NetworkError, FetchTimeout))


class RetryingFetcher:
    """Same contract as `Fetcher.fetch`, retrying transient failures."""

    def __init__(self, fetcher: SupportsFetch, policy: Optional[RetryPolicy] = None):
        self.fetcher = fetcher
        self.policy = policy or RetryPolicy()

    def fetch(
        self, request: FetchRequest, cancel: Optional[CancelToken] = None
    ) -> FetchResponse:
        retry = self.policy.to_retry()
        attempt = 0
        while True:
            attempt += 1
            try:
                return self.fetcher.fetch(request, cancel)
            except FetchError as exc:
                if not self.policy.is_retryable(exc):
                    raise
                try:
                    retry = retry.increment(method="GET", url=request.url, error=exc)
                except MaxRetryError:
                    logger.warning(
                        "Giving up on %s after %d attempts: %s",
                        request.url,
                        attempt,
                        exc.message,
                    )
                    raise exc from None
                delay = retry.get_backoff_time()
                logger.info(
                    "Retrying %s (attempt %d/%d) in %.2fs: %s",
                    request.url,
                    attempt + 1,
                    self.policy.max_attempts,
                    delay,
                    exc.message,
                )
                if cancel is not None:
                    if cancel.wait(delay):
                        raise FetchCancelled(request.url) from exc
                elif delay > 0:
                    time.sleep(delay)
