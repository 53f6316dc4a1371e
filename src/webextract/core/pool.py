"""Bounded worker pool for running independent jobs concurrently.

Each job gets its own CancelToken; nothing mutable is shared between jobs
except the pipeline's fetcher, whose session keeps no cookies between
requests. Per-host rate limiting is left to callers.
"""

from __future__ import annotations

from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Iterable, List, Optional

from prefect.logging import get_logger

from webextract.core.cancel import CancelToken
from webextract.core.config import EngineConfig
from webextract.core.errors import JobCancelled
from webextract.core.models import ExtractionJob, ResultSet
from webextract.core.pipeline import ExtractionPipeline

logger = get_logger(__name__)


class JobHandle:
    def __init__(self, job: ExtractionJob, future: Future, token: CancelToken):
        self.job = job
        self._future = future
        self._token = token

    def cancel(self) -> None:
        """Abort the job; a running fetch is interrupted, a queued job never starts."""
        logger.info("Cancelling job %s", self.job.label)
        self._token.cancel()
        self._future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> ResultSet:
        """The job's ResultSet; raises JobCancelled if it was cancelled."""
        try:
            return self._future.result(timeout)
        except CancelledError:
            raise JobCancelled(self.job.label) from None


class JobPool:
    """
    Usage:
        with JobPool(max_workers=4) as pool:
            handles = [pool.submit(job) for job in jobs]
            results = [h.result() for h in handles]
    """

    def __init__(
        self,
        max_workers: int = 4,
        pipeline: Optional[ExtractionPipeline] = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers
        self.pipeline = pipeline or ExtractionPipeline()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="webextract"
        )

    @classmethod
    def from_config(cls, config: EngineConfig) -> "JobPool":
        return cls(config.max_workers, ExtractionPipeline.from_config(config))

    def submit(self, job: ExtractionJob) -> JobHandle:
        token = CancelToken()
        future = self._executor.submit(self.pipeline.run, job, token)
        return JobHandle(job, future, token)

    def shutdown(self, cancel_pending: bool = False) -> None:
        self._executor.shutdown(wait=True, cancel_futures=cancel_pending)

    def __enter__(self) -> "JobPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(cancel_pending=exc_type is not None)


def run_jobs(
    jobs: Iterable[ExtractionJob],
    max_workers: int = 4,
    pipeline: Optional[ExtractionPipeline] = None,
) -> List[ResultSet]:
    """Run jobs on a bounded pool; results come back in input order."""
    with JobPool(max_workers, pipeline) as pool:
        handles = [pool.submit(job) for job in jobs]
        return [h.result() for h in handles]
