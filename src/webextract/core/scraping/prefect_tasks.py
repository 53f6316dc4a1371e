"""Prefect tasks wrapping the extraction pipeline.

One task run == one extraction job (fetch, parse, extract a single page).
Transient HTTP failures are retried by the `RetryingFetcher` when the engine
config enables it, not by Prefect.
"""

from __future__ import annotations

from typing import Optional

from prefect import get_run_logger, task
from prefect.cache_policies import NONE

from webextract.core.models import ExtractionJob, ResultSet
from webextract.core.pipeline import ExtractionPipeline


@task(name="run_extraction", task_run_name="extract-{job.label}", cache_policy=NONE)
def run_extraction_task(
    job: ExtractionJob, pipeline: Optional[ExtractionPipeline] = None
) -> ResultSet:
    logger = get_run_logger()
    logger.info("Extracting %s from %s", job.label, job.request.url)
    result = (pipeline or ExtractionPipeline()).run(job)
    if result.ok:
        logger.info(
            "Extracted %d records from %s (%d warnings)",
            len(result.records),
            result.final_url,
            len(result.warnings),
        )
    else:
        logger.error(
            "Job %s failed while %s: %s",
            job.label,
            result.job_error.stage.value,
            result.job_error.message,
        )
    return result
