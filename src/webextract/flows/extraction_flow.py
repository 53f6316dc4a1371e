"""
Web extraction flow (demo driver)

Builds one ExtractionJob per requested site (or takes job definitions as
plain dicts), runs them concurrently on a bounded Prefect task runner and
prints the first N records of each result.

Overview:

1. Validate the engine config (timeout, user agent, workers, retries).
2. Resolve site names through the registry and validate raw job dicts.
3. Submit one `run_extraction_task` per job; at most `max_workers` run at
   the same time.
4. Print a short summary per job and return every ResultSet untruncated.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from prefect import flow, get_run_logger
from prefect.task_runners import ThreadPoolTaskRunner

from webextract.core.config import EngineConfig
from webextract.core.models import ExtractionJob, ResultSet
from webextract.core.pipeline import ExtractionPipeline
from webextract.core.scraping.prefect_tasks import run_extraction_task
from webextract.flows.render import format_result
from webextract.sites import available_sites, build_job


@flow(
    name="Web Extraction",
    log_prints=True,
    task_runner=ThreadPoolTaskRunner(max_workers=4),
)
def extraction_flow(
    sites: Optional[List[str]] = None,
    jobs: Optional[List[Dict[str, Any]]] = None,
    config: Optional[Dict[str, Any]] = None,
    limit: int = 5,
) -> List[ResultSet]:
    logger = get_run_logger()
    try:
        engine = EngineConfig(**(config or {}))
    except Exception as e:
        logger.error("Invalid engine config: %s", e)
        raise

    all_jobs: List[ExtractionJob] = [build_job(name, engine) for name in sites or []]
    all_jobs += [ExtractionJob.model_validate(d) for d in jobs or []]
    if not all_jobs:
        logger.warning("Nothing to extract: no sites or jobs given")
        return []

    pipeline = ExtractionPipeline.from_config(engine)
    futures = [run_extraction_task.submit(job, pipeline) for job in all_jobs]
    results = [f.result() for f in futures]

    for result in results:
        print(format_result(result, limit))

    failed = sum(1 for r in results if not r.ok)
    logger.info("Finished %d jobs (%d failed)", len(results), failed)
    return results


def run_extraction(
    sites: Optional[List[str]] = None,
    jobs: Optional[List[Dict[str, Any]]] = None,
    config: Optional[EngineConfig] = None,
    limit: int = 5,
) -> List[ResultSet]:
    """Run the flow with its task runner sized from `config.max_workers`."""
    engine = config or EngineConfig.from_env()
    sized = extraction_flow.with_options(
        task_runner=ThreadPoolTaskRunner(max_workers=engine.max_workers)
    )
    return sized(sites=sites, jobs=jobs, config=engine.model_dump(), limit=limit)


# ==========================================
# LOCAL RUN
# ==========================================
if __name__ == "__main__":
    run_extraction(sites=available_sites())
