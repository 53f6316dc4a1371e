"""Extraction pipeline: one ExtractionJob in, one ResultSet out.

Stages run strictly in sequence (fetch -> parse -> extract). A fetch or
parse failure ends the job with `job_error` set; once extraction has started
the job always completes and problems are reported per record/field.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from prefect.logging import get_logger

from webextract.core.cancel import CancelToken
from webextract.core.config import EngineConfig
from webextract.core.errors import (
    FetchCancelled,
    FetchError,
    JobCancelled,
    ParseError,
    UnparsableURL,
)
from webextract.core.models import (
    ExcludedRecord,
    ExtractionJob,
    FieldRule,
    FieldWarning,
    JobError,
    JobStage,
    Record,
    ResultSet,
    WarningReason,
)
from webextract.core.scraping.fetcher import Fetcher
from webextract.core.scraping.normalizer import normalize_url
from webextract.core.scraping.parser import Document, Node, parse_document
from webextract.core.scraping.retry import RetryingFetcher, RetryPolicy, SupportsFetch
from webextract.core.scraping.selector import (
    extract_text,
    extract_value,
    select,
    select_one,
)

logger = get_logger(__name__)

# (field, reason, detail) collected while building a single record
_Issue = Tuple[str, WarningReason, str]


def _joined_text(scope: Node, rule: FieldRule) -> Tuple[Optional[Node], Optional[str]]:
    nodes = select(scope, rule.selector)
    if not nodes:
        return None, None
    return nodes[0], rule.join.join(extract_text(n) for n in nodes)


def _extract_field(
    scope: Node, rule: FieldRule, base_url: str
) -> Tuple[Optional[str], Optional[_Issue]]:
    if rule.join is not None:
        node, value = _joined_text(scope, rule)
    else:
        node = select_one(scope, rule.selector)
        value = extract_value(node, rule) if node is not None else None
    if node is None:
        return None, (rule.name, WarningReason.SELECTOR_NO_MATCH, rule.selector)

    if value is None:
        return None, (
            rule.name,
            WarningReason.ATTRIBUTE_MISSING,
            f"<{node.tag}> has no {rule.attribute!r} attribute",
        )
    if not rule.allow_empty and not value.strip():
        return None, (rule.name, WarningReason.EMPTY_VALUE, f"<{node.tag}> is empty")

    if rule.link:
        try:
            value = normalize_url(
                value, base_url, rewrite=rule.rewrite, strip_tracking=rule.strip_tracking
            )
        except UnparsableURL as exc:
            # keep the raw value, flag it
            return value, (rule.name, WarningReason.URL_UNPARSABLE, str(exc))
    return value, None


def build_record(
    scope: Node, fields: Tuple[FieldRule, ...], base_url: str
) -> Tuple[Optional[Record], List[_Issue], Optional[_Issue]]:
    """Build one record for `scope`.

    Returns (record, issues, exclusion). When a required field is missing the
    record is None and `exclusion` names the offending field.
    """
    record: Record = {}
    issues: List[_Issue] = []
    for rule in fields:
        value, issue = _extract_field(scope, rule, base_url)
        if value is None:
            if rule.required:
                return None, [], issue
            issues.append(issue)
            continue
        record[rule.name] = value
        if issue is not None:
            issues.append(issue)
    return record, issues, None


def extract_records(document: Document, job: ExtractionJob, base_url: str) -> ResultSet:
    """Apply `job`'s rules to an already parsed document."""
    result = ResultSet(
        job=job.label,
        url=job.request.url,
        final_url=base_url,
        stage=JobStage.EXTRACTING,
        field_names=job.field_names,
    )
    scopes = select(document.root, job.scope_selector)
    for scope_index, scope in enumerate(scopes):
        record, issues, exclusion = build_record(scope, job.fields, base_url)
        if record is None:
            field, reason, _ = exclusion
            result.excluded.append(
                ExcludedRecord(scope_index=scope_index, field=field, reason=reason)
            )
            continue
        record_index = len(result.records)
        result.records.append(record)
        for field, reason, detail in issues:
            result.warnings.append(
                FieldWarning(
                    record_index=record_index, field=field, reason=reason, detail=detail
                )
            )
    result.stage = JobStage.DONE
    return result


class ExtractionPipeline:
    """Runs ExtractionJobs. Holds no per-job state, so one instance can serve
    many jobs concurrently as long as its fetcher can."""

    def __init__(self, fetcher: Optional[SupportsFetch] = None):
        self.fetcher = fetcher or Fetcher()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "ExtractionPipeline":
        fetcher: SupportsFetch = Fetcher()
        if config.retry_attempts > 1:
            fetcher = RetryingFetcher(
                fetcher,
                RetryPolicy(
                    max_attempts=config.retry_attempts,
                    backoff_factor=config.backoff_factor,
                    retry_statuses=config.retry_statuses,
                ),
            )
        return cls(fetcher)

    def _failed(
        self, job: ExtractionJob, stage: JobStage, exc: Exception, final_url=None
    ) -> ResultSet:
        error = JobError.from_exception(stage, exc)
        logger.warning("Job %s failed while %s: %s", job.label, stage.value, error.message)
        return ResultSet(
            job=job.label,
            url=job.request.url,
            final_url=final_url,
            stage=JobStage.FAILED,
            field_names=job.field_names,
            job_error=error,
        )

    def run(self, job: ExtractionJob, cancel: Optional[CancelToken] = None) -> ResultSet:
        logger.debug("Job %s: %s", job.label, JobStage.FETCHING.value)
        try:
            response = self.fetcher.fetch(job.request, cancel)
        except FetchCancelled as exc:
            raise JobCancelled(job.label) from exc
        except FetchError as exc:
            return self._failed(job, JobStage.FETCHING, exc)

        if cancel is not None and cancel.cancelled:
            raise JobCancelled(job.label)

        logger.debug("Job %s: %s %d bytes", job.label, JobStage.PARSING.value, len(response.body))
        try:
            document = parse_document(response.body, response.encoding)
        except ParseError as exc:
            return self._failed(job, JobStage.PARSING, exc, response.final_url)

        logger.debug("Job %s: %s", job.label, JobStage.EXTRACTING.value)
        result = extract_records(document, job, response.final_url)

        if cancel is not None and cancel.cancelled:
            raise JobCancelled(job.label)

        logger.info(
            "Job %s: %d records, %d warnings, %d excluded",
            job.label,
            len(result.records),
            len(result.warnings),
            len(result.excluded),
        )
        return result
