"""Data model shared by the fetch/parse/extract stages.

Caller-supplied values (requests, rules, jobs) are frozen pydantic models so
a job definition can be built once and reused from several worker threads.
Selectors are compiled while the model is validated, so a typo in a selector
is reported when the job is defined rather than halfway through a run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from webextract.core.errors import FetchError, InvalidSelector, ParseError

Record = Dict[str, str]

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def _check_selector(v: str) -> str:
    # imported here: the scraping package itself depends on these models
    from webextract.core.scraping.selector import compile_selector

    try:
        compile_selector(v)
    except InvalidSelector as exc:
        raise ValueError(str(exc)) from exc
    return v


class FetchRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    timeout: float = Field(default=10.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("url")
    def url_must_be_http(cls, v):
        v = v.strip()
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(f"only http(s) URLs can be fetched, got {v!r}")
        return v

    def header_map(self) -> Dict[str, str]:
        base = {"User-Agent": self.user_agent}
        base.update(self.headers)
        return base


@dataclass(frozen=True)
class FetchResponse:
    status_code: int
    body: bytes
    final_url: str
    encoding: Optional[str] = None
    content_type: Optional[str] = None


class UrlRewrite(BaseModel):
    """Site-specific prefix rule: `prefix...` becomes `base + prefix...`.

    Hacker News links to its own discussion pages with bare `item?id=123`
    hrefs; `UrlRewrite(prefix="item?id=", base="https://news.ycombinator.com/")`
    turns them into canonical absolute links.
    """

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(min_length=1)
    base: str

    def apply(self, raw: str) -> Optional[str]:
        if raw.startswith(self.prefix):
            return self.base + raw
        return None


class FieldRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    # "" selects the scope node itself
    selector: str = ""
    extract: Literal["text", "attribute"] = "text"
    attribute: Optional[str] = None
    required: bool = False
    link: bool = False
    rewrite: Optional[UrlRewrite] = None
    allow_empty: bool = True
    strip_tracking: bool = False
    # text fields only: join the text of every match instead of taking the first
    join: Optional[str] = None

    @field_validator("selector")
    def selector_must_compile(cls, v):
        v = v.strip()
        return _check_selector(v) if v else v

    @model_validator(mode="after")
    def check_extract_mode(self):
        if self.extract == "attribute" and not self.attribute:
            raise ValueError(f"field {self.name!r}: attribute extraction needs `attribute`")
        if self.extract == "text" and self.attribute:
            raise ValueError(f"field {self.name!r}: `attribute` given for a text field")
        if self.join is not None and self.extract != "text":
            raise ValueError(f"field {self.name!r}: `join` only applies to text fields")
        if (self.rewrite is not None or self.strip_tracking) and not self.link:
            raise ValueError(f"field {self.name!r}: URL options require link=True")
        return self

    @classmethod
    def text(cls, name: str, selector: str = "", **kwargs) -> "FieldRule":
        return cls(name=name, selector=selector, extract="text", **kwargs)

    @classmethod
    def attr(cls, name: str, selector: str, attribute: str, **kwargs) -> "FieldRule":
        return cls(
            name=name, selector=selector, extract="attribute", attribute=attribute, **kwargs
        )

    @classmethod
    def href(cls, name: str, selector: str = "", **kwargs) -> "FieldRule":
        """Link-valued `href` attribute, resolved against the page URL."""
        return cls(
            name=name,
            selector=selector,
            extract="attribute",
            attribute="href",
            link=True,
            **kwargs,
        )


class ExtractionJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    request: FetchRequest
    scope_selector: str = Field(min_length=1)
    fields: Tuple[FieldRule, ...] = Field(min_length=1)

    @field_validator("scope_selector")
    def scope_must_compile(cls, v):
        return _check_selector(v.strip())

    @field_validator("fields")
    def field_names_unique(cls, v):
        seen = set()
        for rule in v:
            if rule.name in seen:
                raise ValueError(f"duplicate field name {rule.name!r}")
            seen.add(rule.name)
        return v

    @property
    def label(self) -> str:
        return self.name or self.request.url

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


class WarningReason(str, Enum):
    SELECTOR_NO_MATCH = "selector-no-match"
    ATTRIBUTE_MISSING = "attribute-missing"
    URL_UNPARSABLE = "url-unparsable"
    EMPTY_VALUE = "empty-value"


class FieldWarning(BaseModel):
    record_index: int
    field: str
    reason: WarningReason
    detail: str = ""


class ExcludedRecord(BaseModel):
    """A scope node dropped because a required field could not be extracted."""

    scope_index: int
    field: str
    reason: WarningReason


class JobStage(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    PARSING = "parsing"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


class JobError(BaseModel):
    stage: JobStage
    kind: Literal["network", "timeout", "bad-status", "unreadable"]
    message: str
    status_code: Optional[int] = None

    @classmethod
    def from_exception(cls, stage: JobStage, exc: Exception) -> "JobError":
        if isinstance(exc, FetchError):
            return cls(
                stage=stage,
                kind=exc.kind,
                message=exc.message,
                status_code=getattr(exc, "code", None),
            )
        if isinstance(exc, ParseError):
            return cls(stage=stage, kind=exc.kind, message=str(exc))
        raise TypeError(f"not a stage error: {exc!r}")


class ResultSet(BaseModel):
    job: str
    url: str
    final_url: Optional[str] = None
    stage: JobStage = JobStage.PENDING
    field_names: List[str] = Field(default_factory=list)
    records: List[Record] = Field(default_factory=list)
    warnings: List[FieldWarning] = Field(default_factory=list)
    excluded: List[ExcludedRecord] = Field(default_factory=list)
    job_error: Optional[JobError] = None

    @property
    def ok(self) -> bool:
        return self.job_error is None

    def head(self, n: int) -> List[Record]:
        """First `n` records, or all of them if there are fewer."""
        return self.records[: max(n, 0)]

    def to_dataframe(self) -> pd.DataFrame:
        """One row per record, one column per field (absent values are NaN)."""
        return pd.DataFrame(self.records, columns=self.field_names)
