import os
from typing import Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from webextract.core.models import (
    DEFAULT_USER_AGENT,
    ExtractionJob,
    FetchRequest,
    FieldRule,
)

ENV_PREFIX = "WEBEXTRACT_"


class EngineConfig(BaseModel):
    """
    Engine-wide defaults.
    Individual jobs still carry their own timeout/user agent in the
    FetchRequest; this only decides what those default to and how the
    worker pool and retry wrapper are sized.
    """

    timeout: float = Field(default=10.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = Field(default_factory=dict)

    # Worker pool (kept small so target hosts are not hammered)
    max_workers: int = Field(default=4, ge=1, le=32)

    # Retry wrapper; 1 attempt == no retries
    retry_attempts: int = Field(default=1, ge=1, le=10)
    backoff_factor: float = Field(default=0.3, ge=0)
    retry_statuses: Tuple[int, ...] = (429, 500, 502, 503, 504)

    @field_validator("user_agent")
    def user_agent_not_blank(cls, v):
        if not v.strip():
            raise ValueError("user_agent must not be blank")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "EngineConfig":
        """Build a config from WEBEXTRACT_* variables (unset ones keep defaults)."""
        env = os.environ if environ is None else environ
        values: Dict[str, object] = {}
        for key in ("timeout", "user_agent", "max_workers", "retry_attempts", "backoff_factor"):
            raw = env.get(ENV_PREFIX + key.upper())
            if raw is not None and raw != "":
                values[key] = raw
        statuses = env.get(ENV_PREFIX + "RETRY_STATUSES")
        if statuses:
            values["retry_statuses"] = tuple(
                int(s) for s in statuses.split(",") if s.strip()
            )
        return cls(**values)

    def request(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchRequest:
        merged = dict(self.headers)
        if headers:
            merged.update(headers)
        return FetchRequest(
            url=url, timeout=self.timeout, user_agent=self.user_agent, headers=merged
        )

    def job(
        self,
        url: str,
        scope_selector: str,
        fields: Iterable[FieldRule],
        name: str = "",
        headers: Optional[Dict[str, str]] = None,
    ) -> ExtractionJob:
        return ExtractionJob(
            name=name,
            request=self.request(url, headers),
            scope_selector=scope_selector,
            fields=tuple(fields),
        )
