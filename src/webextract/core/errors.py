"""Exception taxonomy for the fetch/parse stages.

Fetch and parse errors abort a whole job and are turned into a `JobError`
value by the pipeline. Field-level problems are never exceptions: they end up
as warnings on the `ResultSet`.
"""

from __future__ import annotations

from typing import Optional


class WebExtractError(Exception):
    """Base class for every error raised by this package."""


class FetchError(WebExtractError):
    kind = "network"

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
        self.message = message


class NetworkError(FetchError):
    """DNS failure, refused or reset connection, TLS errors, ..."""

    kind = "network"

    def __init__(self, url: str, cause: BaseException):
        super().__init__(url, f"network error fetching {url}: {cause}")
        self.cause = cause


class FetchTimeout(FetchError):
    kind = "timeout"

    def __init__(self, url: str, timeout: float):
        super().__init__(url, f"timed out after {timeout:g}s fetching {url}")
        self.timeout = timeout


class BadStatus(FetchError):
    kind = "bad-status"

    def __init__(self, url: str, code: int, reason: Optional[str] = None):
        super().__init__(url, f"status code error: {code} {reason or ''}".rstrip())
        self.code = code
        self.reason = reason or ""


class FetchCancelled(FetchError):
    kind = "cancelled"

    def __init__(self, url: str):
        super().__init__(url, f"fetch of {url} was cancelled")


class ParseError(WebExtractError):
    kind = "unreadable"


class UnreadableDocument(ParseError):
    """The body is not decodable as text at all."""


class InvalidSelector(WebExtractError, ValueError):
    def __init__(self, selector: str, cause: BaseException):
        super().__init__(f"invalid selector {selector!r}: {cause}")
        self.selector = selector


class UnparsableURL(WebExtractError, ValueError):
    def __init__(self, raw: str, cause: Optional[BaseException] = None):
        msg = f"cannot parse URL {raw!r}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
        self.raw = raw


class JobCancelled(WebExtractError):
    """Raised instead of returning a partial ResultSet for a cancelled job."""

    def __init__(self, job_name: str):
        super().__init__(f"job {job_name!r} was cancelled")
        self.job_name = job_name
