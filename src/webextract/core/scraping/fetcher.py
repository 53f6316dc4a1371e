"""HTTP fetcher: one GET per call, typed failures, no retries.

Provides a small `Fetcher` object exposing `fetch`. Retry policy lives in
`webextract.core.scraping.retry`, layered on top.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from http.cookiejar import DefaultCookiePolicy
from typing import List, Optional

import requests
from prefect.logging import get_logger

from webextract.core.cancel import CancelToken
from webextract.core.errors import (
    BadStatus,
    FetchCancelled,
    FetchTimeout,
    NetworkError,
)
from webextract.core.models import FetchRequest, FetchResponse

logger = get_logger(__name__)


def _cancelled(cancel: Optional[CancelToken]) -> bool:
    return cancel is not None and cancel.cancelled


class Fetcher:
    """Small HTTP client for scraping.

    Usage:
        f = Fetcher()
        resp = f.fetch(FetchRequest(url=url, timeout=10))

    The session is owned by the instance (or injected), never module-global.
    A session the fetcher creates itself rejects every cookie, so fetches
    never carry state from one job into the next.
    `request.timeout` bounds the whole request/response cycle: it is passed
    to requests as the socket timeout and checked as a deadline while the
    body streams in.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        chunk_size: int = 8192,
    ) -> None:
        if session is None:
            session = requests.Session()
            session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        self.session = session
        self.chunk_size = chunk_size

    def close(self) -> None:
        self.session.close()

    def fetch(
        self, request: FetchRequest, cancel: Optional[CancelToken] = None
    ) -> FetchResponse:
        url = request.url
        if _cancelled(cancel):
            raise FetchCancelled(url)

        deadline = time.monotonic() + request.timeout
        logger.debug("GET %s (timeout=%ss)", url, request.timeout)
        try:
            resp = self._send(request, cancel)
        except requests.Timeout as exc:
            raise FetchTimeout(url, request.timeout) from exc
        except requests.RequestException as exc:
            if _cancelled(cancel):
                raise FetchCancelled(url) from exc
            raise NetworkError(url, exc) from exc

        unregister = cancel.register(resp.close) if cancel is not None else None
        try:
            if _cancelled(cancel):
                raise FetchCancelled(url)
            if not 200 <= resp.status_code <= 299:
                raise BadStatus(url, resp.status_code, resp.reason)
            body = self._read_body(resp, url, request.timeout, deadline, cancel)
        finally:
            if unregister is not None:
                unregister()
            resp.close()

        content_type = resp.headers.get("Content-Type")
        encoding = None
        if content_type and "charset=" in content_type.lower():
            encoding = resp.encoding

        logger.debug(
            "Fetched %s (status=%s, %d bytes, final=%s)",
            url,
            resp.status_code,
            len(body),
            resp.url,
        )
        return FetchResponse(
            status_code=resp.status_code,
            body=body,
            final_url=str(resp.url),
            encoding=encoding,
            content_type=content_type,
        )

    def _send(
        self, request: FetchRequest, cancel: Optional[CancelToken]
    ) -> requests.Response:
        """Issue the GET and return once the response headers are in.

        With a cancel token the blocking call runs on a helper thread so the
        caller can give up while it is still connecting or waiting for
        headers. An abandoned call's response is closed when it arrives.
        """
        kwargs = dict(
            headers=request.header_map(),
            timeout=request.timeout,
            stream=True,
            allow_redirects=True,
        )
        if cancel is None:
            return self.session.get(request.url, **kwargs)

        pending: Future = Future()
        settled = threading.Event()
        pending.add_done_callback(lambda _: settled.set())

        def run() -> None:
            pending.set_running_or_notify_cancel()
            try:
                pending.set_result(self.session.get(request.url, **kwargs))
            except Exception as exc:
                pending.set_exception(exc)

        threading.Thread(target=run, name=f"fetch {request.url}", daemon=True).start()
        unregister = cancel.register(settled.set)
        try:
            settled.wait()
        finally:
            unregister()

        if not pending.done():
            pending.add_done_callback(_discard_late_response)
            raise FetchCancelled(request.url)
        return pending.result()

    def _read_body(
        self,
        resp: requests.Response,
        url: str,
        timeout: float,
        deadline: float,
        cancel: Optional[CancelToken],
    ) -> bytes:
        chunks: List[bytes] = []
        try:
            for chunk in resp.iter_content(chunk_size=self.chunk_size):
                if _cancelled(cancel):
                    raise FetchCancelled(url)
                if time.monotonic() > deadline:
                    raise FetchTimeout(url, timeout)
                if chunk:
                    chunks.append(chunk)
        except (FetchCancelled, FetchTimeout):
            raise
        except requests.Timeout as exc:
            raise FetchTimeout(url, timeout) from exc
        except Exception as exc:
            # a cancel closes the response under our feet; whatever the read
            # raised then is just the symptom
            if _cancelled(cancel):
                raise FetchCancelled(url) from exc
            if isinstance(exc, requests.RequestException):
                raise NetworkError(url, exc) from exc
            raise
        if time.monotonic() > deadline:
            raise FetchTimeout(url, timeout)
        return b"".join(chunks)


def _discard_late_response(pending: Future) -> None:
    exc = pending.exception()
    if exc is not None:
        logger.debug("Abandoned request failed after cancel: %s", exc)
        return
    pending.result().close()
