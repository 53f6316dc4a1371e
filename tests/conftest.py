import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from webextract.core.errors import FetchError
from webextract.core.models import FetchResponse
from webextract.core.pipeline import ExtractionPipeline


class StaticFetcher:
    """Fetcher stand-in returning a canned page (or raising a canned error)."""

    def __init__(
        self,
        html: str | bytes = "",
        final_url: Optional[str] = None,
        error: Optional[FetchError] = None,
        encoding: Optional[str] = None,
    ):
        self.body = html.encode("utf-8") if isinstance(html, str) else html
        self.final_url = final_url
        self.error = error
        self.encoding = encoding
        self.requests: List = []

    def fetch(self, request, cancel=None):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return FetchResponse(
            status_code=200,
            body=self.body,
            final_url=self.final_url or request.url,
            encoding=self.encoding,
            content_type="text/html",
        )


class DummyResponse:
    """Just enough of `requests.Response` for the Fetcher."""

    def __init__(
        self,
        status_code: int = 200,
        chunks=(b"<html></html>",),
        url: str = "https://example.org/",
        reason: str = "OK",
        headers: Optional[dict] = None,
        encoding: Optional[str] = None,
    ):
        self.status_code = status_code
        self._chunks = chunks
        self.url = url
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers or {"Content-Type": "text/html"})
        self.encoding = encoding
        self.closed = False
        self.consumed = False

    def iter_content(self, chunk_size=1):
        self.consumed = True
        for chunk in self._chunks:
            yield chunk

    def close(self):
        self.closed = True


class DummySession:
    def __init__(self, response=None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls: List[dict] = []

    def get(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        pass


@pytest.fixture
def make_pipeline():
    def _make(html="", final_url=None, error=None, encoding=None):
        fetcher = StaticFetcher(html, final_url=final_url, error=error, encoding=encoding)
        return ExtractionPipeline(fetcher)

    return _make


HN_HTML = """
<html><body><table class="itemlist">
  <tr class="athing"><td class="title">
    <span class="titleline"><a href="https://example.com/a">First story</a></span>
  </td></tr>
  <tr class="athing"><td class="title">
    <span class="titleline"><a href="https://example.org/b">Second story</a>
      <span class="sitebit comhead">(<a href="from?site=example.org"><span>example.org</span></a>)</span>
    </span>
  </td></tr>
  <tr class="athing"><td class="title">
    <span class="titleline"><a href="item?id=123">Ask HN: Third story</a></span>
  </td></tr>
</table></body></html>
"""

QUOTES_HTML = """
<html><body>
<div class="quote" itemscope>
    <span class="text" itemprop="text">
        “The world as we have created it is a process of our thinking.”
    </span>
    <span>by <small class="author" itemprop="author">Albert Einstein</small>
    <a href="/author/Albert-Einstein">(about)</a></span>
</div>
<div class="quote" itemscope>
    <span class="text" itemprop="text">  “It is our choices, Harry, that show what we truly are.”  </span>
    <span>by <small class="author" itemprop="author">
        J.K. Rowling
    </small></span>
</div>
</body></html>
"""


@pytest.fixture
def hn_html():
    return HN_HTML


@pytest.fixture
def quotes_html():
    return QUOTES_HTML


PAGE = b"<html><body><ul><li><a href='next'>one</a></li></ul></body></html>"


class LocalSiteHandler(BaseHTTPRequestHandler):
    """A tiny site on 127.0.0.1 with redirects, slow phases and a cookie."""

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def _page(self, body=PAGE, status=200, extra=()):
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        for name, value in extra:
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body)

    def _redirect(self, location):
        self.send_response(302)
        self.send_header("Location", location)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):
        self.server.seen.append(
            (self.path, self.headers.get("User-Agent"), self.headers.get("Cookie"))
        )
        try:
            if self.path == "/hop1":
                self._redirect("/hop2")
            elif self.path == "/hop2":
                self._redirect("/page")
            elif self.path == "/login":
                self._page(extra=[("Set-Cookie", "sid=secret; Path=/")])
            elif self.path == "/missing":
                self.send_response(404)
                self.send_header("Content-Length", "4096")
                self.end_headers()
                self.wfile.flush()
                time.sleep(3)
                self.wfile.write(b"x" * 4096)
            elif self.path == "/slow-head":
                time.sleep(3)
                self._page()
            elif self.path == "/slow-body":
                self.send_response(200)
                self.send_header("Content-Type", "text/html")
                self.send_header("Transfer-Encoding", "chunked")
                self.end_headers()
                for _ in range(10):
                    self.wfile.write(b"1\r\nx\r\n")
                    self.wfile.flush()
                    time.sleep(0.2)
                self.wfile.write(b"0\r\n\r\n")
            else:
                self._page()
        except (BrokenPipeError, ConnectionResetError):
            # the client gave up; nothing left to send
            pass


class LocalSite:
    def __init__(self, server: ThreadingHTTPServer):
        self.server = server
        self.base = "http://127.0.0.1:%d" % server.server_address[1]

    def url(self, path: str) -> str:
        return self.base + path

    @property
    def seen(self):
        return list(self.server.seen)


@pytest.fixture
def local_site():
    server = ThreadingHTTPServer(("127.0.0.1", 0), LocalSiteHandler)
    server.seen = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield LocalSite(server)
    finally:
        server.shutdown()
        server.server_close()
