"""URL normalizer utilities.

Resolves link values pulled out of a page against the page URL, applies an
optional site-specific rewrite first, and can drop tracking params.
"""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import (
    ParseResult,
    parse_qsl,
    urlencode,
    urljoin,
    urlparse,
    urlunparse,
)

from webextract.core.errors import UnparsableURL
from webextract.core.models import UrlRewrite

DEFAULT_REMOVE_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "fbclid",
}


def _parse(raw: str) -> ParseResult:
    if any(ord(c) < 0x20 for c in raw):
        raise UnparsableURL(raw)
    try:
        p = urlparse(raw)
        # port is parsed lazily; touching it validates "host:abc" style netlocs
        p.port
    except ValueError as exc:
        raise UnparsableURL(raw, exc) from exc
    return p


def is_absolute(url: str) -> bool:
    return bool(_parse(url).scheme)


def strip_tracking_params(url: str, remove_params: Iterable[str] | None = None) -> str:
    """Drop common tracking params and empty query strings; keeps the fragment."""
    remove = set(remove_params or DEFAULT_REMOVE_PARAMS)
    p = _parse(url)
    q = [
        (k, v) for k, v in parse_qsl(p.query, keep_blank_values=True) if k not in remove
    ]
    if len(q) == len(parse_qsl(p.query, keep_blank_values=True)):
        return url
    query = urlencode(q, doseq=True)
    return urlunparse(
        (p.scheme, p.netloc, p.path or "", p.params or "", query or "", p.fragment or "")
    )


def normalize_url(
    raw: str,
    base: str,
    rewrite: Optional[UrlRewrite] = None,
    strip_tracking: bool = False,
) -> str:
    """Return `raw` as an absolute URL.

    - a matching `rewrite` is applied first (site-specific prefixing);
    - absolute URLs are returned unchanged, surrounding whitespace included;
    - anything else is resolved against `base` with standard
      relative-reference rules (`urljoin`).

    Raises `UnparsableURL` when `raw` cannot be read as any URL form; callers
    keep the raw value in that case.
    """
    value = raw.strip()
    rewritten = rewrite.apply(value) if rewrite is not None else None
    if rewritten is not None:
        value = rewritten

    if is_absolute(value):
        result = raw if rewritten is None else value
    else:
        _parse(base)
        try:
            result = urljoin(base, value)
        except ValueError as exc:
            raise UnparsableURL(raw, exc) from exc

    if strip_tracking:
        result = strip_tracking_params(result.strip())
    return result
