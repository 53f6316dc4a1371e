"""Core scraping primitives exported for reuse by the pipeline and flows.

This package contains small, well-tested building blocks: Fetcher (plus the
retry wrapper), Parser, Selector engine and URL Normalizer. The Prefect task
wrappers live in `prefect_tasks` and are imported from there directly.
"""

from .fetcher import Fetcher
from .normalizer import normalize_url, strip_tracking_params
from .parser import Document, Node, parse_document
from .retry import RetryingFetcher, RetryPolicy
from .selector import compile_selector, extract_value, select, select_one

__all__ = [
    "Fetcher",
    "RetryingFetcher",
    "RetryPolicy",
    "Document",
    "Node",
    "parse_document",
    "compile_selector",
    "select",
    "select_one",
    "extract_value",
    "normalize_url",
    "strip_tracking_params",
]
