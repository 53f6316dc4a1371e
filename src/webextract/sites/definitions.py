from __future__ import annotations

from webextract.core.config import EngineConfig
from webextract.core.models import ExtractionJob, FieldRule, UrlRewrite

HACKER_NEWS_URL = "https://news.ycombinator.com"
QUOTES_URL = "http://quotes.toscrape.com"
GITHUB_TRENDING_URL = "https://github.com/trending"

# HN links its own discussion pages as bare "item?id=123"
HN_ITEM_REWRITE = UrlRewrite(prefix="item?id=", base="https://news.ycombinator.com/")


def hacker_news(config: EngineConfig) -> ExtractionJob:
    return config.job(
        HACKER_NEWS_URL,
        ".titleline > a",
        [
            FieldRule.text("title", required=True, allow_empty=False),
            FieldRule.href("link", required=True, rewrite=HN_ITEM_REWRITE),
        ],
        name="hacker_news",
    )


def quotes(config: EngineConfig) -> ExtractionJob:
    return config.job(
        QUOTES_URL,
        ".quote",
        [
            FieldRule.text("quote", ".text", required=True, allow_empty=False),
            FieldRule.text("author", ".author", required=True, allow_empty=False),
        ],
        name="quotes",
    )


def github_trending(config: EngineConfig) -> ExtractionJob:
    return generic_job(config, GITHUB_TRENDING_URL, "h2.h3 a", name="github_trending")


def generic_job(
    config: EngineConfig, url: str, selector: str, name: str = ""
) -> ExtractionJob:
    """One non-empty `text` value per node matching `selector`."""
    return config.job(
        url,
        selector,
        [FieldRule.text("text", required=True, allow_empty=False)],
        name=name,
    )
