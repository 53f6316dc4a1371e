"""Registry of named site definitions used by the demo flow.

Each entry is a small function building an ExtractionJob from an
EngineConfig. Site quirks (like Hacker News' relative `item?id=` links) live
in the rules here, never in the core.
"""

from typing import Callable, Dict, List, Optional

from webextract.core.config import EngineConfig
from webextract.core.models import ExtractionJob

from .definitions import generic_job, github_trending, hacker_news, quotes

SiteBuilder = Callable[[EngineConfig], ExtractionJob]

_REGISTRY: Dict[str, SiteBuilder] = {
    "hacker_news": hacker_news,
    "quotes": quotes,
    "github_trending": github_trending,
}


def get_site(name: str) -> SiteBuilder:
    """
    Factory: look up a site definition by name.
    The flow does not need to know which sites exist.
    """
    builder = _REGISTRY.get(name)
    if not builder:
        raise ValueError(f"Site '{name}' is not registered.")
    return builder


def build_job(name: str, config: Optional[EngineConfig] = None) -> ExtractionJob:
    return get_site(name)(config or EngineConfig())


def available_sites() -> List[str]:
    return sorted(_REGISTRY)


__all__ = ["get_site", "build_job", "available_sites", "generic_job"]
