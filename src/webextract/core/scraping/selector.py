"""CSS selector evaluation and value extraction over `Node`s."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, List, Optional

import soupsieve
from soupsieve import SoupSieve

from webextract.core.errors import InvalidSelector
from webextract.core.scraping.parser import Node

if TYPE_CHECKING:
    from webextract.core.models import FieldRule


@lru_cache(maxsize=512)
def compile_selector(expr: str) -> SoupSieve:
    try:
        return soupsieve.compile(expr)
    except (soupsieve.SelectorSyntaxError, ValueError, TypeError) as exc:
        raise InvalidSelector(expr, exc) from exc


def select(scope: Node, expr: str) -> List[Node]:
    """Nodes below `scope` matching `expr`, in document order.

    An empty expression selects the scope node itself.
    """
    expr = expr.strip()
    if not expr:
        return [scope]
    return [Node(t) for t in compile_selector(expr).select(scope._tag)]


def select_one(scope: Node, expr: str) -> Optional[Node]:
    expr = expr.strip()
    if not expr:
        return scope
    tag = compile_selector(expr).select_one(scope._tag)
    return Node(tag) if tag is not None else None


def extract_text(node: Node) -> str:
    return node.text.strip()


def extract_value(node: Node, rule: "FieldRule") -> Optional[str]:
    """Text (trimmed, possibly "") or the verbatim attribute value (or None)."""
    if rule.extract == "attribute":
        value = node.get(rule.attribute)
        return None if value is None else str(value)
    return extract_text(node)
