"""HTML parsing: raw bytes -> read-only Document.

BeautifulSoup's `html.parser` backend is used for its leniency: unclosed tags,
missing quotes and stray end tags are all recovered from. The resulting tree
is only ever handed out through `Node` views, which expose no mutating API.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from bs4 import BeautifulSoup, Tag, UnicodeDammit

from webextract.core.errors import UnreadableDocument


class Node:
    """Read-only view over one element of a parsed Document."""

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag.name

    @property
    def attrs(self) -> Mapping[str, str]:
        return MappingProxyType(dict(self._tag.attrs))

    def get(self, name: str) -> Optional[str]:
        return self._tag.get(name)

    @property
    def text(self) -> str:
        """All descendant text in document order, untrimmed."""
        return self._tag.get_text()

    @property
    def children(self) -> Tuple["Node", ...]:
        return tuple(Node(c) for c in self._tag.children if isinstance(c, Tag))

    def __eq__(self, other):
        return isinstance(other, Node) and other._tag is self._tag

    def __hash__(self):
        return id(self._tag)

    def __repr__(self):
        return f"<Node {self.tag} {dict(self._tag.attrs)!r}>"


class Document:
    """A parsed page. Built once, never modified afterwards."""

    def __init__(self, soup: BeautifulSoup, encoding: Optional[str] = None):
        self._soup = soup
        self.encoding = encoding

    @property
    def root(self) -> Node:
        return Node(self._soup)

    @property
    def title(self) -> Optional[str]:
        t = self._soup.title
        return t.get_text().strip() if t is not None else None


def decode_body(body: bytes, encoding: Optional[str] = None) -> Tuple[str, Optional[str]]:
    """Decode raw bytes to text, preferring the declared `encoding`."""
    known = [encoding] if encoding else []
    dammit = UnicodeDammit(body, known_definite_encodings=known, is_html=True)
    text = dammit.unicode_markup
    if text is None:
        raise UnreadableDocument("body could not be decoded as text")
    # NULs never show up in real markup; they mean a binary payload
    if "\x00" in text:
        raise UnreadableDocument("body looks like binary data, not HTML")
    return text, dammit.original_encoding


def parse_document(body: bytes | str, encoding: Optional[str] = None) -> Document:
    if isinstance(body, str):
        text, used = body, None
        if "\x00" in text:
            raise UnreadableDocument("body looks like binary data, not HTML")
    else:
        text, used = decode_body(body, encoding)
    # keep class="a b" as one string so attribute values come back verbatim
    soup = BeautifulSoup(text, "html.parser", multi_valued_attributes=None)
    return Document(soup, encoding=used)
