import pytest

from webextract.core.errors import UnreadableDocument
from webextract.core.scraping.parser import parse_document
from webextract.core.scraping.selector import extract_text, select, select_one


def test_lenient_parsing_of_broken_markup():
    doc = parse_document(b"<div class=a><p>one<p>two<span>x</div><b>tail")
    ps = select(doc.root, "div.a p")
    assert len(ps) == 2
    assert select_one(doc.root, "b").text == "tail"


def test_whitespace_kept_in_tree_but_trimmed_on_extraction():
    doc = parse_document(b"<p>  <b>x</b>  </p>")
    p = select_one(doc.root, "p")
    assert p.text == "  x  "
    assert extract_text(p) == "x"


def test_declared_encoding_is_used():
    body = "<p>café</p>".encode("latin-1")
    doc = parse_document(body, encoding="latin-1")
    assert select_one(doc.root, "p").text == "café"


def test_meta_charset_detected():
    body = '<html><head><meta charset="utf-8"></head><body><p>naïve</p></body></html>'
    doc = parse_document(body.encode("utf-8"))
    assert select_one(doc.root, "p").text == "naïve"


def test_binary_body_is_unreadable():
    with pytest.raises(UnreadableDocument):
        parse_document(b"\x00\x00\x00\x00\x01\x02\x03\x04" * 8)


def test_attribute_values_are_verbatim_strings():
    doc = parse_document(b'<div class="a  b" data-x=" spaced "></div>')
    div = select_one(doc.root, "div")
    assert div.get("class") == "a  b"
    assert div.attrs["data-x"] == " spaced "


def test_node_views_are_read_only():
    doc = parse_document(b'<a href="/x">x</a>')
    a = select_one(doc.root, "a")
    with pytest.raises(TypeError):
        a.attrs["href"] = "/y"
    with pytest.raises(AttributeError):
        a.tag = "b"


def test_children_and_title():
    doc = parse_document(b"<html><head><title> T </title></head><body><ul><li>1</li>\n<li>2</li></ul></body></html>")
    ul = select_one(doc.root, "ul")
    assert [c.tag for c in ul.children] == ["li", "li"]
    assert doc.title == "T"


def test_str_body_accepted():
    doc = parse_document("<p>text</p>")
    assert select_one(doc.root, "p").text == "text"
