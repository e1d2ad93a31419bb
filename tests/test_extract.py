"""Tests for the CSS-selector field extractor."""

from __future__ import annotations

import pytest

from royalroad_epub.errors import ExtractionError
from royalroad_epub.scrape.extract import FieldRule, MarkupExtractor

PAGE = """
<html><head>
  <meta name="twitter:title" content="  Spaced Title ">
  <meta name="og:empty">
</head><body>
  <h1 class="fic-title big">
      Heading text
  </h1>
  <table id="chapters"><tbody>
    <tr><td><a href="/fiction/1/chapter/10/one"> One </a></td></tr>
    <tr><td><a href="https://example.com/two">Two</a></td></tr>
    <tr><td><a>Three</a></td></tr>
  </tbody></table>
  <div class="chapter-content"><p>Body</p></div>
</body></html>
"""


@pytest.fixture
def extractor() -> MarkupExtractor:
    return MarkupExtractor()


def test_attribute_is_returned_verbatim(extractor):
    doc = extractor.parse(PAGE)
    value = extractor.extract_field(doc, FieldRule("title", 'meta[name="twitter:title"]', "content"))
    assert value == "  Spaced Title "


def test_text_is_trimmed(extractor):
    doc = extractor.parse(PAGE)
    assert extractor.extract_field(doc, FieldRule("heading", "h1")) == "Heading text"


def test_multi_valued_attribute_is_joined(extractor):
    doc = extractor.parse(PAGE)
    assert extractor.extract_field(doc, FieldRule("classes", "h1", "class")) == "fic-title big"


def test_missing_node_raises_with_field_name(extractor):
    doc = extractor.parse(PAGE)
    with pytest.raises(ExtractionError) as excinfo:
        extractor.extract_field(doc, FieldRule("author", 'meta[name="twitter:creator"]', "content"), url="https://x")
    assert excinfo.value.field == "author"
    assert "author" in str(excinfo.value)
    assert "https://x" in str(excinfo.value)


def test_missing_attribute_raises(extractor):
    doc = extractor.parse(PAGE)
    with pytest.raises(ExtractionError):
        extractor.extract_field(doc, FieldRule("empty", 'meta[name="og:empty"]', "content"))


def test_optional_field_returns_none(extractor):
    doc = extractor.parse(PAGE)
    assert extractor.extract_optional(doc, FieldRule("missing", "span.nothing")) is None


def test_records_keep_document_order(extractor):
    doc = extractor.parse(PAGE.replace("<tr><td><a>Three</a></td></tr>", ""))
    records = extractor.extract_records(doc, "table#chapters", "tbody > tr > td > a", {"name": None, "link": "href"})
    assert records == [
        {"name": "One", "link": "/fiction/1/chapter/10/one"},
        {"name": "Two", "link": "https://example.com/two"},
    ]


def test_record_missing_attribute_names_the_key(extractor):
    doc = extractor.parse(PAGE)
    with pytest.raises(ExtractionError) as excinfo:
        extractor.extract_records(
            doc, "table#chapters", "tbody > tr > td > a", {"name": None, "link": "href"}, name="chapter-table"
        )
    assert excinfo.value.field == "chapter-table.link"


def test_missing_container_raises(extractor):
    doc = extractor.parse("<html><body></body></html>")
    with pytest.raises(ExtractionError) as excinfo:
        extractor.extract_records(doc, "table#chapters", "a", {"name": None}, name="chapter-table")
    assert excinfo.value.field == "chapter-table"


def test_fragment_is_outer_html(extractor):
    doc = extractor.parse(PAGE)
    fragment = extractor.extract_fragment(doc, "div.chapter-content", name="chapter content")
    assert fragment == '<div class="chapter-content"><p>Body</p></div>'
