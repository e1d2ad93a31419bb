"""EPUB assembly on top of ebooklib."""

from __future__ import annotations

from dataclasses import dataclass, field
import html
import io
import logging
import os
from pathlib import Path
import tempfile
from typing import List, Optional
from urllib.parse import urlparse
import uuid

from ebooklib import epub

from .errors import AssemblyError, UnsupportedFormatError

LOGGER = logging.getLogger(__name__)

COVER_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
}
MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}
EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}

STYLESHEET = """
@page {
    margin-bottom: 5pt;
    margin-top: 5pt;
}

.chapter-inner {
    font-size: 1em;
    line-height: 1.2;
    margin: 0 5pt;
}

p {
    text-indent: 1em;
}
"""

COVER_TEMPLATE = """<html xmlns="http://www.w3.org/1999/xhtml">
  <head><title>Cover</title></head>
  <body>
    <img src="{image}" alt="Cover"/>
  </body>
</html>
"""

# the EPUB3 page-list pass fails on pages without page markers
WRITE_OPTIONS = {"epub3_pages": False}

CHAPTER_TEMPLATE = """<html xmlns="http://www.w3.org/1999/xhtml">
  <head>
    <title>{title}</title>
    <meta http-equiv="Content-Type" content="text/html; charset=utf-8"/>
    <link rel="stylesheet" type="text/css" href="{stylesheet}"/>
  </head>
  <body>
    {body}
  </body>
</html>
"""


def mime_type_for(url: str, content_type: Optional[str] = None) -> str:
    """Return the cover MIME type from a response content type or the URL.

    An ``image/*`` content type wins; anything else falls back to the
    extension of the URL path. Raises :class:`UnsupportedFormatError` when
    neither names a JPEG or PNG.
    """

    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type.startswith("image/"):
        media_type = MIME_ALIASES.get(media_type, media_type)
        if media_type not in COVER_EXTENSIONS:
            raise UnsupportedFormatError(media_type)
        return media_type

    path = urlparse(url).path
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    if extension not in EXTENSION_MIME_TYPES:
        raise UnsupportedFormatError(media_type or extension)
    return EXTENSION_MIME_TYPES[extension]


@dataclass
class EpubDocument:
    """An EPUB under construction. Owned by a single writer."""

    book: epub.EpubBook
    stylesheet: epub.EpubItem
    language: str = "en"
    chapters: List[epub.EpubHtml] = field(default_factory=list)
    has_cover: bool = False


class EpubAssembler:
    """Build EPUB documents: metadata, a cover, chapters and a table of contents."""

    def __init__(self, *, stylesheet: str = STYLESHEET) -> None:
        self.stylesheet = stylesheet

    def new_document(self, title: str, author: str, description: str, *, language: str = "en") -> EpubDocument:
        book = epub.EpubBook()
        book.set_identifier(f"urn:uuid:{uuid.uuid4()}")
        book.set_title(title)
        book.set_language(language)
        book.add_author(author)
        book.add_metadata("DC", "description", description)

        stylesheet = epub.EpubItem(
            uid="stylesheet",
            file_name="style/stylesheet.css",
            media_type="text/css",
            content=self.stylesheet.encode("utf-8"),
        )
        book.add_item(stylesheet)
        book.add_item(epub.EpubNcx())
        book.add_item(epub.EpubNav())
        return EpubDocument(book=book, stylesheet=stylesheet, language=language)

    def set_cover(self, doc: EpubDocument, image: bytes, mime_type: str) -> None:
        media_type = MIME_ALIASES.get(mime_type.lower(), mime_type.lower())
        extension = COVER_EXTENSIONS.get(media_type)
        if extension is None:
            raise UnsupportedFormatError(mime_type)
        if doc.has_cover:
            raise AssemblyError("document already has a cover")
        image_name = f"cover.{extension}"
        doc.book.set_cover(image_name, image, create_page=False)
        page = epub.EpubHtml(uid="cover", title="Cover", file_name="cover.xhtml", lang=doc.language)
        page.content = COVER_TEMPLATE.format(image=image_name)
        doc.book.add_item(page)
        doc.book.guide.append({"type": "cover", "title": "Cover", "href": page.file_name})
        doc.has_cover = True
        LOGGER.debug("Added %s cover (%d bytes)", media_type, len(image))

    def append_chapter(self, doc: EpubDocument, index: int, title: str, fragment: str) -> epub.EpubHtml:
        expected = len(doc.chapters)
        if index != expected:
            raise AssemblyError(f"chapter {index} appended out of order; expected chapter {expected}")

        page = epub.EpubHtml(
            uid=f"chapter_{index + 1}",
            title=title,
            file_name=f"chapter_{index + 1}.xhtml",
            lang=doc.language,
        )
        page.content = CHAPTER_TEMPLATE.format(
            title=html.escape(title),
            stylesheet=doc.stylesheet.file_name,
            body=fragment,
        )
        page.add_item(doc.stylesheet)
        doc.book.add_item(page)
        doc.chapters.append(page)
        return page

    def finalize(self, doc: EpubDocument) -> bytes:
        doc.book.toc = list(doc.chapters)
        spine: list = ["cover"] if doc.has_cover else []
        spine.append("nav")
        spine.extend(doc.chapters)
        doc.book.spine = spine

        buffer = io.BytesIO()
        try:
            epub.write_epub(buffer, doc.book, WRITE_OPTIONS)
        except Exception as exc:  # ebooklib surfaces lxml and zipfile errors as-is
            raise AssemblyError(f"could not serialize EPUB: {exc}") from exc
        data = buffer.getvalue()
        if not data:
            raise AssemblyError("EPUB serialization produced no output")
        return data

    def write(self, doc: EpubDocument, path: Path) -> Path:
        """Serialize ``doc`` and write it to ``path`` atomically."""

        data = self.finalize(doc)
        path = Path(path)
        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=f".{path.name}.", suffix=".part", delete=False
            ) as handle:
                tmp_name = handle.name
                handle.write(data)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise AssemblyError(f"could not write {path}: {exc}") from exc
        LOGGER.debug("Wrote %d bytes to %s", len(data), path)
        return path


__all__ = ["EpubAssembler", "EpubDocument", "mime_type_for"]
