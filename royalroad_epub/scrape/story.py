"""Resolve a story page into a :class:`Story`."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..errors import ExtractionError
from ..fetch import ResourceFetcher
from . import Chapter, Story
from .extract import FieldRule, MarkupExtractor

LOGGER = logging.getLogger(__name__)

COVER = FieldRule("cover", 'meta[name="twitter:image"]', "content")
AUTHOR = FieldRule("author", 'meta[name="twitter:creator"]', "content")
TITLE = FieldRule("title", 'meta[name="twitter:title"]', "content")
DESCRIPTION = FieldRule("description", 'meta[name="twitter:description"]', "content")

CHAPTER_TABLE = 'table[id="chapters"]'
CHAPTER_ROW = "tbody > tr > td > a"


def story_url(url: str) -> str:
    """Strip a ``/chapter/...`` suffix so any chapter link points at its story."""

    return url.split("/chapter/", 1)[0]


class StoryResolver:
    """Fetch a story page and extract its metadata and chapter table."""

    def __init__(self, fetcher: ResourceFetcher, extractor: Optional[MarkupExtractor] = None) -> None:
        self.fetcher = fetcher
        self.extractor = extractor or MarkupExtractor()

    async def resolve(self, landing_url: str) -> Story:
        url = story_url(landing_url)
        markup = await self.fetcher.fetch_text(url)
        story = self.parse(markup, url=url)
        LOGGER.debug("Resolved %r by %s with %d chapters", story.title, story.author, len(story.chapters))
        return story

    def parse(self, markup: str, *, url: Optional[str] = None) -> Story:
        doc = self.extractor.parse(markup)
        extract = self.extractor.extract_field
        cover = extract(doc, COVER, url=url)
        author = extract(doc, AUTHOR, url=url)
        title = extract(doc, TITLE, url=url)
        description = extract(doc, DESCRIPTION, url=url)
        chapters = self._chapters(doc, url)
        return Story(
            title=title,
            author=author,
            description=description,
            cover=cover,
            chapters=chapters,
        )

    def _chapters(self, doc, url: Optional[str]) -> Tuple[Chapter, ...]:
        rows = self.extractor.extract_records(
            doc,
            CHAPTER_TABLE,
            CHAPTER_ROW,
            {"name": None, "link": "href"},
            name="chapter-table",
            url=url,
        )
        chapters: List[Chapter] = []
        for row in rows:
            if not row["link"]:
                raise ExtractionError("chapter-table.link", url)
            chapters.append(Chapter(name=row["name"], link=row["link"]))
        return tuple(chapters)


__all__ = ["StoryResolver", "story_url"]
