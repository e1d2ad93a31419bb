"""Story scraping helpers for royalroad-epub."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Chapter:
    """A chapter entry taken from the story's chapter table."""

    name: str
    link: str


@dataclass(frozen=True)
class Story:
    """Metadata and ordered chapter list of a story."""

    title: str
    author: str
    description: str
    cover: str
    chapters: Tuple[Chapter, ...] = ()


@dataclass(frozen=True)
class ChapterResult:
    """Fetched content of the chapter at ``index`` in ``Story.chapters``."""

    index: int
    chapter: Chapter
    content: str


__all__ = ["Chapter", "ChapterResult", "Story"]
